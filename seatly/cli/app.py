"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
from pendulum import Date, DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_store import JsonFileStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SeatlyError
from ..domain.models import (
    AvailabilitySlot,
    Booking,
    CreateBookingCommand,
    CreateDeskCommand,
    CreateRecurringBookingCommand,
)
from ..domain.time_normalizer import round_up_to_half_hour
from ..services.desk_manager import DeskManager

app = typer.Typer(
    name="seatly",
    help="Create desks, check half-hour availability and book desks",
    add_completion=False
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./seatly.yaml")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level.")] = False,
):
    """
    Seatly desk booking.
    """
    try:
        config = AppConfig.load_or_default(config_file or get_default_config_path())
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.obj = config


def _build_manager(config: AppConfig) -> DeskManager:
    store = JsonFileStore(config.data_file)
    return DeskManager(desk_store=store.desks, booking_store=store.bookings)


def _parse_datetime(value: str, label: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz=None)
    except ValueError as e:
        console.print(f"[red]Could not parse {label} '{value}': {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, DateTime):
        console.print(f"[red]{label} must be a date and time (YYYY-MM-DDTHH:MM)[/red]")
        raise typer.Exit(1)
    return parsed


def _parse_date(value: str, label: str) -> Date:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD").date()
    except ValueError as e:
        console.print(f"[red]Could not parse {label} '{value}': {e}[/red]")
        raise typer.Exit(1)


def _print_bookings(bookings: List[Booking], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Desk", justify="right")
    table.add_column("User", justify="right")
    table.add_column("Day", style="dim")
    table.add_column("Time", style="bold")

    for booking in bookings:
        table.add_row(
            str(booking.id),
            str(booking.desk_id),
            str(booking.user_id),
            booking.start_at.format("ddd DD.MM.YYYY"),
            f"{booking.start_at.format('HH:mm')} – {booking.end_at.format('HH:mm')}",
        )

    console.print()
    console.print(table)
    console.print()


def _print_slots(slots: List[AvailabilitySlot], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Start", style="dim")
    table.add_column("End", style="dim")
    table.add_column("Status")

    for slot in slots:
        status = "[green]AVAILABLE[/green]" if slot.is_available else "[red]BOOKED[/red]"
        table.add_row(
            slot.start_at.format("DD.MM.YYYY HH:mm"),
            slot.end_at.format("HH:mm"),
            status,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def create_desk(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Display name of the desk")],
    location: Annotated[Optional[str], typer.Option("--location", "-l", help="Free-text location")] = None,
):
    """
    Create a desk.
    """
    try:
        desk = _build_manager(ctx.obj).create_desk(CreateDeskCommand(name=name, location=location))
    except (SeatlyError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Created desk {desk.id}: {desk.name}[/green]")


@app.command()
def list_desks(ctx: typer.Context):
    """
    List all desks.
    """
    try:
        desks = _build_manager(ctx.obj).list_desks()
    except SeatlyError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not desks:
        console.print("[yellow]No desks yet. Create one with 'seatly create-desk'.[/yellow]")
        return

    table = Table(title="Desks", show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold yellow")
    table.add_column("Location", style="dim")

    for desk in desks:
        table.add_row(str(desk.id), desk.name, desk.location or "")

    console.print()
    console.print(table)
    console.print()


@app.command()
def availability(
    ctx: typer.Context,
    desk_id: Annotated[int, typer.Argument(help="Desk ID")],
    start: Annotated[Optional[str], typer.Option("--start", help="Window start (YYYY-MM-DDTHH:MM). Defaults to the next half hour.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Window end (YYYY-MM-DDTHH:MM)")] = None,
):
    """
    Show the half-hour availability grid of a desk.
    """
    config: AppConfig = ctx.obj
    start_at = _parse_datetime(start, "start") if start else round_up_to_half_hour(pendulum.now().naive())
    end_at = _parse_datetime(end, "end") if end else start_at.add(hours=config.defaults.availability_hours)

    try:
        manager = _build_manager(config)
        desk = manager.get_desk(desk_id)
        slots = manager.list_availability(desk_id, start_at, end_at)
    except SeatlyError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not slots:
        console.print("[yellow]⚠ The requested window contains no slots.[/yellow]")
        return

    _print_slots(slots, title=f"Availability of {desk.name}")


@app.command()
def book(
    ctx: typer.Context,
    desk_id: Annotated[int, typer.Argument(help="Desk ID")],
    start: Annotated[str, typer.Option("--start", help="Booking start (YYYY-MM-DDTHH:MM)")],
    end: Annotated[Optional[str], typer.Option("--end", help="Booking end. Defaults to the configured booking length.")] = None,
):
    """
    Book a desk for a single interval.
    """
    config: AppConfig = ctx.obj
    start_at = _parse_datetime(start, "start")
    end_at = _parse_datetime(end, "end") if end else start_at.add(minutes=config.defaults.booking_minutes)

    try:
        manager = _build_manager(config)
        manager.get_desk(desk_id)
        booking = manager.create_booking(
            CreateBookingCommand(desk_id=desk_id, user_id=config.user_id, start_at=start_at, end_at=end_at)
        )
    except SeatlyError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ Booking {booking.id} created[/bold green]")
    _print_bookings([booking], title="Booking")


@app.command()
def book_recurring(
    ctx: typer.Context,
    desk_id: Annotated[int, typer.Argument(help="Desk ID")],
    start: Annotated[str, typer.Option("--start", help="First occurrence start (YYYY-MM-DDTHH:MM)")],
    end: Annotated[Optional[str], typer.Option("--end", help="First occurrence end. Defaults to the configured booking length.")] = None,
    until: Annotated[Optional[str], typer.Option("--until", help="Last date of the recurrence (YYYY-MM-DD)")] = None,
):
    """
    Book a desk on the same weekday and time every week.

    Either every occurrence is booked or none is.
    """
    config: AppConfig = ctx.obj
    start_at = _parse_datetime(start, "start")
    end_at = _parse_datetime(end, "end") if end else start_at.add(minutes=config.defaults.booking_minutes)
    recurrence_end_date = (
        _parse_date(until, "until") if until
        else start_at.date().add(weeks=config.defaults.recurrence_weeks)
    )

    try:
        manager = _build_manager(config)
        manager.get_desk(desk_id)
        bookings = manager.create_recurring_booking(
            CreateRecurringBookingCommand(
                desk_id=desk_id,
                user_id=config.user_id,
                start_at=start_at,
                end_at=end_at,
                recurrence_end_date=recurrence_end_date,
            )
        )
    except SeatlyError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ {len(bookings)} booking(s) created[/bold green]")
    _print_bookings(bookings, title="Recurring booking")


@app.command()
def list_bookings(
    ctx: typer.Context,
    desk_id: Annotated[int, typer.Argument(help="Desk ID")],
):
    """
    List all bookings of a desk.
    """
    try:
        manager = _build_manager(ctx.obj)
        desk = manager.get_desk(desk_id)
        bookings = manager.list_bookings(desk_id)
    except SeatlyError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not bookings:
        console.print(f"[yellow]No bookings for {desk.name}.[/yellow]")
        return

    _print_bookings(bookings, title=f"Bookings of {desk.name}")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]seatly[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
