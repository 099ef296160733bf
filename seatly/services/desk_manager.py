"""
Application service for desks, availability and bookings.

The service coordinates the desk and booking stores and delegates the grid
and recurrence computations to the domain layer. Stores are injected through
simple protocols, so the in-memory adapter, the JSON file adapter or a test
stub can be plugged in without touching the booking rules.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import ContextManager, List, Optional, Protocol

from pendulum import DateTime

from ..domain.availability import AvailabilityCalculator
from ..domain.exceptions import DeskNotFoundError, InvalidRangeError, SlotUnavailableError
from ..domain.models import (
    AvailabilitySlot,
    Booking,
    CreateBookingCommand,
    CreateDeskCommand,
    CreateRecurringBookingCommand,
    Desk,
    TimeRange,
)
from ..domain.recurrence import expand_weekly_occurrences
from ..domain.time_normalizer import truncate_to_minute

logger = logging.getLogger(__name__)


class DeskStoreProtocol(Protocol):
    """Protocol describing the desk persistence needed by the service."""

    def save(self, desk: Desk) -> Desk:
        """Persist a desk and return it with its assigned id."""

    def find_all(self) -> List[Desk]:
        """Return every desk in creation order."""

    def find_by_id(self, desk_id: int) -> Optional[Desk]:
        """Return the desk with ``desk_id`` or None."""


class BookingStoreProtocol(Protocol):
    """Protocol describing the booking persistence needed by the service."""

    def save(self, booking: Booking) -> Booking:
        """Persist a booking and return it with its assigned id."""

    def find_overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> List[Booking]:
        """Return bookings of ``desk_id`` overlapping ``[start_at, end_at)``, sorted by start."""

    def exists_overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> bool:
        """Return whether any booking of ``desk_id`` overlaps ``[start_at, end_at)``."""

    def find_by_desk(self, desk_id: int) -> List[Booking]:
        """Return every booking of ``desk_id``, sorted by start."""

    def transaction(self, desk_id: int) -> ContextManager[None]:
        """
        Give the caller exclusive access to ``desk_id`` bookings.

        Saves made inside the block must be discarded if the block raises.
        """


class DeskManager:
    """
    Orchestrates desk creation, availability queries and booking validation.

    Every operation recomputes from the stores' current data; nothing is
    cached between calls.
    """

    def __init__(
        self,
        desk_store: DeskStoreProtocol,
        booking_store: BookingStoreProtocol,
        calculator: Optional[AvailabilityCalculator] = None,
    ) -> None:
        self._desks = desk_store
        self._bookings = booking_store
        self._calculator = calculator or AvailabilityCalculator()

    def create_desk(self, command: CreateDeskCommand) -> Desk:
        name = command.name.strip() if command.name else ""
        if not name:
            raise ValueError("Desk name must not be blank")

        desk = self._desks.save(Desk(name=name, location=command.location))
        logger.info("Created desk %s (%s)", desk.id, desk.name)
        return desk

    def list_desks(self) -> List[Desk]:
        return self._desks.find_all()

    def get_desk(self, desk_id: int) -> Desk:
        desk = self._desks.find_by_id(desk_id)
        if desk is None:
            raise DeskNotFoundError(desk_id)
        return desk

    def list_bookings(self, desk_id: int) -> List[Booking]:
        return self._bookings.find_by_desk(desk_id)

    def list_availability(
        self,
        desk_id: int,
        start_at: datetime,
        end_at: datetime,
    ) -> List[AvailabilitySlot]:
        """
        Report the half-hour grid covering ``[start_at, end_at)`` for a desk.

        The window is widened to the enclosing half hours, so a request for
        09:10-09:45 yields the 09:00 and 09:30 slots.

        Raises:
            InvalidRangeError: If end_at is before start_at
        """
        window = self._calculator.resolve_window(start_at, end_at)
        if window is None:
            return []

        bookings = self._bookings.find_overlapping(desk_id, window.start, window.end)
        return self._calculator.build_slots(window, bookings)

    def create_booking(self, command: CreateBookingCommand) -> Booking:
        """
        Book a desk for a single interval.

        Raises:
            InvalidRangeError: If start_at is not before end_at
            SlotUnavailableError: If the interval overlaps an existing booking
        """
        if not command.start_at < command.end_at:
            raise InvalidRangeError("startAt must be before endAt")

        requested = TimeRange(
            start=truncate_to_minute(command.start_at),
            end=truncate_to_minute(command.end_at),
        )

        with self._bookings.transaction(command.desk_id):
            self._ensure_free(command.desk_id, requested)
            booking = self._bookings.save(
                Booking(
                    desk_id=command.desk_id,
                    user_id=command.user_id,
                    start_at=requested.start,
                    end_at=requested.end,
                )
            )

        logger.info("Created booking %s on desk %s: %s", booking.id, booking.desk_id, requested)
        return booking

    def create_recurring_booking(self, command: CreateRecurringBookingCommand) -> List[Booking]:
        """
        Book the same weekday and time every week through ``recurrence_end_date``.

        All occurrences are validated before the first one is saved, so the
        caller gets either the complete series or nothing.

        Raises:
            InvalidRangeError: If the range is invalid or the recurrence ends
                before the start date
            SlotUnavailableError: If any occurrence overlaps an existing booking
        """
        occurrences = expand_weekly_occurrences(
            start_at=command.start_at,
            end_at=command.end_at,
            recurrence_end_date=command.recurrence_end_date,
        )

        with self._bookings.transaction(command.desk_id):
            for occurrence in occurrences:
                self._ensure_free(command.desk_id, occurrence)

            created = [
                self._bookings.save(
                    Booking(
                        desk_id=command.desk_id,
                        user_id=command.user_id,
                        start_at=occurrence.start,
                        end_at=occurrence.end,
                    )
                )
                for occurrence in occurrences
            ]

        logger.info(
            "Created %d recurring bookings on desk %s through %s",
            len(created),
            command.desk_id,
            command.recurrence_end_date,
        )
        return created

    def _ensure_free(self, desk_id: int, requested: TimeRange) -> None:
        if self._bookings.exists_overlapping(desk_id, requested.start, requested.end):
            logger.warning("Rejected booking on desk %s: %s overlaps an existing booking", desk_id, requested)
            raise SlotUnavailableError(requested)
