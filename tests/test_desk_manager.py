"""
Tests for the DeskManager orchestration layer.
"""

from contextlib import contextmanager
from typing import List

import pendulum
import pytest

from seatly.adapters.memory_store import InMemoryBookingStore, InMemoryDeskStore
from seatly.domain.exceptions import DeskNotFoundError, InvalidRangeError, SlotUnavailableError
from seatly.domain.models import (
    AvailabilityStatus,
    Booking,
    CreateBookingCommand,
    CreateDeskCommand,
    CreateRecurringBookingCommand,
)
from seatly.services.desk_manager import DeskManager


class RecordingBookingStore(InMemoryBookingStore):
    """In-memory store that records which calls the service makes."""

    def __init__(self, bookings=()):
        self.calls: List[str] = []
        super().__init__(bookings)
        self.calls.clear()

    def find_overlapping(self, desk_id, start_at, end_at):
        self.calls.append("find_overlapping")
        return super().find_overlapping(desk_id, start_at, end_at)

    def exists_overlapping(self, desk_id, start_at, end_at):
        self.calls.append("exists_overlapping")
        return super().exists_overlapping(desk_id, start_at, end_at)

    def save(self, booking):
        self.calls.append("save")
        return super().save(booking)

    @contextmanager
    def transaction(self, desk_id):
        self.calls.append("begin")
        with super().transaction(desk_id):
            yield
        self.calls.append("commit")


def _build_manager(bookings=()):
    store = RecordingBookingStore(bookings)
    manager = DeskManager(desk_store=InMemoryDeskStore(), booking_store=store)
    return manager, store


def _existing(start, end, desk_id=1):
    return Booking(desk_id=desk_id, user_id=99, start_at=start, end_at=end)


class TestDesks:
    """Desk creation and listing."""

    def test_create_two_desks_and_list_them(self):
        manager, _ = _build_manager()

        desk1 = manager.create_desk(CreateDeskCommand(name="Desk 1", location="Floor 1, Zone A"))
        desk2 = manager.create_desk(CreateDeskCommand(name="Desk 2", location="Floor 2, Zone B"))

        assert desk1.id != desk2.id
        desks = manager.list_desks()
        assert [d.name for d in desks] == ["Desk 1", "Desk 2"]
        assert [d.location for d in desks] == ["Floor 1, Zone A", "Floor 2, Zone B"]

    def test_location_is_optional(self):
        manager, _ = _build_manager()

        desk = manager.create_desk(CreateDeskCommand(name="Hot desk"))

        assert desk.location is None
        assert manager.get_desk(desk.id) == desk

    def test_blank_name_is_rejected(self):
        manager, _ = _build_manager()

        with pytest.raises(ValueError):
            manager.create_desk(CreateDeskCommand(name="   "))

    def test_unknown_desk_raises(self):
        manager, _ = _build_manager()

        with pytest.raises(DeskNotFoundError):
            manager.get_desk(42)


class TestListAvailability:
    """Availability queries."""

    def test_window_rounds_up_to_next_half_hour(self):
        """09:00-09:45 yields the 09:00 and 09:30 slots, both available."""
        manager, _ = _build_manager()

        slots = manager.list_availability(
            1,
            pendulum.naive(2024, 1, 1, 9, 0),
            pendulum.naive(2024, 1, 1, 9, 45),
        )

        assert [(s.start_at, s.end_at) for s in slots] == [
            (pendulum.naive(2024, 1, 1, 9, 0), pendulum.naive(2024, 1, 1, 9, 30)),
            (pendulum.naive(2024, 1, 1, 9, 30), pendulum.naive(2024, 1, 1, 10, 0)),
        ]
        assert all(s.status is AvailabilityStatus.AVAILABLE for s in slots)

    def test_existing_booking_is_reported(self):
        manager, _ = _build_manager(
            [_existing(pendulum.naive(2024, 1, 1, 10, 0), pendulum.naive(2024, 1, 1, 10, 30))]
        )

        slots = manager.list_availability(
            1,
            pendulum.naive(2024, 1, 1, 9, 0),
            pendulum.naive(2024, 1, 1, 11, 0),
        )

        assert len(slots) == 4
        booked = [s for s in slots if s.status is AvailabilityStatus.BOOKED]
        assert len(booked) == 1
        assert booked[0].start_at == pendulum.naive(2024, 1, 1, 10, 0)
        assert booked[0].end_at == pendulum.naive(2024, 1, 1, 10, 30)

    def test_bookings_on_other_desks_are_ignored(self):
        manager, _ = _build_manager(
            [_existing(pendulum.naive(2024, 1, 1, 9, 0), pendulum.naive(2024, 1, 1, 11, 0), desk_id=2)]
        )

        slots = manager.list_availability(
            1,
            pendulum.naive(2024, 1, 1, 9, 0),
            pendulum.naive(2024, 1, 1, 11, 0),
        )

        assert all(s.is_available for s in slots)

    def test_reversed_range_fails_before_query(self):
        manager, store = _build_manager()

        with pytest.raises(InvalidRangeError):
            manager.list_availability(
                1,
                pendulum.naive(2024, 1, 1, 11, 0),
                pendulum.naive(2024, 1, 1, 9, 0),
            )

        assert store.calls == []

    def test_collapsed_window_returns_empty_without_query(self):
        manager, store = _build_manager()
        moment = pendulum.naive(2024, 1, 1, 9, 30)

        assert manager.list_availability(1, moment, moment) == []
        assert store.calls == []

    def test_is_read_only(self):
        manager, store = _build_manager()

        manager.list_availability(
            1,
            pendulum.naive(2024, 1, 1, 9, 0),
            pendulum.naive(2024, 1, 1, 17, 0),
        )

        assert store.calls == ["find_overlapping"]


class TestCreateBooking:
    """Single bookings."""

    def test_booking_is_truncated_to_minute(self):
        manager, _ = _build_manager()

        booking = manager.create_booking(
            CreateBookingCommand(
                desk_id=1,
                user_id=5,
                start_at=pendulum.naive(2024, 1, 1, 10, 0, 42, 500),
                end_at=pendulum.naive(2024, 1, 1, 11, 0, 12),
            )
        )

        assert booking.id is not None
        assert booking.desk_id == 1
        assert booking.user_id == 5
        assert booking.start_at == pendulum.naive(2024, 1, 1, 10, 0)
        assert booking.end_at == pendulum.naive(2024, 1, 1, 11, 0)

    def test_overlapping_booking_is_rejected(self):
        """10:00-10:30 collides with an existing 10:15-10:45 booking."""
        manager, store = _build_manager(
            [_existing(pendulum.naive(2024, 1, 1, 10, 15), pendulum.naive(2024, 1, 1, 10, 45))]
        )

        with pytest.raises(SlotUnavailableError, match="unavailable") as exc_info:
            manager.create_booking(
                CreateBookingCommand(
                    desk_id=1,
                    user_id=5,
                    start_at=pendulum.naive(2024, 1, 1, 10, 0),
                    end_at=pendulum.naive(2024, 1, 1, 10, 30),
                )
            )

        assert exc_info.value.conflict.start == pendulum.naive(2024, 1, 1, 10, 0)
        assert "save" not in store.calls
        assert len(manager.list_bookings(1)) == 1

    def test_rejection_is_repeatable(self):
        manager, _ = _build_manager()
        command = CreateBookingCommand(
            desk_id=1,
            user_id=5,
            start_at=pendulum.naive(2024, 1, 1, 10, 0),
            end_at=pendulum.naive(2024, 1, 1, 10, 30),
        )
        manager.create_booking(command)

        for _ in range(2):
            with pytest.raises(SlotUnavailableError):
                manager.create_booking(command)

        assert len(manager.list_bookings(1)) == 1

    def test_adjacent_bookings_both_succeed(self):
        manager, _ = _build_manager()

        first = manager.create_booking(
            CreateBookingCommand(1, 5, pendulum.naive(2024, 1, 1, 10, 0), pendulum.naive(2024, 1, 1, 10, 30))
        )
        second = manager.create_booking(
            CreateBookingCommand(1, 6, pendulum.naive(2024, 1, 1, 10, 30), pendulum.naive(2024, 1, 1, 11, 0))
        )

        assert first.id != second.id
        assert manager.list_bookings(1) == [first, second]

    def test_same_time_on_other_desk_succeeds(self):
        manager, _ = _build_manager(
            [_existing(pendulum.naive(2024, 1, 1, 10, 0), pendulum.naive(2024, 1, 1, 11, 0), desk_id=2)]
        )

        booking = manager.create_booking(
            CreateBookingCommand(1, 5, pendulum.naive(2024, 1, 1, 10, 0), pendulum.naive(2024, 1, 1, 11, 0))
        )

        assert booking.desk_id == 1

    @pytest.mark.parametrize(
        "end_at",
        [pendulum.naive(2024, 1, 1, 10, 0), pendulum.naive(2024, 1, 1, 9, 59)],
    )
    def test_invalid_range_fails_before_query(self, end_at):
        manager, store = _build_manager()

        with pytest.raises(InvalidRangeError):
            manager.create_booking(CreateBookingCommand(1, 5, pendulum.naive(2024, 1, 1, 10, 0), end_at))

        assert store.calls == []

    def test_check_and_write_share_a_transaction(self):
        manager, store = _build_manager()

        manager.create_booking(
            CreateBookingCommand(1, 5, pendulum.naive(2024, 1, 1, 10, 0), pendulum.naive(2024, 1, 1, 10, 30))
        )

        assert store.calls == ["begin", "exists_overlapping", "save", "commit"]


class TestCreateRecurringBooking:
    """Weekly recurring bookings."""

    def test_creates_one_booking_per_week(self):
        manager, _ = _build_manager()
        start = pendulum.naive(2024, 1, 1, 14, 0)

        bookings = manager.create_recurring_booking(
            CreateRecurringBookingCommand(
                desk_id=1,
                user_id=5,
                start_at=start,
                end_at=start.add(minutes=30),
                recurrence_end_date=start.date().add(weeks=2),
            )
        )

        assert len(bookings) == 3
        assert [b.start_at for b in bookings] == [start, start.add(weeks=1), start.add(weeks=2)]
        for booking in bookings:
            assert booking.desk_id == 1
            assert booking.user_id == 5
            assert booking.start_at.day_of_week == pendulum.MONDAY
            assert booking.time_range.duration_minutes() == 30
        assert manager.list_bookings(1) == bookings

    def test_conflict_in_any_week_creates_nothing(self):
        """The third Monday is taken, so none of the three is booked."""
        manager, store = _build_manager(
            [_existing(pendulum.naive(2024, 1, 15, 14, 15), pendulum.naive(2024, 1, 15, 15, 0))]
        )

        with pytest.raises(SlotUnavailableError) as exc_info:
            manager.create_recurring_booking(
                CreateRecurringBookingCommand(
                    desk_id=1,
                    user_id=5,
                    start_at=pendulum.naive(2024, 1, 1, 14, 0),
                    end_at=pendulum.naive(2024, 1, 1, 14, 30),
                    recurrence_end_date=pendulum.date(2024, 1, 15),
                )
            )

        assert exc_info.value.conflict.start == pendulum.naive(2024, 1, 15, 14, 0)
        assert "save" not in store.calls
        assert len(manager.list_bookings(1)) == 1

    def test_validates_everything_before_writing(self):
        manager, store = _build_manager()

        manager.create_recurring_booking(
            CreateRecurringBookingCommand(
                desk_id=1,
                user_id=5,
                start_at=pendulum.naive(2024, 1, 1, 14, 0),
                end_at=pendulum.naive(2024, 1, 1, 14, 30),
                recurrence_end_date=pendulum.date(2024, 1, 8),
            )
        )

        assert store.calls == [
            "begin",
            "exists_overlapping",
            "exists_overlapping",
            "save",
            "save",
            "commit",
        ]

    def test_recurrence_end_before_start_fails_before_query(self):
        manager, store = _build_manager()

        with pytest.raises(InvalidRangeError):
            manager.create_recurring_booking(
                CreateRecurringBookingCommand(
                    desk_id=1,
                    user_id=5,
                    start_at=pendulum.naive(2024, 1, 8, 14, 0),
                    end_at=pendulum.naive(2024, 1, 8, 14, 30),
                    recurrence_end_date=pendulum.date(2024, 1, 1),
                )
            )

        assert store.calls == []


def test_storage_failure_propagates_and_rolls_back():
    """A failing write leaves no part of the series behind."""

    class FailingStore(InMemoryBookingStore):
        def __init__(self):
            super().__init__()
            self.saves = 0

        def save(self, booking):
            self.saves += 1
            if self.saves == 2:
                raise RuntimeError("disk full")
            return super().save(booking)

    store = FailingStore()
    manager = DeskManager(desk_store=InMemoryDeskStore(), booking_store=store)

    with pytest.raises(RuntimeError, match="disk full"):
        manager.create_recurring_booking(
            CreateRecurringBookingCommand(
                desk_id=1,
                user_id=5,
                start_at=pendulum.naive(2024, 1, 1, 14, 0),
                end_at=pendulum.naive(2024, 1, 1, 14, 30),
                recurrence_end_date=pendulum.date(2024, 1, 15),
            )
        )

    assert manager.list_bookings(1) == []
