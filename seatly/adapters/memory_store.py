"""
In-memory desk and booking stores.

Used by the tests and as the working set behind the JSON file store.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional

from pendulum import DateTime

from ..domain.models import Booking, Desk

logger = logging.getLogger(__name__)


class InMemoryDeskStore:
    """Dict-backed desk store with sequential integer ids."""

    def __init__(self, desks: Iterable[Desk] = ()):
        self._desks: Dict[int, Desk] = {}
        self._next_id = 1
        self._guard = threading.Lock()

        for desk in desks:
            self.save(desk)

    def save(self, desk: Desk) -> Desk:
        with self._guard:
            if desk.id is None:
                desk = replace(desk, id=self._next_id)
            self._next_id = max(self._next_id, desk.id + 1)
            self._desks[desk.id] = desk
            return desk

    def find_all(self) -> List[Desk]:
        with self._guard:
            return sorted(self._desks.values(), key=lambda d: d.id)

    def find_by_id(self, desk_id: int) -> Optional[Desk]:
        with self._guard:
            return self._desks.get(desk_id)


class InMemoryBookingStore:
    """
    Dict-backed booking store.

    Each desk has its own re-entrant lock. ``transaction`` holds it for the
    whole check-then-insert sequence, so two requests for the same desk
    cannot both pass the overlap check. Bookings saved inside a transaction
    that raises are removed again.
    """

    def __init__(self, bookings: Iterable[Booking] = ()):
        self._bookings: Dict[int, Booking] = {}
        self._next_id = 1
        self._guard = threading.Lock()
        self._desk_locks: Dict[int, threading.RLock] = {}

        for booking in bookings:
            self.save(booking)

    def _lock_for(self, desk_id: int) -> threading.RLock:
        with self._guard:
            return self._desk_locks.setdefault(desk_id, threading.RLock())

    @contextmanager
    def transaction(self, desk_id: int) -> Iterator[None]:
        with self._lock_for(desk_id):
            existing_ids = {booking.id for booking in self.find_by_desk(desk_id)}
            try:
                yield
            except Exception:
                self._discard_new(desk_id, existing_ids)
                raise

    def _discard_new(self, desk_id: int, keep_ids: set) -> None:
        with self._guard:
            stale = [
                booking_id
                for booking_id, booking in self._bookings.items()
                if booking.desk_id == desk_id and booking_id not in keep_ids
            ]
            for booking_id in stale:
                del self._bookings[booking_id]

        if stale:
            logger.warning("Rolled back %d booking(s) on desk %s", len(stale), desk_id)

    def save(self, booking: Booking) -> Booking:
        with self._guard:
            if booking.id is None:
                booking = replace(booking, id=self._next_id)
            self._next_id = max(self._next_id, booking.id + 1)
            self._bookings[booking.id] = booking
            return booking

    def find_by_desk(self, desk_id: int) -> List[Booking]:
        with self._guard:
            bookings = [b for b in self._bookings.values() if b.desk_id == desk_id]
        return sorted(bookings, key=lambda b: (b.start_at, b.id))

    def _overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> List[Booking]:
        with self._guard:
            bookings = [
                b for b in self._bookings.values()
                if b.desk_id == desk_id and b.start_at < end_at and b.end_at > start_at
            ]
        return sorted(bookings, key=lambda b: (b.start_at, b.id))

    def find_overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> List[Booking]:
        return self._overlapping(desk_id, start_at, end_at)

    def exists_overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> bool:
        return bool(self._overlapping(desk_id, start_at, end_at))

    def find_all(self) -> List[Booking]:
        with self._guard:
            return sorted(self._bookings.values(), key=lambda b: b.id)
