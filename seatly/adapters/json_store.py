"""
JSON file backed stores for desks and bookings.

Every access runs in a session that holds an OS-level lock on the data file
and reloads the document from disk, so separate processes sharing one file
see each other's writes and never interleave a check with a write. The
document is rewritten once, when the outermost session that changed
something commits.
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, ContextManager, Dict, Iterator, List, Optional

import pendulum
from filelock import FileLock, Timeout
from pendulum import DateTime

from ..domain.exceptions import StorageError
from ..domain.models import Booking, Desk
from .memory_store import InMemoryBookingStore, InMemoryDeskStore

logger = logging.getLogger(__name__)


def _parse_timestamp(value: str) -> DateTime:
    return pendulum.parse(value, tz=None)


class JsonFileStore:
    """
    Owner of the JSON document. Exposes ``desks`` and ``bookings`` facades
    satisfying the service protocols.

    Document layout::

        {"desks": [{"id", "name", "location"}],
         "bookings": [{"id", "deskId", "userId", "startAt", "endAt"}]}
    """

    def __init__(self, path: Path, lock_timeout: float = 10.0):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._file_lock = FileLock(str(self.path.with_name(self.path.name + ".lock")), timeout=lock_timeout)
        self._depth = 0
        self._dirty = False
        self._desks = InMemoryDeskStore()
        self._bookings = InMemoryBookingStore()

        self.desks = JsonDeskStore(self)
        self.bookings = JsonBookingStore(self)

        # Fail fast on an unreadable document
        with self.session():
            pass

    @contextmanager
    def session(self) -> Iterator[None]:
        """
        Hold the store exclusively, across threads and processes.

        The outermost session reloads the document on entry and writes it on
        exit if anything was saved. A session that raises writes nothing.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise StorageError(f"Timed out waiting for lock on {self.path}") from exc

            try:
                self._load()
                self._depth = 1
                try:
                    yield
                finally:
                    self._depth = 0
                if self._dirty:
                    self._flush()
            finally:
                self._dirty = False
                self._file_lock.release()

    def mark_dirty(self) -> None:
        self._dirty = True

    def _load(self) -> None:
        if not self.path.exists():
            self._desks = InMemoryDeskStore()
            self._bookings = InMemoryBookingStore()
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not read {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StorageError(f"Malformed data in {self.path}: root must be an object")

        try:
            desks = [
                Desk(id=int(item["id"]), name=item["name"], location=item.get("location"))
                for item in data.get("desks", [])
            ]
            bookings = [
                Booking(
                    id=int(item["id"]),
                    desk_id=int(item["deskId"]),
                    user_id=int(item["userId"]),
                    start_at=_parse_timestamp(item["startAt"]),
                    end_at=_parse_timestamp(item["endAt"]),
                )
                for item in data.get("bookings", [])
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed data in {self.path}: {exc}") from exc

        self._desks = InMemoryDeskStore(desks)
        self._bookings = InMemoryBookingStore(bookings)
        logger.debug("Loaded %d desk(s) and %d booking(s) from %s", len(desks), len(bookings), self.path)

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "desks": [desk.to_dict() for desk in self._desks.find_all()],
            "bookings": [booking.to_dict() for booking in self._bookings.find_all()],
        }

    def _flush(self) -> None:
        """Atomically rewrite the JSON document."""
        document = self._snapshot()
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Could not write {self.path}: {exc}") from exc

        logger.debug("Wrote %s", self.path)


class JsonDeskStore:
    def __init__(self, owner: JsonFileStore):
        self._owner = owner

    def save(self, desk: Desk) -> Desk:
        with self._owner.session():
            saved = self._owner._desks.save(desk)
            self._owner.mark_dirty()
            return saved

    def find_all(self) -> List[Desk]:
        with self._owner.session():
            return self._owner._desks.find_all()

    def find_by_id(self, desk_id: int) -> Optional[Desk]:
        with self._owner.session():
            return self._owner._desks.find_by_id(desk_id)


class JsonBookingStore:
    """
    Booking facade over the file session.

    ``transaction`` locks the whole file rather than one desk; the overlap
    check and the writes of a request see the document as it is on disk.
    """

    def __init__(self, owner: JsonFileStore):
        self._owner = owner

    def transaction(self, desk_id: int) -> ContextManager[None]:
        return self._owner.session()

    def save(self, booking: Booking) -> Booking:
        with self._owner.session():
            saved = self._owner._bookings.save(booking)
            self._owner.mark_dirty()
            return saved

    def find_by_desk(self, desk_id: int) -> List[Booking]:
        with self._owner.session():
            return self._owner._bookings.find_by_desk(desk_id)

    def find_overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> List[Booking]:
        with self._owner.session():
            return self._owner._bookings.find_overlapping(desk_id, start_at, end_at)

    def exists_overlapping(self, desk_id: int, start_at: DateTime, end_at: DateTime) -> bool:
        with self._owner.session():
            return self._owner._bookings.exists_overlapping(desk_id, start_at, end_at)

    def find_all(self) -> List[Booking]:
        with self._owner.session():
            return self._owner._bookings.find_all()
