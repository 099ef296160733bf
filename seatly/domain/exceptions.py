"""
Domain-specific exception hierarchy for the seatly booking engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TimeRange


class SeatlyError(Exception):
    """Base class for all application-level errors."""


class InvalidRangeError(SeatlyError, ValueError):
    """Raised when a requested time range or recurrence end is malformed."""


class SlotUnavailableError(SeatlyError):
    """Raised when a requested interval overlaps an existing booking."""

    def __init__(self, conflict: "TimeRange | None" = None):
        super().__init__("Date and time selected is unavailable")
        self.conflict = conflict


class DeskNotFoundError(SeatlyError):
    """Raised when a desk id does not resolve to a stored desk."""

    def __init__(self, desk_id: int):
        super().__init__(f"Desk {desk_id} does not exist")
        self.desk_id = desk_id


class StorageError(SeatlyError):
    """Raised when a store adapter cannot read or write its backing data."""
