"""
Domain models for desks, bookings and availability slots.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pendulum import Date, DateTime

from .exceptions import InvalidRangeError


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidRangeError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"


@dataclass(frozen=True)
class Desk:
    """A bookable desk. ``id`` is assigned by the desk store on save."""
    name: str
    location: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "location": self.location}


@dataclass(frozen=True)
class Booking:
    """
    A reservation of one desk by one user.

    Timestamps are naive local date-times at minute precision; the interval
    is half-open, so a booking ending at 10:00 does not block 10:00.
    """
    desk_id: int
    user_id: int
    start_at: DateTime
    end_at: DateTime
    id: Optional[int] = None

    def __post_init__(self):
        if self.start_at >= self.end_at:
            raise InvalidRangeError(
                f"Booking start {self.start_at} must be before end {self.end_at}"
            )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_at, end=self.end_at)

    def overlaps(self, other: TimeRange) -> bool:
        return self.time_range.overlaps(other)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "deskId": self.desk_id,
            "userId": self.user_id,
            "startAt": self.start_at.isoformat(),
            "endAt": self.end_at.isoformat(),
        }


@dataclass(frozen=True)
class AvailabilitySlot:
    """
    One 30-minute cell of the availability grid.

    Derived on every query and never persisted.
    """
    start_at: DateTime
    end_at: DateTime
    status: AvailabilityStatus

    @property
    def is_available(self) -> bool:
        return self.status is AvailabilityStatus.AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startAt": self.start_at.isoformat(),
            "endAt": self.end_at.isoformat(),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class CreateDeskCommand:
    name: str
    location: Optional[str] = None


@dataclass(frozen=True)
class CreateBookingCommand:
    desk_id: int
    user_id: int
    start_at: DateTime
    end_at: DateTime


@dataclass(frozen=True)
class CreateRecurringBookingCommand:
    """Book the same weekday and time every week until ``recurrence_end_date``."""
    desk_id: int
    user_id: int
    start_at: DateTime
    end_at: DateTime
    recurrence_end_date: Date
