"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityCalculator
from .exceptions import (
    DeskNotFoundError,
    InvalidRangeError,
    SeatlyError,
    SlotUnavailableError,
    StorageError,
)
from .models import (
    AvailabilitySlot,
    AvailabilityStatus,
    Booking,
    CreateBookingCommand,
    CreateDeskCommand,
    CreateRecurringBookingCommand,
    Desk,
    TimeRange,
)
from .recurrence import expand_weekly_occurrences

__all__ = [
    "AvailabilityCalculator",
    "AvailabilitySlot",
    "AvailabilityStatus",
    "Booking",
    "CreateBookingCommand",
    "CreateDeskCommand",
    "CreateRecurringBookingCommand",
    "Desk",
    "DeskNotFoundError",
    "InvalidRangeError",
    "SeatlyError",
    "SlotUnavailableError",
    "StorageError",
    "TimeRange",
    "expand_weekly_occurrences",
]
