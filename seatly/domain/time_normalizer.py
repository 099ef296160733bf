"""
Canonical timestamp boundaries.

Bookings are stored at their literal requested time truncated to the minute.
Availability is always reported on a fixed half-hour grid, so query windows
are widened outward: the start rounded down, the end rounded up.
"""

from datetime import datetime

import pendulum
from pendulum import DateTime

SLOT_MINUTES = 30


def to_pendulum(value: datetime) -> DateTime:
    """
    Coerce a stdlib datetime to a pendulum DateTime without attaching a timezone.

    Naive values stay naive; seatly exchanges local wall-clock times.
    """
    if isinstance(value, DateTime):
        return value
    if value.tzinfo is not None:
        return pendulum.instance(value)
    return pendulum.naive(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
    )


def truncate_to_minute(value: datetime) -> DateTime:
    """Drop seconds and sub-second precision."""
    return to_pendulum(value).set(second=0, microsecond=0)


def round_down_to_half_hour(value: datetime) -> DateTime:
    """Snap to the half hour at or before ``value``."""
    dt = to_pendulum(value)
    minute = 0 if dt.minute < SLOT_MINUTES else SLOT_MINUTES
    return dt.set(minute=minute, second=0, microsecond=0)


def round_up_to_half_hour(value: datetime) -> DateTime:
    """
    Snap to the half hour at or after ``value``.

    A timestamp already exactly on :00 or :30 is returned unchanged.
    """
    dt = to_pendulum(value)
    on_boundary = dt.minute % SLOT_MINUTES == 0 and dt.second == 0 and dt.microsecond == 0
    if not on_boundary:
        dt = dt.add(minutes=SLOT_MINUTES - dt.minute % SLOT_MINUTES)
    minute = 0 if dt.minute < SLOT_MINUTES else SLOT_MINUTES
    return dt.set(minute=minute, second=0, microsecond=0)
