"""
Core business logic for the half-hour availability grid.

Pure domain logic: the caller supplies the bookings, nothing here touches
a store.
"""

from typing import List, Optional, Sequence

from pendulum import DateTime

from .exceptions import InvalidRangeError
from .models import AvailabilitySlot, AvailabilityStatus, Booking, TimeRange
from .time_normalizer import (
    SLOT_MINUTES,
    round_down_to_half_hour,
    round_up_to_half_hour,
    truncate_to_minute,
)


class AvailabilityCalculator:
    """
    Builds the availability grid for one desk.

    Algorithm:
    1. Truncate the requested bounds to the minute
    2. Widen them outward to the half-hour grid
    3. Walk the window in fixed steps
    4. Mark each step BOOKED if any booking overlaps it
    """

    def resolve_window(self, start_at: DateTime, end_at: DateTime) -> Optional[TimeRange]:
        """
        Map a requested range onto the half-hour grid.

        Returns None when the rounded window is empty.

        Raises:
            InvalidRangeError: If end_at is before start_at
        """
        if end_at < start_at:
            raise InvalidRangeError("endAt must not be before startAt")

        window_start = round_down_to_half_hour(truncate_to_minute(start_at))
        window_end = round_up_to_half_hour(truncate_to_minute(end_at))

        if window_start >= window_end:
            return None

        return TimeRange(start=window_start, end=window_end)

    def build_slots(
        self,
        window: TimeRange,
        bookings: Sequence[Booking]
    ) -> List[AvailabilitySlot]:
        """
        Split ``window`` into consecutive slots and tag each one.

        Args:
            window: Grid-aligned window, as returned by ``resolve_window``
            bookings: Bookings of the desk; ones outside the window are ignored

        Returns:
            Slots in ascending order with no gaps or overlaps
        """
        slots: List[AvailabilitySlot] = []
        slot_start = window.start

        while slot_start < window.end:
            slot = TimeRange(start=slot_start, end=slot_start.add(minutes=SLOT_MINUTES))

            is_booked = any(booking.overlaps(slot) for booking in bookings)
            status = AvailabilityStatus.BOOKED if is_booked else AvailabilityStatus.AVAILABLE

            slots.append(
                AvailabilitySlot(start_at=slot.start, end_at=slot.end, status=status)
            )
            slot_start = slot.end

        return slots
