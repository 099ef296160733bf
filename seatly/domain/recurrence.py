"""
Expansion of weekly recurring booking requests into concrete occurrences.
"""

from datetime import date
from typing import List

from pendulum import Date, DateTime

from .exceptions import InvalidRangeError
from .models import TimeRange
from .time_normalizer import truncate_to_minute

MAX_OCCURRENCE_DAYS = 7


def calculate_recurring_dates(start_date: Date, end_date: date, day_of_week) -> List[Date]:
    """
    Return every date from ``start_date`` through ``end_date`` inclusive
    falling on ``day_of_week``.
    """
    dates: List[Date] = []
    current = start_date

    while current <= end_date:
        if current.day_of_week == day_of_week:
            dates.append(current)
        current = current.add(days=1)

    return dates


def _at(day: Date, template: DateTime) -> DateTime:
    """Place the wall-clock time of ``template`` on ``day``."""
    return template.set(year=day.year, month=day.month, day=day.day)


def expand_weekly_occurrences(
    start_at: DateTime,
    end_at: DateTime,
    recurrence_end_date: date
) -> List[TimeRange]:
    """
    Build one occurrence per week from ``start_at`` until ``recurrence_end_date``.

    The weekday and time of day of the minute-truncated ``start_at`` define the
    pattern; every occurrence keeps the same duration. Occurrences are only
    ever checked against stored bookings, never against each other, so the
    duration must stay below one week.

    Raises:
        InvalidRangeError: If the range is empty or reversed, the recurrence
            ends before the first occurrence, or the duration spans a week
    """
    if not start_at < end_at:
        raise InvalidRangeError("startAt must be before endAt")

    if recurrence_end_date < start_at.date():
        raise InvalidRangeError("recurrenceEndDate must not be before startAt date")

    first = TimeRange(start=truncate_to_minute(start_at), end=truncate_to_minute(end_at))
    duration_minutes = first.duration_minutes()

    if duration_minutes >= MAX_OCCURRENCE_DAYS * 24 * 60:
        raise InvalidRangeError("Recurring bookings must be shorter than one week")

    first_date = first.start.date()
    dates = calculate_recurring_dates(
        start_date=first_date,
        end_date=recurrence_end_date,
        day_of_week=first_date.day_of_week,
    )

    occurrences: List[TimeRange] = []
    for day in dates:
        occurrence_start = _at(day, first.start)
        occurrences.append(
            TimeRange(start=occurrence_start, end=occurrence_start.add(minutes=duration_minutes))
        )

    return occurrences
