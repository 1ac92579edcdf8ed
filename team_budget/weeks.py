"""Active-week counting with holiday-week exclusion.

A week starts on Sunday 00:00 UTC.  Every instant handed to this module is
normalized to UTC first: naive datetimes are read as UTC, aware datetimes
are converted and plain dates mean midnight UTC.  Holiday weeks and the
weeks walked by :func:`count_active_weeks` are therefore compared on the
same footing.

Boundary rule: a week is counted while its Sunday start is *strictly*
before the end instant.  Consequences worth knowing:

* ``start == end`` on a Sunday midnight counts 0 weeks, while
  ``start == end`` in the middle of a week counts 1 (its Sunday precedes it).
* An end date that falls exactly on a Sunday does not count the week it opens.

Nothing here raises for missing or inverted ranges; they count 0 weeks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import FrozenSet, Iterable, List, Optional, Union

from .config import FIRST_DAY_OF_WEEK, get_holiday_week_dates

Instant = Union[date, datetime]

ONE_WEEK = timedelta(days=7)


def to_utc(value: Instant) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def beginning_of_week(value: Instant) -> datetime:
    """Return the Sunday 00:00 UTC that opens the week containing ``value``."""
    instant = to_utc(value)
    midnight = instant.replace(hour=0, minute=0, second=0, microsecond=0)
    days_back = (midnight.weekday() - FIRST_DAY_OF_WEEK) % 7
    return midnight - timedelta(days=days_back)


@dataclass(frozen=True)
class HolidayCalendar:
    """Immutable set of week starts excluded from active-week counts."""

    week_starts: FrozenSet[datetime] = frozenset()

    @classmethod
    def from_dates(cls, dates: Iterable[Instant]) -> "HolidayCalendar":
        """Build a calendar from any day inside each holiday week."""
        return cls(frozenset(beginning_of_week(d) for d in dates))

    def __contains__(self, week_start: object) -> bool:
        return week_start in self.week_starts

    def __len__(self) -> int:
        return len(self.week_starts)

    def is_holiday_week(self, value: Instant) -> bool:
        """True when the week containing ``value`` is a holiday week."""
        return beginning_of_week(value) in self.week_starts

    def weeks_between(self, start: Optional[Instant], end: Optional[Instant]) -> List[datetime]:
        """Holiday week starts skipped by :func:`count_active_weeks` for this range."""
        return [week for week in _week_starts(start, end) if week in self.week_starts]


DEFAULT_HOLIDAY_CALENDAR = HolidayCalendar.from_dates(get_holiday_week_dates())


def _week_starts(start: Optional[Instant], end: Optional[Instant]) -> List[datetime]:
    if start is None or end is None:
        return []
    start_utc = to_utc(start)
    end_utc = to_utc(end)
    if end_utc < start_utc:
        return []

    weeks: List[datetime] = []
    current = beginning_of_week(start_utc)
    while current < end_utc:
        weeks.append(current)
        current += ONE_WEEK
    return weeks


def count_active_weeks(
    start: Optional[Instant],
    end: Optional[Instant],
    holidays: HolidayCalendar = DEFAULT_HOLIDAY_CALENDAR,
) -> int:
    """Count the non-holiday weeks touched by ``[start, end)``.

    Args:
        start: First day of the period, or ``None``
        end: End of the period, or ``None``
        holidays: Week starts to exclude

    Returns:
        Number of active weeks; 0 when either bound is missing or ``end < start``

    Example:
        >>> count_active_weeks(date(2025, 9, 14), date(2025, 9, 28))
        2
    """
    return sum(1 for week in _week_starts(start, end) if week not in holidays)
