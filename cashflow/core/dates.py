"""Calendar-period utilities: month/ISO-week bucketing and inclusive ranges."""
from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from cashflow.exceptions import InvalidRangeError


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return month_start(day) + relativedelta(months=1) - timedelta(days=1)


def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of short months."""
    return day + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end`` (day of month ignored)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def week_end(day: date) -> date:
    return week_start(day) + timedelta(days=6)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def iso_week_key(day: date) -> str:
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def days_between(start: date, end: date) -> int:
    """Signed calendar-day difference ``end - start``."""
    return (end - start).days


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``[start, end]`` calendar range."""
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise InvalidRangeError(self.start, self.end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return days_between(self.start, self.end) + 1
