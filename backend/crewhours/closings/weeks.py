"""ISO-8601 calendar week helpers (weeks start on Monday)."""

from datetime import date, timedelta
from typing import NamedTuple

from crewhours.core.exceptions import ValidationError


class IsoWeek(NamedTuple):
    week: int
    year: int

    def __str__(self) -> str:
        return f"KW {self.week}/{self.year}"


def iso_week_of(day: date) -> IsoWeek:
    """The (ISO week, ISO year) pair a calendar date belongs to.

    The ISO year can differ from ``day.year`` around New Year, e.g.
    2024-12-30 is in week 1 of 2025.
    """
    iso = day.isocalendar()
    return IsoWeek(week=iso[1], year=iso[0])


def week_bounds(week: int, year: int) -> tuple[date, date]:
    """Monday and Sunday of ISO week *week* of ISO year *year*."""
    try:
        monday = date.fromisocalendar(year, week, 1)
    except ValueError:
        raise ValidationError(f"Year {year} has no calendar week {week}.") from None
    return monday, monday + timedelta(days=6)


def is_date_in_week(day: date, week: int, year: int) -> bool:
    return iso_week_of(day) == (week, year)
