"""Worked-hours calculation for a single day's performance record.

Times are wall-clock values on the same calendar day. There is no overnight
shift handling: an end time before the start time is rejected.
"""

from __future__ import annotations

from datetime import time
from typing import Union

from crewhours.core.exceptions import NegativeHoursError, ValidationError

ClockValue = Union[str, time, None]

MAX_DAILY_HOURS = 24.0


def to_minutes(value: str | time) -> int:
    """Minutes since midnight for ``"HH:MM"``, ``"HH:MM:SS"`` or a ``time``."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    try:
        parts = value.split(":")
        hours, minutes = int(parts[0]), int(parts[1])
    except (AttributeError, IndexError, ValueError):
        raise ValidationError(f"Invalid time value: {value!r}") from None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError(f"Invalid time value: {value!r}")
    return hours * 60 + minutes


def break_minutes(start: ClockValue, end: ClockValue) -> int:
    """Length of one break; 0 when either bound is missing or the span is inverted."""
    if start in (None, "") or end in (None, ""):
        return 0
    return max(0, to_minutes(end) - to_minutes(start))


def worked_minutes(
    time_from: str | time,
    time_to: str | time,
    break1: tuple[ClockValue, ClockValue] = (None, None),
    break2: tuple[ClockValue, ClockValue] = (None, None),
) -> int:
    return (
        to_minutes(time_to)
        - to_minutes(time_from)
        - break_minutes(*break1)
        - break_minutes(*break2)
    )


def calculate_hours(
    time_from: str | time,
    time_to: str | time,
    break1: tuple[ClockValue, ClockValue] = (None, None),
    break2: tuple[ClockValue, ClockValue] = (None, None),
) -> float:
    """Return worked hours rounded to two decimals.

    >>> calculate_hours("07:00", "16:00", ("12:00", "12:30"))
    8.5

    Raises NegativeHoursError when the breaks and end time leave less than
    zero worked minutes.
    """
    minutes = worked_minutes(time_from, time_to, break1, break2)
    if minutes < 0:
        raise NegativeHoursError(minutes)
    return round(minutes / 60, 2)


def resolve_total_hours(
    times: dict,
    manual_hours: float | None,
    *,
    previous_hours: float | None = None,
    was_overridden: bool = False,
    times_changed: bool = True,
) -> tuple[float, bool]:
    """Decide the stored hours and override flag after a create or update.

    *times* holds ``time_from``, ``time_to``, ``break_start``, ``break_end``,
    ``break2_start`` and ``break2_end``. A manual value always wins and sets the
    override flag. Without one, an existing override survives until a time
    field changes; then the hours are recalculated and the flag is cleared.
    """
    if manual_hours is not None:
        return round(manual_hours, 2), True

    if was_overridden and not times_changed and previous_hours is not None:
        return previous_hours, True

    hours = calculate_hours(
        times["time_from"],
        times["time_to"],
        (times.get("break_start"), times.get("break_end")),
        (times.get("break2_start"), times.get("break2_end")),
    )
    return hours, False


def check_saveable_hours(hours: float) -> None:
    """Records are only persisted with a positive day total of at most 24 h."""
    if hours <= 0:
        raise ValidationError("Worked hours must be greater than 0.")
    if hours > MAX_DAILY_HOURS:
        raise ValidationError("At most 24 hours can be recorded per day.")
