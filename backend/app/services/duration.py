"""Leave duration rules.

A leave's ``leave_type`` is resolved into one of three span types, each owning
the fields that only make sense for it and the day-equivalent it charges
against the annual allowance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from app.exceptions import ValidationFailed
from app.models.enums import HalfDaySession, LeaveType

if TYPE_CHECKING:
    from datetime import date

HOURS_PER_WORK_DAY = 8
HALF_DAY_DURATION = 0.5
SHORT_LEAVE_DURATION = 0.25
FULL_DAY_MIN_DURATION = 1
SHORT_LEAVE_MAX_HOURS = 2
SHORT_LEAVE_MAX_MINUTES = 120
SHORT_LEAVE_STEP_MINUTES = 30
_HOURS_TOLERANCE = 0.001


@dataclass(frozen=True)
class FullDaySpan:
    """One or more whole days."""

    leave_type: ClassVar[LeaveType] = LeaveType.FULL

    days: float

    @property
    def duration_days(self) -> float:
        return self.days


@dataclass(frozen=True)
class ShortLeaveSpan:
    """An absence of at most two hours inside a single day."""

    leave_type: ClassVar[LeaveType] = LeaveType.SHORT

    start_time: str
    end_time: str
    hours: float

    @property
    def duration_days(self) -> float:
        return SHORT_LEAVE_DURATION


@dataclass(frozen=True)
class HalfDaySpan:
    leave_type: ClassVar[LeaveType] = LeaveType.HALF

    session: HalfDaySession

    @property
    def duration_days(self) -> float:
        return HALF_DAY_DURATION


LeaveSpan = FullDaySpan | ShortLeaveSpan | HalfDaySpan


def parse_time_to_minutes(value: str | None) -> int | None:
    """Parse ``HH:MM`` into minutes after midnight. Returns None when malformed."""
    if not value or not isinstance(value, str):
        return None
    parts = value.split(":")
    if len(parts) < 2:
        return None
    hour_str, minute_str = parts[0].strip(), parts[1].strip()
    if not hour_str.isdigit() or not minute_str.isdigit():
        return None
    hours, minutes = int(hour_str), int(minute_str)
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def round_to_half_hour(hours: float) -> float:
    """Round to the nearest 0.5, halves rounding up."""
    return math.floor(hours * 2 + 0.5) / 2


def inclusive_day_count(from_date: date, to_date: date) -> int:
    return (to_date - from_date).days + 1


def resolve_full_day(from_date: date, to_date: date, duration_days: float | None) -> FullDaySpan:
    if duration_days is None:
        return FullDaySpan(days=inclusive_day_count(from_date, to_date))
    if not math.isfinite(duration_days) or duration_days < FULL_DAY_MIN_DURATION:
        raise ValidationFailed("duration_days must be at least 1 for a full-day leave")
    return FullDaySpan(days=duration_days)


def resolve_short_leave(duration_hours: float | None, start_time: str | None, end_time: str | None) -> ShortLeaveSpan:
    """Validate a short-leave window against the declared hours."""
    if duration_hours is None:
        raise ValidationFailed("Duration hours are required for short leave")
    if duration_hours > SHORT_LEAVE_MAX_HOURS:
        raise ValidationFailed("Short leave duration cannot exceed 2 hours")

    start = (start_time or "").strip()
    end = (end_time or "").strip()
    if not start or not end:
        raise ValidationFailed("Start and end times are required for short leave")

    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if start_minutes is None or end_minutes is None:
        raise ValidationFailed("Invalid short leave time format")
    if end_minutes <= start_minutes:
        raise ValidationFailed("Short leave end time must be after start time")

    gap = end_minutes - start_minutes
    if gap % SHORT_LEAVE_STEP_MINUTES != 0:
        raise ValidationFailed("Short leave must use 30-minute increments")
    if gap > SHORT_LEAVE_MAX_MINUTES:
        raise ValidationFailed("Short leave duration cannot exceed 2 hours of absence")

    window_hours = round_to_half_hour(gap / 60)
    if abs(window_hours - round_to_half_hour(duration_hours)) > _HOURS_TOLERANCE:
        raise ValidationFailed("Short leave hours must match the selected range")

    return ShortLeaveSpan(start_time=start, end_time=end, hours=window_hours)


def resolve_half_day(session: str | None) -> HalfDaySpan:
    if not session:
        raise ValidationFailed("Half-day session selection is required")
    try:
        return HalfDaySpan(session=HalfDaySession(session))
    except ValueError:
        raise ValidationFailed("Invalid half-day session provided") from None


def resolve_leave_span(
    leave_type: LeaveType,
    from_date: date,
    to_date: date,
    *,
    duration_days: float | None = None,
    duration_hours: float | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    half_day_session: str | None = None,
) -> LeaveSpan:
    """Build the span for a leave type, raising ValidationFailed on the first rule broken."""
    match leave_type:
        case LeaveType.FULL:
            return resolve_full_day(from_date, to_date, duration_days)
        case LeaveType.SHORT:
            return resolve_short_leave(duration_hours, start_time, end_time)
        case LeaveType.HALF:
            return resolve_half_day(half_day_session)
    raise ValidationFailed(f"Unsupported leave type: {leave_type}")


def charged_days(duration_days: float | None, duration_hours: float | None) -> float:
    """Day-equivalent a stored leave charges against the allowance.

    Falls back to hours over an eight-hour day, then to a single day, for
    records written without a day figure.
    """
    if duration_days is not None and math.isfinite(duration_days) and duration_days >= 0:
        return duration_days
    if duration_hours is not None and math.isfinite(duration_hours) and duration_hours >= 0:
        return math.floor(duration_hours / HOURS_PER_WORK_DAY * 100 + 0.5) / 100
    return 1
