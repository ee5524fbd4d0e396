"""Duration calculation for time entries (scaled hours)"""
import re
from decimal import Decimal, InvalidOperation

from hourbook.domain.scaled import as_decimal, round_half_up, to_scaled
from hourbook.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time_of_day(value: str) -> int:
    """
    "HH:MM" (optionally "HH:MM:SS", seconds ignored) -> minutes since midnight.

    Raises:
        ValidationError: malformed or out-of-range value
    """
    match = _TIME_RE.match((value or "").strip())
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")
    return hours * 60 + minutes


def normalize_time_of_day(value: str) -> str:
    """Canonical "HH:MM" form of a time string."""
    minutes = parse_time_of_day(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_between(start_time: str, end_time: str) -> int:
    """Minutes from start to end; an end before the start means the work crossed midnight."""
    start = parse_time_of_day(start_time)
    end = parse_time_of_day(end_time)
    if end >= start:
        return end - start
    return (MINUTES_PER_DAY - start) + end


def compute_duration(
    manual_hours: Decimal | float | str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
) -> int:
    """
    Scaled duration from either manual hours or a start/end pair.

    Exactly one input shape is accepted: manual hours alone, or both start
    and end times. Anything else is rejected.

    Example:
        >>> compute_duration(start_time="09:00", end_time="10:30")
        150
        >>> compute_duration(start_time="23:00", end_time="01:00")
        200
        >>> compute_duration(manual_hours="0.33")
        33
    """
    has_manual = manual_hours is not None
    has_times = start_time is not None or end_time is not None

    if has_manual and has_times:
        raise ValidationError("Provide either manual hours or start/end times, not both")
    if not has_manual and not has_times:
        raise ValidationError("Either provide manual hours or both start and end time")

    if has_manual:
        if isinstance(manual_hours, str):
            manual_hours = manual_hours.strip().replace(",", ".")
        try:
            hours = as_decimal(manual_hours)
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"Invalid hours: {manual_hours!r}")
        if not hours.is_finite():
            raise ValidationError(f"Invalid hours: {manual_hours!r}")
        if hours < 0:
            raise ValidationError("Hours must not be negative")
        return to_scaled(hours)

    if start_time is None or end_time is None:
        raise ValidationError("Both start and end time are required")

    minutes = minutes_between(start_time, end_time)
    return round_half_up(Decimal(minutes) / 60 * 100)
