"""Calendar periods (month / year) used for filtering entries"""
from datetime import date

from hourbook.errors import ValidationError

MIN_YEAR = 2020
MAX_YEAR = 2100


def validate_period(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Invalid year: {year}")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """
    First day of the month and first day of the next month (half-open range).

    Example:
        >>> month_bounds(2025, 12)
        (datetime.date(2025, 12, 1), datetime.date(2026, 1, 1))
    """
    start = date(year, month, 1)
    if month == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, month + 1, 1)


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year + 1, 1, 1)
