"""Shared date and period utilities.

Dates travel through the engine as ISO ``YYYY-MM-DD`` strings. The fixed
width, zero-padded format makes plain string comparison equivalent to
calendar comparison, so most code compares strings directly and only parses
when it needs calendar arithmetic.

Examples:
    >>> month_dates(2025, 2)[-1]
    '2025-02-28'
    >>> period_key(2025, 3)
    '2025-03'

"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime

from settlement_core.exceptions import ConfigError, DataQualityError

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(s: str) -> date:
    """Parse a date string in YYYY-MM-DD format.

    Args:
        s: Date string in ISO format (YYYY-MM-DD).

    Returns:
        Parsed date object.

    Raises:
        DataQualityError: If the date string is not in YYYY-MM-DD format.

    Examples:
        >>> parse_date("2025-01-15")
        datetime.date(2025, 1, 15)

    """
    if not isinstance(s, str) or not ISO_DATE_RE.match(s):
        raise DataQualityError(f"Invalid date '{s}'. Expected YYYY-MM-DD.")
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError as e:
        raise DataQualityError(f"Invalid date '{s}': {e}") from e


def validate_period(year: int, month: int) -> None:
    """Reject malformed (year, month) period keys.

    Args:
        year: Four-digit calendar year.
        month: Month number, 1-12.

    Raises:
        ConfigError: If year is not an integer in 1900-9999 or month is not 1-12.

    """
    if isinstance(year, bool) or not isinstance(year, int) or not 1900 <= year <= 9999:
        raise ConfigError(f"Invalid year: {year!r}")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ConfigError(f"Invalid month: {month!r}. Must be 1-12.")


def period_key(year: int, month: int) -> str:
    """Return the ``YYYY-MM`` key for a month."""
    return f"{year}-{month:02d}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_dates(year: int, month: int) -> list[str]:
    """List every calendar day of a month as ISO strings, ascending."""
    return [f"{year}-{month:02d}-{day:02d}" for day in range(1, days_in_month(year, month) + 1)]


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last ISO date of a month."""
    dates = month_dates(year, month)
    return dates[0], dates[-1]


def date_in_window(target: str, start: str, end: str) -> bool:
    """Check whether ``target`` falls in the closed window ``[start, end]``."""
    return start <= target <= end


def windows_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Check whether two closed ISO date windows share at least one day.

    Examples:
        >>> windows_overlap("2025-01-01", "2025-01-10", "2025-01-10", "2025-01-20")
        True
        >>> windows_overlap("2025-01-01", "2025-01-09", "2025-01-10", "2025-01-20")
        False

    """
    return a_start <= b_end and b_start <= a_end
