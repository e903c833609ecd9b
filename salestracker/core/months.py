"""Calendar month helpers.

Months are carried around as zero-padded ``"YYYY-MM"`` strings. Because the
format is fixed-width, plain string comparison orders them chronologically,
which is what the eligibility check relies on.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime

from .errors import InvalidMonthError

MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
DATE_PREFIX_PATTERN = re.compile(r"^\d{4}-\d{2}")


@dataclass(frozen=True)
class MonthOption:
    """A selectable month for the entry matrix."""

    value: str
    label: str


def format_month(year: int, month: int) -> str:
    """Format a year and month number as YYYY-MM."""
    return f"{year:04d}-{month:02d}"


def format_month_label(year: int, month: int) -> str:
    """Human readable label, e.g. 2024年3月."""
    return f"{year}年{month}月"


def is_valid_month(value: object) -> bool:
    return isinstance(value, str) and MONTH_PATTERN.match(value) is not None


def parse_month(value: str) -> tuple[int, int]:
    """Split a YYYY-MM string into (year, month)."""
    if not isinstance(value, str):
        raise InvalidMonthError(value)
    match = MONTH_PATTERN.match(value.strip())
    if not match:
        raise InvalidMonthError(value)
    return int(match.group(1)), int(match.group(2))


def current_month(today: date | None = None) -> str:
    today = today or date.today()
    return format_month(today.year, today.month)


def month_start(value: str) -> datetime:
    """Sale date recorded for a month: midnight on its first day."""
    year, month = parse_month(value)
    return datetime(year, month, 1)


def month_of(value: date | datetime | str | None) -> str | None:
    """Derive YYYY-MM from a date, datetime or ISO-like string.

    Returns None when nothing usable can be extracted.
    """
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return format_month(value.year, value.month)
    if isinstance(value, str) and DATE_PREFIX_PATTERN.match(value):
        candidate = value[:7]
        return candidate if is_valid_month(candidate) else None
    return None


def build_month_options(first_year: int = 2020, today: date | None = None) -> list[MonthOption]:
    """All months from January of first_year to the current month, newest first."""
    today = today or date.today()
    options: list[MonthOption] = []
    for year in range(first_year, today.year + 1):
        last_month = today.month if year == today.year else 12
        for month in range(1, last_month + 1):
            options.append(
                MonthOption(
                    value=format_month(year, month),
                    label=format_month_label(year, month),
                )
            )
    options.reverse()
    return options
