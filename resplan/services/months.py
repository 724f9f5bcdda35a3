"""Calendar helpers for month labels (``YYYY-MM``) and ISO weeks."""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

MONTH_LABEL_RE = re.compile(r"^(\d{4})-(\d{2})$")


def month_label(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def parse_month_label(label: str) -> date:
    """Return the first day of the month named by ``label``.

    Raises ``ValueError`` for anything that is not a valid ``YYYY-MM`` label.
    """

    match = MONTH_LABEL_RE.match(label.strip())
    if match is None:
        raise ValueError(f"Invalid month label {label!r}; expected YYYY-MM.")
    year, month = int(match.group(1)), int(match.group(2))
    if year < 1 or not 1 <= month <= 12:
        raise ValueError(f"Invalid month label {label!r}; expected YYYY-MM.")
    return date(year, month, 1)


def month_end(value: date) -> date:
    return date(value.year, value.month, calendar.monthrange(value.year, value.month)[1])


def year_months(year: int) -> list[date]:
    return [date(year, month, 1) for month in range(1, 13)]


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing ``day``."""

    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)
