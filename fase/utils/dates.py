"""Month (``YYYY-MM``) and ISO week (``YYYY-Wnn``) helpers.

All functions take an optional ``today`` so callers and tests can pin the
clock; ``None`` means the server's local date.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
WEEK_RE = re.compile(r"^(\d{4})-W(\d{2})$")

MONTH_NAMES_ES = (
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
)


def _today(today: date | None) -> date:
    return today or date.today()


def is_valid_month(value) -> bool:
    return isinstance(value, str) and MONTH_RE.match(value) is not None


def parse_month(value: str) -> tuple[int, int]:
    """``"2025-03"`` → ``(2025, 3)``; raises ValueError on bad input."""
    m = MONTH_RE.match(value or "")
    if not m:
        raise ValueError(f"Invalid month {value!r}, expected YYYY-MM")
    return int(m.group(1)), int(m.group(2))


def format_month(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def current_month(today: date | None = None) -> str:
    return format_month(_today(today))


def add_months(month: str, delta: int) -> str:
    year, mon = parse_month(month)
    idx = year * 12 + (mon - 1) + delta
    return f"{idx // 12:04d}-{idx % 12 + 1:02d}"


def month_bounds(month: str) -> tuple[date, date]:
    """First and last calendar day of a month."""
    year, mon = parse_month(month)
    last = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last)


def is_past_month(month: str, today: date | None = None) -> bool:
    # YYYY-MM strings order lexicographically
    return month < current_month(today)


def is_future_month(month: str, today: date | None = None) -> bool:
    return month > current_month(today)


def month_label(month: str) -> str:
    year, mon = parse_month(month)
    return f"{MONTH_NAMES_ES[mon - 1]} {year}"


def month_grid(month: str) -> list[list[date]]:
    """Monday-first weeks covering every day of the month."""
    first, last = month_bounds(month)
    start = first - timedelta(days=first.weekday())
    end = last + timedelta(days=6 - last.weekday())
    weeks: list[list[date]] = []
    cursor = start
    while cursor <= end:
        weeks.append([cursor + timedelta(days=i) for i in range(7)])
        cursor += timedelta(days=7)
    return weeks


# ── ISO weeks ────────────────────────────────────────────────────────────────


def is_valid_week(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_week(value)
    except ValueError:
        return False
    return True


def parse_week(value: str) -> tuple[int, int]:
    m = WEEK_RE.match(value or "")
    if not m:
        raise ValueError(f"Invalid week {value!r}, expected YYYY-Wnn")
    year, week = int(m.group(1)), int(m.group(2))
    # fromisocalendar rejects week 53 in 52-week years
    date.fromisocalendar(year, week, 1)
    return year, week


def iso_week(d: date) -> str:
    year, week, _ = d.isocalendar()
    return f"{year:04d}-W{week:02d}"


def week_bounds(week: str) -> tuple[date, date]:
    """Monday and Sunday of an ISO week."""
    year, num = parse_week(week)
    monday = date.fromisocalendar(year, num, 1)
    return monday, monday + timedelta(days=6)


def week_label(week: str) -> str:
    monday, sunday = week_bounds(week)
    return f"{monday.day} {MONTH_NAMES_ES[monday.month - 1][:3]} - {sunday.day} {MONTH_NAMES_ES[sunday.month - 1][:3]} {sunday.year}"
