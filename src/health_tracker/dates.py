"""Fechas de calendario para las entradas (parse, formato, rangos)."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from dateutil import tz

_LOCAL_TZ = tz.tzlocal()
_ISO_DAY = re.compile(r"^(\d{4}-\d{2}-\d{2})")

DayLike = date | datetime | str


def parse_day(value: DayLike) -> date:
    """Parse a calendar day from a date, datetime or ``YYYY-MM-DD`` string.

    Strings may carry a trailing time part (``2024-01-03T10:00``); only the
    leading ISO day is used, so no timezone conversion happens.

    Raises:
        ValueError: If the value is not a recognizable day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Fecha invalida: {value!r}")
    match = _ISO_DAY.match(value.strip())
    if not match:
        raise ValueError(f"Fecha invalida: {value!r}")
    return date.fromisoformat(match.group(1))


def try_parse_day(value: object) -> date | None:
    """Like ``parse_day`` but returns None instead of raising."""
    try:
        return parse_day(value)  # type: ignore[arg-type]
    except ValueError:
        return None


def format_day(value: DayLike) -> str:
    """Format as ``YYYY-MM-DD``."""
    return parse_day(value).isoformat()


def today() -> date:
    """Current calendar day in the local timezone."""
    return datetime.now(tz=_LOCAL_TZ).date()


def days_ago(n: int, ref: date | None = None) -> date:
    """Day ``n`` days before ``ref`` (default: today)."""
    return (ref or today()) - timedelta(days=n)


def week_start(ref: date | None = None) -> date:
    """Sunday that opens the week of ``ref``."""
    day = ref or today()
    # date.weekday(): lunes=0 ... domingo=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def month_start(ref: date | None = None) -> date:
    """First day of the month of ``ref``."""
    day = ref or today()
    return day.replace(day=1)
