"""
Datetime utilities for consistent date and time handling.
The clinic API exchanges dates as ISO strings and times as HH:MM:SS.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

_HHMMSS = re.compile(r"^\d{1,2}:\d{2}:\d{2}$")
_HHMM = re.compile(r"^\d{1,2}:\d{2}$")


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def local_today(tz_name: str) -> date:
    """Current calendar day in the clinic's timezone."""
    return datetime.now(ZoneInfo(tz_name)).date()


def parse_user_date(text: str) -> date:
    """
    Parse a date typed by a user.

    Accepts ISO (2026-01-15) and day-first (15/01/2026, 15-01-2026) formats.

    Raises:
        ValueError: If the text is not a valid date
    """
    value = (text or "").strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Fecha inválida: '{value}' (usa AAAA-MM-DD o DD/MM/AAAA)")


def normalize_time(value: Any) -> Optional[str]:
    """
    Normalize an API time value to HH:MM:SS.

    The backend may serialize LocalTime as "HH:MM", "HH:MM:SS" or as an
    object with hour/minute/second keys.
    """
    if value is None or value == "":
        return None

    if isinstance(value, dict) and value.get("hour") is not None:
        return (
            f"{int(value['hour']):02d}:"
            f"{int(value.get('minute') or 0):02d}:"
            f"{int(value.get('second') or 0):02d}"
        )

    if isinstance(value, str):
        text = value.strip()
        if _HHMMSS.match(text):
            hour, rest = text.split(":", 1)
            return f"{int(hour):02d}:{rest}"
        if _HHMM.match(text):
            hour, minute = text.split(":")
            return f"{int(hour):02d}:{minute}:00"

    return str(value)


def display_time(value: Any) -> str:
    """HH:MM for display."""
    normalized = normalize_time(value)
    return normalized[:5] if normalized else ""


def display_date(value: Any) -> str:
    """DD.MM.YYYY for display, falling back to the raw value."""
    if isinstance(value, date):
        return value.strftime("%d.%m.%Y")
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10]).strftime("%d.%m.%Y")
        except ValueError:
            return value
    return ""


def date_options(start: date, days: int) -> list[date]:
    """Consecutive days starting at start, used for date pickers."""
    return [start + timedelta(days=offset) for offset in range(days)]
