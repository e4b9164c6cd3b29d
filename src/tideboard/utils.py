"""Provide utility helpers for timestamps, calendar dates and times of day."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional

_TIME_OF_DAY_RE = re.compile(r"^(?P<hour>[01]?\d|2[0-3])[:hH](?P<minute>[0-5]\d)$")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return datetime.now().date()


def _parse_iso(value: Optional[Any]) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            if not isinstance(value, str):
                value = str(value)
            if value.endswith("Z"):
                value = value[:-1] + "+00:00"
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None
    # If a naive timestamp slips in, assume UTC to avoid crashes.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_date(value: Optional[Any]) -> Optional[date]:
    """Coerce ``YYYY-MM-DD`` strings, dates and datetimes to a :class:`date`."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _normalize_time_of_day(value: Optional[Any]) -> Optional[str]:
    """Return ``HH:MM`` for inputs like ``"9:05"``, ``"14h30"``; None otherwise."""
    if value is None:
        return None
    m = _TIME_OF_DAY_RE.match(str(value).strip())
    if not m:
        return None
    return f"{int(m.group('hour')):02d}:{m.group('minute')}"
