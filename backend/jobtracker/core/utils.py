# backend/jobtracker/core/utils.py
"""
Generic helpers used across the API and the dispatcher.

Includes:
- UTC clock helpers (the DB stores naive UTC datetimes)
- IANA timezone resolution and local <-> UTC conversion
- human-readable formatting of a UTC instant in a user's timezone
- small string utils
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ValidationError

# -------- Time ----------------------------------------------------------------

def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive DB value (aware values are converted)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def months(n: int) -> timedelta:
    """Scheduling horizon month: 30 days."""
    return timedelta(days=30 * n)


# -------- Timezones -------------------------------------------------------------

def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    if not name or not str(name).strip():
        raise ValidationError("Timezone is required")
    try:
        return ZoneInfo(str(name).strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name}")


def to_utc_naive(dt: datetime, tz_name: str) -> datetime:
    """
    Normalize a user-supplied instant for storage.
    A naive value is wall-clock time in `tz_name`; an aware value keeps its offset.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=resolve_timezone(tz_name))
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def format_in_timezone(dt_utc: datetime, tz_name: str) -> str:
    """e.g. 'Monday, January 5, 2026 at 3:04 PM EST'"""
    try:
        tz = resolve_timezone(tz_name)
    except ValidationError:
        tz = ZoneInfo("UTC")
    local = as_utc(dt_utc).astimezone(tz)
    hour = local.hour % 12 or 12
    return (
        f"{local:%A, %B} {local.day}, {local.year} at "
        f"{hour}:{local:%M} {local:%p} {local.tzname()}"
    )


# -------- Strings ---------------------------------------------------------------

def clip(s: Optional[str], n: int = 1000) -> str:
    if not s:
        return ""
    s = str(s)
    return s if len(s) <= n else s[:n]


def blank(s: Optional[str]) -> bool:
    return not (s or "").strip()


def like_pattern(term: str) -> str:
    """Substring pattern for ILIKE with %, _ and \\ matched literally (escape='\\')."""
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


__all__ = [
    "now_utc", "as_utc", "months",
    "resolve_timezone", "to_utc_naive", "format_in_timezone",
    "clip", "blank", "like_pattern",
]
