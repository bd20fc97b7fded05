from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a UTC-naive datetime (the form stored in every column)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 text to UTC-naive datetime.

    Blank input gives None. Offsets ("Z", "+04:00") are folded into UTC;
    values without an offset are taken to be UTC already.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in ("Z", "z"):
        text = f"{text[:-1]}+00:00"
    return _as_utc_naive(datetime.fromisoformat(text))


def coerce_datetime(value) -> Optional[datetime]:
    """Accept datetime, date or ISO string; return UTC-naive datetime (or None)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_iso_datetime(value)
    raise ValueError(f"unsupported datetime value: {value!r}")


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 string ending in 'Z'; naive input counts as UTC."""
    if dt is None:
        return None
    stamp = _as_utc_naive(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"


def month_key(dt: datetime) -> str:
    """YYYYMM partition key."""
    return f"{dt.year:04d}{dt.month:02d}"


def year_key(dt: datetime) -> str:
    return f"{dt.year:04d}"


def month_bounds(dt: datetime) -> tuple[datetime, datetime]:
    """First instant and last microsecond of dt's calendar month."""
    last_day = calendar.monthrange(dt.year, dt.month)[1]
    start = datetime(dt.year, dt.month, 1)
    end = datetime(dt.year, dt.month, last_day, 23, 59, 59, 999999)
    return start, end
