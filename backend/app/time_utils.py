from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_today() -> date:
    """
    Calendar date used to attribute revenue.

    Resolved in BUSINESS_TIMEZONE so a sale at 23:30 local time lands on the
    local day rather than the UTC one.
    """
    tz_name = "UTC"
    if has_app_context():
        tz_name = current_app.config.get("BUSINESS_TIMEZONE") or "UTC"
    return datetime.now(ZoneInfo(tz_name)).date()


def parse_iso_date(value) -> Optional[date]:
    """
    Parse a calendar date ("YYYY-MM-DD").

    Full ISO timestamps are accepted too and truncated to their date part,
    which is what the mobile client sends from its date pickers.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    if len(s) > 10 and s[10] in ("T", " "):
        s = s[:10]
    return date.fromisoformat(s)


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.isoformat()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
