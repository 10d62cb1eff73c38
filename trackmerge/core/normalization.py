"""
Timestamp normalization helpers.

GPX timestamps are ISO-8601 strings, usually UTC with a trailing `Z`. Points
keep the raw string; parsing happens only where ordering needs it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are treated as UTC. Returns None if parsing fails.
    """
    if not value:
        return None
    s = str(value).strip()
    if not s:
        return None
    # Common GPX format ends with Z.
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as GPX-style UTC ISO-8601 (`...Z`)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    if dt.microsecond:
        text = dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
    else:
        text = dt.strftime("%Y-%m-%dT%H:%M:%S")
    return text + "Z"


def now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))
