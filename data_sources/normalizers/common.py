"""Helpers shared by the domain normalizers."""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from core.clock import HAWAII_TZ


_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def parse_datetime(value: Any, default_tz=timezone.utc) -> Optional[datetime]:
    """
    Parse ISO-8601 or RFC-822 text into an aware datetime.

    Naive values are interpreted in default_tz. Returns None when the
    value is empty or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=default_tz)

    text = str(value).strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def parse_hawaii_local(value: str) -> Optional[datetime]:
    """Parse NOAA 'YYYY-MM-DD HH:MM' local station time (HST, no DST)."""
    try:
        naive = datetime.strptime(value.strip(), "%Y-%m-%d %H:%M")
    except (AttributeError, ValueError):
        return None
    return naive.replace(tzinfo=HAWAII_TZ)


def to_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def strip_html(text: str) -> str:
    """Drop tags and collapse whitespace."""
    return _SPACE_RE.sub(" ", _TAG_RE.sub(" ", text or "")).strip()


def utc_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()
