from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Months and years are approximated; the app only shows coarse relative ages.
UNIT_SECONDS: dict[str, int] = {
    "second": 1,
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
    "year": 365 * 24 * 60 * 60,
}

_RELATIVE_RE = re.compile(r"(\d+)\s+(second|minute|hour|day|week|month|year)s?\s+ago", re.IGNORECASE)

_ABSOLUTE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
)

# Instagram omits the year for dates in the current year.
_YEARLESS_FORMATS = ("%B %d", "%b %d")


def parse_uploaded_at(text: str, *, now: Optional[datetime] = None) -> datetime:
    """
    Convert a reel's displayed upload time ("2 hours ago", "January 15, 2024")
    into a datetime. Unparseable values fall back to `now`.
    """
    now = now or datetime.now()
    value = (text or "").strip()

    match = _RELATIVE_RE.search(value)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()
        return now - timedelta(seconds=amount * UNIT_SECONDS[unit])

    for fmt in _ABSOLUTE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    for fmt in _YEARLESS_FORMATS:
        try:
            return datetime.strptime(f"{value} {now.year}", f"{fmt} %Y")
        except ValueError:
            continue

    logger.warning("[dates] could not parse uploaded_at %r; using %s", text, now.isoformat())
    return now


def parse_comment_uploaded_at(offset: Any, *, now: Optional[datetime] = None) -> datetime:
    """`offset` is a {unit, value} mapping or an object with those attributes."""
    now = now or datetime.now()
    if isinstance(offset, Mapping):
        unit, value = offset.get("unit"), offset.get("value")
    else:
        unit, value = getattr(offset, "unit", None), getattr(offset, "value", None)
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(f"Invalid time offset value {value!r}")
    if unit not in UNIT_SECONDS:
        raise ValueError(f"Unknown time unit {unit!r}")
    return now - timedelta(seconds=value * UNIT_SECONDS[unit])
