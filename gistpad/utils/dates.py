from __future__ import annotations

import math
from datetime import datetime, timezone


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def format_long(value: datetime | None) -> str:
    """e.g. "March 5, 2025 at 02:30 PM"."""
    if value is None:
        return "Unknown"
    return f"{value.strftime('%B')} {value.day}, {value.year} at {value.strftime('%I:%M %p')}"


def format_relative(value: datetime | None, now: datetime | None = None) -> str:
    if value is None:
        return "Unknown"
    now = _aware(now or datetime.now(timezone.utc))
    value = _aware(value)
    diff_days = math.ceil(abs((now - value).total_seconds()) / 86400)

    if diff_days == 1:
        return "1 day ago"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        return f"{math.ceil(diff_days / 7)} weeks ago"
    return value.strftime("%Y-%m-%d")
