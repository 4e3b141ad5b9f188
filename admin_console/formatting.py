from datetime import datetime, timezone
from typing import Optional

NEVER = "Never"


def format_timestamp(ts: Optional[int], missing: str = NEVER) -> str:
    """Unix seconds -> "Jan 05, 2025, 10:30 AM" (UTC). 0/None -> ``missing``."""
    if not ts:
        return missing
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%b %d, %Y, %I:%M %p")


def format_date(ts: Optional[int], missing: str = "") -> str:
    if not ts:
        return missing
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def format_duration(seconds: int) -> str:
    """900 -> "15 minutes", 3600 -> "1 hour", 45 -> "45 seconds"."""
    if seconds and seconds % 3600 == 0:
        return _plural(seconds // 3600, "hour")
    if seconds and seconds % 60 == 0:
        return _plural(seconds // 60, "minute")
    return _plural(seconds, "second")
