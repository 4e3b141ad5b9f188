"""
Quota accounting for tenant usage counters.

Everything here is a pure function of ``(current, max)`` pairs. Usage may
legitimately exceed a ceiling (counters are maintained by the backend and can
move independently of the ceiling), so ``remaining`` goes negative instead of
being clamped and the display switches to "over quota" wording.
"""

import math
from dataclasses import dataclass, asdict
from typing import Callable, Dict, Any, Optional

from .config import QUOTA_CRITICAL_PERCENT, QUOTA_WARNING_PERCENT
from .schemas.tenant import Tenant

SEVERITY_NORMAL = "normal"
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
_KIB = 1024


def _round_half_up(value: float, ndigits: int = 0) -> float:
    # round() is banker's rounding; usage bars need 2.5 -> 3
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def usage_percent(current: int, maximum: int) -> int:
    """Whole-number usage percentage; a zero ceiling reads as 0%"""
    if maximum == 0:
        return 0
    return int(_round_half_up(current / maximum * 100))


def remaining(current: int, maximum: int) -> int:
    """Capacity left; negative when over quota"""
    return maximum - current


def severity(percent: int,
             critical_above: int = QUOTA_CRITICAL_PERCENT,
             warning_above: int = QUOTA_WARNING_PERCENT) -> str:
    """Visual band for a usage percentage (thresholds are exclusive)"""
    if percent > critical_above:
        return SEVERITY_CRITICAL
    if percent > warning_above:
        return SEVERITY_WARNING
    return SEVERITY_NORMAL


def bar_width(percent: int) -> int:
    """Progress bar fill, capped at 100 for over-quota tenants"""
    return min(percent, 100)


def format_bytes(num_bytes: int) -> str:
    """Human-readable size: 0 -> "0 Bytes", 1536 -> "1.5 KB", 2**30 -> "1 GB"."""
    if num_bytes == 0:
        return "0 Bytes"
    if num_bytes < 0:
        return "-" + format_bytes(-num_bytes)

    value = float(num_bytes)
    unit = 0
    while value >= _KIB and unit < len(BYTE_UNITS) - 1:
        value /= _KIB
        unit += 1

    text = f"{_round_half_up(value, 2):.2f}".rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[unit]}"


def describe_remaining(left: int,
                       fmt: Callable[[int], str] = str,
                       free_label: str = "free") -> str:
    """Label for remaining capacity, e.g. "5 GB free" or "2 over quota"."""
    if left < 0:
        return f"{fmt(abs(left))} over quota"
    return f"{fmt(left)} {free_label}"


@dataclass
class QuotaUsage:
    current: int
    maximum: int
    percent: int
    remaining: int
    over_quota: bool
    severity: str
    bar_width: int
    usage_label: str
    remaining_label: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def quota_usage(current: int, maximum: int,
                fmt: Callable[[int], str] = str,
                free_label: str = "free") -> QuotaUsage:
    """Full accounting for one resource type"""
    current = current or 0
    pct = usage_percent(current, maximum)
    left = remaining(current, maximum)
    return QuotaUsage(
        current=current,
        maximum=maximum,
        percent=pct,
        remaining=left,
        over_quota=left < 0,
        severity=severity(pct),
        bar_width=bar_width(pct),
        usage_label=f"{fmt(current)} / {fmt(maximum)}",
        remaining_label=describe_remaining(left, fmt, free_label),
    )


def tenant_quota_summary(tenant: Tenant) -> Dict[str, QuotaUsage]:
    return {
        "storage": quota_usage(tenant.current_storage_bytes, tenant.max_storage_bytes,
                               fmt=format_bytes),
        "buckets": quota_usage(tenant.current_buckets, tenant.max_buckets,
                               free_label="available"),
        "access_keys": quota_usage(tenant.current_access_keys, tenant.max_access_keys,
                                   free_label="available"),
    }


def summary_to_dict(summary: Optional[Dict[str, QuotaUsage]]) -> Dict[str, Any]:
    return {name: usage.to_dict() for name, usage in (summary or {}).items()}
