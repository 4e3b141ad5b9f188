"""
Security overview: user status counts, currently locked accounts and the
lockout policy as configured in backend settings
"""

import time
from typing import Any, Dict, Iterable, List, Optional

from .config import DEFAULT_LOCKOUT_DURATION_SEC, DEFAULT_MAX_FAILED_ATTEMPTS
from .errors import ApiError
from .formatting import format_duration, format_timestamp
from .schemas.setting import Setting
from .schemas.user import User
from .services.cache import SETTINGS, USERS, QueryCache
from .services.notifier import Notifier

LOCKOUT_DURATION_KEY = "security.lockout_duration"
MAX_FAILED_ATTEMPTS_KEY = "security.max_failed_attempts"


def settings_map(settings: Iterable[Setting]) -> Dict[str, str]:
    return {s.key: s.value for s in settings or []}


def int_setting(values: Dict[str, str], key: str, default: int) -> int:
    try:
        return int(values[key])
    except (KeyError, TypeError, ValueError):
        return default


def locked_users(users: Iterable[User], now: Optional[float] = None) -> List[User]:
    now = time.time() if now is None else now
    return [u for u in users if u.locked_until and u.locked_until > now]


def build_security_overview(users: List[User], settings: Iterable[Setting],
                            now: Optional[float] = None) -> Dict[str, Any]:
    values = settings_map(settings)
    lockout_sec = int_setting(values, LOCKOUT_DURATION_KEY, DEFAULT_LOCKOUT_DURATION_SEC)
    max_attempts = int_setting(values, MAX_FAILED_ATTEMPTS_KEY, DEFAULT_MAX_FAILED_ATTEMPTS)
    locked = locked_users(users, now)

    return {
        "users": {
            "total": len(users),
            "active": sum(1 for u in users if u.status == "active"),
            "inactive": sum(1 for u in users if u.status == "inactive"),
            "locked": len(locked),
        },
        "locked_users": [
            {
                "id": u.id,
                "username": u.username,
                "locked_until": u.locked_until,
                "locked_until_label": format_timestamp(u.locked_until),
            }
            for u in locked
        ],
        "lockout_policy": {
            "duration_seconds": lockout_sec,
            "duration_label": format_duration(lockout_sec),
            "max_failed_attempts": max_attempts,
            "max_failed_attempts_label": f"{max_attempts} attempts",
        },
    }


class SecurityOverview:

    def __init__(self, cache: QueryCache, notifier: Notifier):
        self.cache = cache
        self.notifier = notifier

    async def overview(self, now: Optional[float] = None) -> Dict[str, Any]:
        try:
            users = await self.cache.get(USERS) or []
        except ApiError as e:
            self.notifier.api_error(e)
            raise
        try:
            settings = await self.cache.get(SETTINGS) or []
        except ApiError as e:
            # Policy labels fall back to defaults; the counts are still valid
            self.notifier.api_error(e)
            settings = []
        return build_security_overview(users, settings, now)
