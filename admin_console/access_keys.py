"""
Access-key directory: keys joined to their owning users for display,
search and sort.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .errors import ApiError
from .formatting import format_timestamp
from .logging_config import log_console_event
from .schemas.user import AccessKey, User
from .services.cache import ACCESS_KEYS, USERS, QueryCache
from .services.mutations import MutationRunner
from .services.notifier import Notifier

logger = logging.getLogger("admin_console.access_keys")

UNKNOWN_USER = "Unknown User"

SORT_FIELDS = ("id", "user", "created_at", "last_used")


class ViewPhase(str, Enum):
    OPTIMISTIC = "optimistic"
    RECONCILED = "reconciled"


@dataclass
class AccessKeyRow:
    id: str
    user_id: str
    username: str
    status: str
    created_at: Optional[int]
    last_used: Optional[int]
    created_label: str
    last_used_label: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class KeyDeleteResult:
    key_id: str
    phase: ViewPhase
    deleted: bool
    still_present: bool
    error: Optional[ApiError] = None
    # Listing could not be re-fetched; the outcome is unknown
    reconcile_error: Optional[ApiError] = None

    @property
    def verified(self) -> bool:
        return self.reconcile_error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key_id": self.key_id,
            "phase": self.phase.value,
            "deleted": self.deleted,
            "still_present": self.still_present,
            "verified": self.verified,
            "error": self.error.message if self.error else None,
        }


def resolve_username(user_id: str, users_by_id: Dict[str, User]) -> str:
    user = users_by_id.get(user_id)
    return user.username if user else UNKNOWN_USER


def join_keys(keys: Iterable[AccessKey], users: Iterable[User]) -> List[AccessKeyRow]:
    users_by_id = {u.id: u for u in users or []}
    return [
        AccessKeyRow(
            id=k.id,
            user_id=k.user_id,
            username=resolve_username(k.user_id, users_by_id),
            status=k.status,
            created_at=k.created_at,
            last_used=k.last_used or None,
            created_label=format_timestamp(k.created_at, missing=""),
            last_used_label=format_timestamp(k.last_used),
        )
        for k in keys or []
    ]


def search_rows(rows: List[AccessKeyRow], term: str = "") -> List[AccessKeyRow]:
    """Case-insensitive substring match on key id or resolved username"""
    term = (term or "").lower()
    if not term:
        return list(rows)
    return [r for r in rows if term in r.id.lower() or term in r.username.lower()]


def sort_rows(rows: List[AccessKeyRow], sort_by: str = "id", descending: bool = False) -> List[AccessKeyRow]:
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"cannot sort access keys by {sort_by!r}")
    if sort_by == "id":
        return sorted(rows, key=lambda r: r.id.lower(), reverse=descending)
    if sort_by == "user":
        return sorted(rows, key=lambda r: (r.username.lower(), r.id), reverse=descending)

    # Keys with no timestamp (never used) always go last
    dated = [r for r in rows if getattr(r, sort_by)]
    undated = [r for r in rows if not getattr(r, sort_by)]
    dated.sort(key=lambda r: getattr(r, sort_by), reverse=descending)
    return dated + sorted(undated, key=lambda r: r.id.lower())


class AccessKeyDirectory:
    """Filterable, sortable view over access keys and users.

    Deleting a key removes it from the cached listing straight away
    (``Optimistic``), then the listing is re-fetched whatever the outcome and
    the server's answer replaces the local one (``Reconciled``).
    """

    def __init__(self, backend, cache: QueryCache, notifier: Notifier,
                 mutations: Optional[MutationRunner] = None):
        self.backend = backend
        self.cache = cache
        self.notifier = notifier
        self.mutations = mutations or MutationRunner(cache)
        self.phase = ViewPhase.RECONCILED

    async def _users(self) -> List[User]:
        # The join degrades to "Unknown User" rather than failing the listing
        try:
            return await self.cache.get(USERS) or []
        except ApiError as e:
            self.notifier.api_error(e)
            return []

    async def rows(self, search: str = "", sort_by: str = "id",
                   descending: bool = False) -> List[AccessKeyRow]:
        try:
            keys = await self.cache.get(ACCESS_KEYS)
        except ApiError as e:
            self.notifier.api_error(e)
            raise
        users = await self._users()
        return sort_rows(search_rows(join_keys(keys, users), search), sort_by, descending)

    def cached_rows(self, search: str = "") -> List[AccessKeyRow]:
        """Current local view without touching the backend"""
        keys = self.cache.peek(ACCESS_KEYS) or []
        users = self.cache.peek(USERS) or []
        return search_rows(join_keys(keys, users), search)

    async def delete_key(self, user_id: str, key_id: str) -> KeyDeleteResult:
        keys = self.cache.peek(ACCESS_KEYS)
        if keys is not None:
            self.cache.set(ACCESS_KEYS, [k for k in keys if k.id != key_id])
        self.phase = ViewPhase.OPTIMISTIC

        self.notifier.loading("Deleting access key...", f'Deleting "{key_id}"')
        error = None
        try:
            await self.mutations.run(
                self.backend.delete_access_key(user_id, key_id),
                refresh_on_failure=True,
            )
        except ApiError as e:
            error = e
        finally:
            self.notifier.close()

        # Server truth wins: make sure the listing was actually re-fetched
        reconcile_error = None
        if self.cache.is_stale(ACCESS_KEYS):
            try:
                await self.cache.fetch(ACCESS_KEYS)
            except ApiError as e:
                self.notifier.api_error(e)
                reconcile_error = e
        if reconcile_error is None:
            self.phase = ViewPhase.RECONCILED

        still_present = reconcile_error is None and any(
            k.id == key_id for k in (self.cache.peek(ACCESS_KEYS) or []))
        if error is not None:
            self.notifier.api_error(error)
        elif reconcile_error is not None:
            self.notifier.error("Access key deletion not confirmed",
                                f'The key listing could not be reloaded; "{key_id}" may still exist')
        elif still_present:
            self.notifier.error("Access key still present",
                                f'The server still lists "{key_id}" after deletion')
        else:
            self.notifier.success("Access key deleted successfully")
            log_console_event("access_key_deleted", f"access key {key_id} deleted",
                              user_id=user_id, key_id=key_id)

        return KeyDeleteResult(
            key_id=key_id,
            phase=self.phase,
            deleted=error is None and reconcile_error is None and not still_present,
            still_present=still_present,
            error=error,
            reconcile_error=reconcile_error,
        )
