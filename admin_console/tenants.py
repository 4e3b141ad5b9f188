"""
Tenant lifecycle: listing with quota summaries, create, update and the
two-phase delete.

Delete first asks the backend for a plain delete. A tenant that still owns
buckets is refused with a conflict; only then is the operator asked whether
to force delete, which cascades to every bucket, object and access key of the
tenant before removing the tenant itself. Nothing is retried without an
explicit yes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from .config import DEFAULT_MAX_ACCESS_KEYS, DEFAULT_MAX_BUCKETS, DEFAULT_MAX_STORAGE_BYTES
from .errors import ApiError, ConflictError, ValidationError
from .formatting import format_date
from .logging_config import log_console_event
from .quota import summary_to_dict, tenant_quota_summary
from .schemas.tenant import Tenant, TenantCreate, TenantUpdate
from .schemas.user import User
from .services.cache import TENANTS, QueryCache
from .services.mutations import MutationRunner
from .services.notifier import Notifier

logger = logging.getLogger("admin_console.tenants")


class DeleteState(str, Enum):
    REQUESTED = "requested"
    SUCCESS = "success"
    CONFLICT = "conflict"
    PROMPT = "prompt"
    CONFIRMED = "confirmed"
    FORCE_REQUESTED = "force_requested"
    DECLINED = "declined"
    IDLE = "idle"
    FAILURE = "failure"
    OTHER_FAILURE = "other_failure"


@dataclass
class DeleteResult:
    tenant_id: str
    state: DeleteState = DeleteState.REQUESTED
    path: List[DeleteState] = field(default_factory=lambda: [DeleteState.REQUESTED])
    error: Optional[ApiError] = None

    def advance(self, state: DeleteState) -> "DeleteResult":
        self.state = state
        self.path.append(state)
        return self

    @property
    def forced(self) -> bool:
        return DeleteState.FORCE_REQUESTED in self.path

    @property
    def deleted(self) -> bool:
        return self.state == DeleteState.SUCCESS

    @property
    def force_delete_available(self) -> bool:
        """Conflict seen but the operator has not (yet) confirmed force"""
        return self.state == DeleteState.IDLE and DeleteState.CONFLICT in self.path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "state": self.state.value,
            "path": [s.value for s in self.path],
            "deleted": self.deleted,
            "forced": self.forced,
            "force_delete_available": self.force_delete_available,
            "error": self.error.message if self.error else None,
        }


def tenant_row(tenant: Tenant) -> Dict[str, Any]:
    row = tenant.model_dump()
    row["created_label"] = format_date(tenant.created_at)
    row["quota"] = summary_to_dict(tenant_quota_summary(tenant))
    return row


def filter_tenants(tenants: List[Tenant], search: str = "") -> List[Tenant]:
    term = (search or "").lower()
    if not term:
        return list(tenants)
    return [
        t for t in tenants
        if term in t.name.lower() or term in (t.display_name or "").lower()
    ]


class TenantLifecycleController:

    def __init__(self, backend, cache: QueryCache, notifier: Notifier,
                 mutations: Optional[MutationRunner] = None):
        self.backend = backend
        self.cache = cache
        self.notifier = notifier
        self.mutations = mutations or MutationRunner(cache)

    async def list_tenants(self, search: str = "") -> List[Dict[str, Any]]:
        try:
            tenants = await self.cache.get(TENANTS)
        except ApiError as e:
            self.notifier.api_error(e)
            raise
        return [tenant_row(t) for t in filter_tenants(tenants or [], search)]

    async def tenant_users(self, tenant_id: str) -> List[User]:
        try:
            return await self.backend.get_tenant_users(tenant_id)
        except ApiError as e:
            self.notifier.api_error(e)
            raise

    def _reject(self, message: str, field_name: Optional[str] = None):
        err = ValidationError(message, field=field_name)
        self.notifier.api_error(err)
        raise err

    async def create_tenant(self, name: str, display_name: str, description: str = "",
                            max_access_keys: Optional[int] = None,
                            max_buckets: Optional[int] = None,
                            max_storage_bytes: Optional[int] = None) -> Tenant:
        name = (name or "").strip()
        display_name = (display_name or "").strip()
        if not name:
            self._reject("Tenant name is required", "name")
        if not display_name:
            self._reject("Display name is required", "displayName")

        quotas = {
            "max_access_keys": DEFAULT_MAX_ACCESS_KEYS if max_access_keys is None else max_access_keys,
            "max_buckets": DEFAULT_MAX_BUCKETS if max_buckets is None else max_buckets,
            "max_storage_bytes": DEFAULT_MAX_STORAGE_BYTES if max_storage_bytes is None else max_storage_bytes,
        }
        for key, value in quotas.items():
            if value < 0:
                self._reject(f"{key} must be a non-negative integer", key)

        payload = TenantCreate(name=name, display_name=display_name,
                               description=description or "", **quotas)

        self.notifier.loading("Creating tenant...", f'Creating "{display_name}"')
        try:
            tenant = await self.mutations.run(self.backend.create_tenant(payload))
        except ApiError as e:
            self.notifier.api_error(e)
            raise
        finally:
            self.notifier.close()
        self.notifier.success(f'Tenant "{display_name}" created successfully')
        log_console_event("tenant_created", f"tenant {name} created", tenant_id=tenant.id)
        return tenant

    async def update_tenant(self, tenant_id: str,
                            changes: Union[TenantUpdate, Mapping[str, Any]]) -> Tenant:
        """Submit only admin-mutable fields; identity and counters are dropped."""
        if isinstance(changes, TenantUpdate):
            payload = changes
        else:
            try:
                payload = TenantUpdate.model_validate(dict(changes))
            except SchemaValidationError as e:
                first = e.errors()[0]
                loc = ".".join(str(p) for p in first.get("loc", ()))
                self._reject(f"{loc}: {first.get('msg')}", loc or None)
        if payload.display_name is not None and not payload.display_name.strip():
            self._reject("Display name is required", "displayName")

        self.notifier.loading("Updating tenant...")
        try:
            tenant = await self.mutations.run(self.backend.update_tenant(tenant_id, payload))
        except ApiError as e:
            self.notifier.api_error(e)
            raise
        finally:
            self.notifier.close()
        self.notifier.success("Tenant updated successfully")
        log_console_event("tenant_updated", f"tenant {tenant_id} updated",
                          tenant_id=tenant_id, fields=sorted(payload.to_wire()))
        return tenant

    async def delete_tenant(self, tenant_id: str, label: Optional[str] = None) -> DeleteResult:
        label = label or tenant_id
        result = DeleteResult(tenant_id)

        self.notifier.loading("Deleting tenant...", f'Deleting "{label}"')
        conflict = None
        try:
            await self.mutations.run(self.backend.delete_tenant(tenant_id))
        except ConflictError as e:
            conflict = e
        except ApiError as e:
            self.notifier.api_error(e)
            result.error = e
            return result.advance(DeleteState.OTHER_FAILURE)
        finally:
            self.notifier.close()

        if conflict is not None:
            result.error = conflict
            result.advance(DeleteState.CONFLICT)
            return await self._offer_force_delete(result, label)

        self.notifier.success("Tenant deleted successfully")
        log_console_event("tenant_deleted", f"tenant {tenant_id} deleted",
                          tenant_id=tenant_id, forced=False)
        return result.advance(DeleteState.SUCCESS)

    async def _offer_force_delete(self, result: DeleteResult, label: str) -> DeleteResult:
        result.advance(DeleteState.PROMPT)
        confirmed = await self.notifier.confirm(
            f'Force delete "{label}"?',
            f"{result.error.message.rstrip('.')}. Force delete removes every bucket, object and "
            f"access key owned by the tenant, then the tenant itself. "
            f"This cannot be undone.",
        )
        if not confirmed:
            result.advance(DeleteState.DECLINED)
            return result.advance(DeleteState.IDLE)

        result.advance(DeleteState.CONFIRMED)
        result.advance(DeleteState.FORCE_REQUESTED)
        self.notifier.loading("Force deleting tenant...", f'Deleting "{label}" and all its buckets')
        try:
            await self.mutations.run(self.backend.delete_tenant(result.tenant_id, force=True))
        except ApiError as e:
            self.notifier.api_error(e)
            result.error = e
            return result.advance(DeleteState.FAILURE)
        finally:
            self.notifier.close()
        self.notifier.success("Tenant and all its buckets deleted successfully")
        log_console_event("tenant_deleted", f"tenant {result.tenant_id} force deleted",
                          tenant_id=result.tenant_id, forced=True)
        result.error = None
        return result.advance(DeleteState.SUCCESS)
