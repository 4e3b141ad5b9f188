# tests/conftest.py
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import pytest

from admin_console.access_keys import AccessKeyDirectory
from admin_console.security import SecurityOverview
from admin_console.services.backend_client import BackendClient
from admin_console.services.cache import QueryCache, register_backend_queries
from admin_console.services.mutations import MutationRunner
from admin_console.services.notifier import NoticeBoard
from admin_console.tenants import TenantLifecycleController

BACKEND_URL = "http://backend.test/api/v1"
GIB = 1024 ** 3


def _envelope(data: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json={"success": True, "data": data})


def _error(message: str, status: int, code: Optional[str] = None) -> httpx.Response:
    body = {"success": False, "error": message}
    if code:
        body["code"] = code
    return httpx.Response(status, json=body)


class FakeBackend:
    """In-memory stand-in for the storage backend's console API"""

    def __init__(self):
        self.tenants: Dict[str, Dict[str, Any]] = {}
        self.buckets: List[Dict[str, Any]] = []
        self.users: List[Dict[str, Any]] = []
        self.keys: List[Dict[str, Any]] = []
        self.settings: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []
        self.structured_conflicts = False
        self.double_wrap_tenants = False
        self.silently_keep_keys = False
        self.fail: Dict[str, httpx.Response] = {}
        self.on_delete_key = None
        self._seq = 0

    # seeding

    def add_tenant(self, tenant_id: str, name: str, **fields) -> Dict[str, Any]:
        tenant = {
            "id": tenant_id,
            "name": name,
            "display_name": fields.pop("display_name", name.title()),
            "description": "",
            "status": "active",
            "max_access_keys": 10,
            "current_access_keys": 0,
            "max_storage_bytes": 100 * GIB,
            "current_storage_bytes": 0,
            "max_buckets": 100,
            "current_buckets": 0,
            "created_at": 1735689600,
            "updated_at": 1735689600,
        }
        tenant.update(fields)
        self.tenants[tenant_id] = tenant
        return tenant

    def add_bucket(self, name: str, tenant_id: str):
        self.buckets.append({"name": name, "tenantId": tenant_id, "object_count": 3, "size": 2048})
        self.tenants[tenant_id]["current_buckets"] += 1

    def add_user(self, user_id: str, username: str, tenant_id: Optional[str] = None, **fields):
        user = {"id": user_id, "username": username, "displayName": username.title(),
                "status": "active", "roles": ["user"], "tenantId": tenant_id,
                "createdAt": 1735689600}
        user.update(fields)
        self.users.append(user)
        return user

    def add_key(self, key_id: str, user_id: str, created_at: int = 1735689600,
                last_used: Optional[int] = None):
        key = {"id": key_id, "userId": user_id, "status": "active", "createdAt": created_at}
        if last_used:
            key["lastUsed"] = last_used
        self.keys.append(key)
        return key

    # request log helpers

    def calls(self, method: str, path_prefix: str = "") -> List[httpx.Request]:
        return [r for r in self.requests
                if r.method == method and self._path(r).startswith(path_prefix)]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path.split("/api/v1", 1)[-1]

    # transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, self._path(request)
        override = self.fail.get(f"{method} {path}")
        if override is not None:
            return override
        parts = [p for p in path.split("/") if p]

        if parts == ["tenants"]:
            if method == "GET":
                data = list(self.tenants.values())
                if self.double_wrap_tenants:
                    return _envelope({"success": True, "data": data})
                return _envelope(data)
            if method == "POST":
                return self._create_tenant(json.loads(request.content))
        if len(parts) == 2 and parts[0] == "tenants":
            if method == "PUT":
                return self._update_tenant(parts[1], json.loads(request.content))
            if method == "DELETE":
                force = request.url.params.get("force") == "true"
                return self._delete_tenant(parts[1], force)
        if len(parts) == 3 and parts[0] == "tenants" and parts[2] == "users":
            return _envelope([u for u in self.users if u.get("tenantId") == parts[1]])
        if parts == ["users"]:
            return _envelope(self.users)
        if parts == ["access-keys"]:
            return _envelope(self.keys)
        if len(parts) == 4 and parts[0] == "users" and parts[2] == "access-keys" and method == "DELETE":
            return self._delete_key(parts[1], parts[3])
        if parts == ["buckets"]:
            return _envelope(self.buckets)
        if parts == ["settings"]:
            return _envelope(self.settings)
        return _error("Not Found", 404)

    def _create_tenant(self, body: Dict[str, Any]) -> httpx.Response:
        if not body.get("name"):
            return _error("Tenant name is required", 400)
        if any(t["name"] == body["name"] for t in self.tenants.values()):
            return _error(f"tenant {body['name']} already exists", 409)
        self._seq += 1
        tenant = self.add_tenant(
            f"tenant-{self._seq}", body["name"],
            display_name=body.get("displayName", ""),
            description=body.get("description", ""),
            max_access_keys=body.get("maxAccessKeys", 0),
            max_buckets=body.get("maxBuckets", 0),
            max_storage_bytes=body.get("maxStorageBytes", 0),
        )
        return _envelope(tenant, 200)

    def _update_tenant(self, tenant_id: str, body: Dict[str, Any]) -> httpx.Response:
        tenant = self.tenants.get(tenant_id)
        if tenant is None:
            return _error("Tenant not found", 404)
        mapping = {
            "displayName": "display_name", "description": "description", "status": "status",
            "maxAccessKeys": "max_access_keys", "maxBuckets": "max_buckets",
            "maxStorageBytes": "max_storage_bytes",
        }
        for wire, field in mapping.items():
            if wire in body:
                tenant[field] = body[wire]
        return _envelope(tenant)

    def _delete_tenant(self, tenant_id: str, force: bool) -> httpx.Response:
        if tenant_id not in self.tenants:
            return _error("Tenant not found", 404)
        owned = [b for b in self.buckets if b["tenantId"] == tenant_id]
        if owned and not force:
            return _error(
                f"Cannot delete tenant: tenant has {len(owned)} bucket(s). "
                f"Please delete all buckets before deleting the tenant",
                409,
                code="TENANT_NOT_EMPTY" if self.structured_conflicts else None,
            )
        members = {u["id"] for u in self.users if u.get("tenantId") == tenant_id}
        self.buckets = [b for b in self.buckets if b["tenantId"] != tenant_id]
        self.keys = [k for k in self.keys if k["userId"] not in members]
        for user in self.users:
            if user["id"] in members:
                user["tenantId"] = None
        del self.tenants[tenant_id]
        return httpx.Response(204)

    def _delete_key(self, user_id: str, key_id: str) -> httpx.Response:
        if self.on_delete_key is not None:
            self.on_delete_key(user_id, key_id)
        if not any(k["id"] == key_id for k in self.keys):
            return _error("Access key not found", 404)
        if not self.silently_keep_keys:
            self.keys = [k for k in self.keys if k["id"] != key_id]
        return httpx.Response(204)


@dataclass
class Console:
    backend: BackendClient
    cache: QueryCache
    notifier: NoticeBoard
    tenants: TenantLifecycleController
    keys: AccessKeyDirectory
    security: SecurityOverview

    async def aclose(self):
        await self.tenants.mutations.drain()
        await self.backend.aclose()


@pytest.fixture
def fake_backend():
    fake = FakeBackend()
    fake.add_tenant("t-acme", "acme", display_name="Acme Corp")
    fake.add_tenant("t-globex", "globex", display_name="Globex")
    fake.add_bucket("acme-logs", "t-acme")
    fake.add_bucket("acme-media", "t-acme")
    fake.add_user("u-alice", "alice", tenant_id="t-acme")
    fake.add_user("u-bob", "bob", tenant_id="t-globex")
    fake.add_key("AKIAALICE1", "u-alice", created_at=1735689600, last_used=1736000000)
    fake.add_key("AKIABOB001", "u-bob", created_at=1735776000)
    fake.add_key("AKIAGHOST1", "u-deleted", created_at=1735862400)
    fake.settings = [
        {"key": "security.lockout_duration", "value": "900", "type": "int", "category": "security"},
        {"key": "security.max_failed_attempts", "value": "5", "type": "int", "category": "security"},
    ]
    return fake


@pytest.fixture
def make_console(fake_backend):
    """Factory; call it inside the running event loop of a test scenario"""

    def build(confirm: bool = False) -> Console:
        backend = BackendClient(base_url=BACKEND_URL, token="test-token",
                                transport=httpx.MockTransport(fake_backend.handler))
        cache = register_backend_queries(QueryCache(), backend)
        notifier = NoticeBoard(confirm_answer=confirm)
        mutations = MutationRunner(cache)
        return Console(
            backend=backend,
            cache=cache,
            notifier=notifier,
            tenants=TenantLifecycleController(backend, cache, notifier, mutations),
            keys=AccessKeyDirectory(backend, cache, notifier, mutations),
            security=SecurityOverview(cache, notifier),
        )

    return build


@pytest.fixture
def client(fake_backend):
    """TestClient against the console app, backed by the fake backend"""
    from fastapi.testclient import TestClient
    from admin_console.main import create_app

    application = create_app(transport=httpx.MockTransport(fake_backend.handler),
                             lock_poll_seconds=0)
    with TestClient(application) as test_client:
        yield test_client
