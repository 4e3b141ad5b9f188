"""
Async client for the object-storage backend's console API
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import BACKEND_URL, API_TOKEN, HTTP_TIMEOUT_SEC, VERIFY_TLS
from ..errors import GenericApiError, classify_api_error
from ..logging_config import get_trace_id
from ..schemas.bucket import Bucket
from ..schemas.setting import Setting
from ..schemas.tenant import Tenant, TenantCreate, TenantUpdate
from ..schemas.user import AccessKey, User

logger = logging.getLogger("admin_console.backend")


def unwrap_envelope(body: Any) -> Any:
    """Return the payload of a ``{"success", "data", "error"}`` envelope.

    The tenants listing has been seen double-wrapped
    (``{"success": true, "data": {"success": true, "data": [...]}}``), so a
    nested envelope is unwrapped as well.
    """
    if not isinstance(body, dict) or "data" not in body:
        return body
    data = body.get("data")
    if isinstance(data, dict) and "data" in data and "success" in data:
        return data.get("data")
    return data


def _error_from_response(response: httpx.Response) -> Exception:
    message = response.reason_phrase or f"HTTP {response.status_code}"
    code = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error") or body.get("detail") or body.get("message") or message
        code = body.get("code")
    elif response.text:
        message = response.text.strip()
    return classify_api_error(response.status_code, str(message), code)


class BackendClient:
    """Thin async wrapper around the backend console endpoints.

    Every failure is raised as an ``ApiError`` subclass; nothing is retried.
    """

    def __init__(self, base_url: str = BACKEND_URL, token: str = API_TOKEN,
                 timeout: float = HTTP_TIMEOUT_SEC,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            verify=VERIFY_TLS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        trace_id = get_trace_id()
        if trace_id:
            headers["X-Request-ID"] = trace_id
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("backend unreachable: %s %s: %s", method, path, e,
                           extra={"component": "backend"})
            raise GenericApiError(f"Backend request failed: {e}") from e

        if response.is_error:
            err = _error_from_response(response)
            logger.info("backend error: %s %s -> %s", method, path, response.status_code,
                        extra={"component": "backend", "status": response.status_code})
            raise err

        if response.status_code == 204 or not response.content:
            return None
        try:
            return unwrap_envelope(response.json())
        except ValueError as e:
            raise GenericApiError(f"Invalid JSON from backend: {e}",
                                  status_code=response.status_code) from e

    # Tenants

    async def get_tenants(self) -> List[Tenant]:
        data = await self._request("GET", "/tenants")
        return [Tenant.model_validate(t) for t in (data or [])]

    async def create_tenant(self, payload: TenantCreate) -> Tenant:
        data = await self._request("POST", "/tenants", json=payload.to_wire())
        return Tenant.model_validate(data)

    async def update_tenant(self, tenant_id: str, payload: TenantUpdate) -> Tenant:
        data = await self._request("PUT", f"/tenants/{tenant_id}", json=payload.to_wire())
        return Tenant.model_validate(data)

    async def delete_tenant(self, tenant_id: str, force: bool = False) -> None:
        params = {"force": "true"} if force else None
        await self._request("DELETE", f"/tenants/{tenant_id}", params=params)

    async def get_tenant_users(self, tenant_id: str) -> List[User]:
        data = await self._request("GET", f"/tenants/{tenant_id}/users")
        return [User.model_validate(u) for u in (data or [])]

    # Users and access keys

    async def get_users(self) -> List[User]:
        data = await self._request("GET", "/users")
        return [User.model_validate(u) for u in (data or [])]

    async def get_access_keys(self) -> List[AccessKey]:
        data = await self._request("GET", "/access-keys")
        return [AccessKey.model_validate(k) for k in (data or [])]

    async def delete_access_key(self, user_id: str, key_id: str) -> None:
        await self._request("DELETE", f"/users/{user_id}/access-keys/{key_id}")

    # Buckets and settings

    async def get_buckets(self) -> List[Bucket]:
        data = await self._request("GET", "/buckets")
        return [Bucket.model_validate(b) for b in (data or [])]

    async def list_settings(self, category: Optional[str] = None) -> List[Setting]:
        params: Dict[str, str] = {"category": category} if category else {}
        data = await self._request("GET", "/settings", params=params)
        return [Setting.model_validate(s) for s in (data or [])]
