"""
Tenant management endpoints
"""
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
import logging

from ..config import API_PREFIX
from ..tenants import TenantLifecycleController, tenant_row
from .deps import get_tenant_controller
from .response_builders import build_error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["tenants"])


class CreateTenantRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Left optional so that an empty name reaches the controller's own check
    name: str = ""
    display_name: str = Field("", alias="displayName")
    description: str = ""
    max_access_keys: Optional[int] = Field(None, alias="maxAccessKeys")
    max_buckets: Optional[int] = Field(None, alias="maxBuckets")
    max_storage_bytes: Optional[int] = Field(None, alias="maxStorageBytes")


@router.get("/tenants")
async def list_tenants(search: str = "",
                       controller: TenantLifecycleController = Depends(get_tenant_controller)):
    """List tenants with quota usage, optionally filtered by name"""
    rows = await controller.list_tenants(search)
    return {"tenants": rows, "total": len(rows)}


@router.post("/tenants", status_code=201)
async def create_tenant(request: CreateTenantRequest,
                        controller: TenantLifecycleController = Depends(get_tenant_controller)):
    tenant = await controller.create_tenant(
        name=request.name,
        display_name=request.display_name,
        description=request.description,
        max_access_keys=request.max_access_keys,
        max_buckets=request.max_buckets,
        max_storage_bytes=request.max_storage_bytes,
    )
    return {"tenant": tenant_row(tenant), "notices": controller.notifier.to_list()}


@router.put("/tenants/{tenant_id}")
async def update_tenant(tenant_id: str,
                        changes: Dict[str, Any] = Body(...),
                        controller: TenantLifecycleController = Depends(get_tenant_controller)):
    """Update mutable tenant fields; identity fields in the body are ignored"""
    tenant = await controller.update_tenant(tenant_id, changes)
    return {"tenant": tenant_row(tenant), "notices": controller.notifier.to_list()}


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(tenant_id: str,
                        force: bool = Query(False, description="Operator confirmed cascading delete"),
                        controller: TenantLifecycleController = Depends(get_tenant_controller)):
    """Delete a tenant.

    Without ``force`` a tenant that still owns buckets answers 409 with
    ``force_delete_available``; repeating the call with ``force=true`` is the
    operator's confirmation and cascades to all of the tenant's buckets.
    """
    controller.notifier.confirm_answer = force
    result = await controller.delete_tenant(tenant_id)
    body = result.to_dict()
    body["notices"] = controller.notifier.to_list()
    body["prompts"] = [p.to_dict() for p in controller.notifier.prompts]

    if result.deleted:
        return body
    if result.force_delete_available:
        return JSONResponse(status_code=409, content=body)
    return build_error_response(result.error, body["notices"], result=body)


@router.get("/tenants/{tenant_id}/users")
async def list_tenant_users(tenant_id: str,
                            controller: TenantLifecycleController = Depends(get_tenant_controller)):
    users = await controller.tenant_users(tenant_id)
    return {"users": [u.model_dump() for u in users], "total": len(users)}
