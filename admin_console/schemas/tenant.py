from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, Any, Optional

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"

# Fields the backend owns; never part of an update payload
IMMUTABLE_TENANT_FIELDS = frozenset({
    "id", "name", "created_at", "updated_at",
    "current_access_keys", "current_buckets", "current_storage_bytes",
})


class Tenant(BaseModel):
    """Tenant as returned by the backend (snake_case on the wire)"""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    display_name: str = ""
    description: str = ""
    status: str = STATUS_ACTIVE
    max_access_keys: int = 0
    max_buckets: int = 0
    max_storage_bytes: int = 0
    current_access_keys: int = 0
    current_buckets: int = 0
    current_storage_bytes: int = 0
    created_at: int = 0
    updated_at: Optional[int] = None

    @field_validator(
        "display_name", "description", mode="before"
    )
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator(
        "max_access_keys", "max_buckets", "max_storage_bytes",
        "current_access_keys", "current_buckets", "current_storage_bytes",
        "created_at", mode="before"
    )
    @classmethod
    def _none_to_zero(cls, v):
        return 0 if v is None else v


class TenantCreate(BaseModel):
    """Create payload (camelCase on the wire)"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    display_name: str = Field(..., alias="displayName")
    description: str = ""
    max_access_keys: int = Field(..., ge=0, alias="maxAccessKeys")
    max_buckets: int = Field(..., ge=0, alias="maxBuckets")
    max_storage_bytes: int = Field(..., ge=0, alias="maxStorageBytes")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class TenantUpdate(BaseModel):
    """Partial update; only admin-mutable fields exist on this model"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_name: Optional[str] = Field(None, alias="displayName")
    description: Optional[str] = None
    status: Optional[str] = Field(None, pattern="^(active|inactive)$")
    max_access_keys: Optional[int] = Field(None, ge=0, alias="maxAccessKeys")
    max_buckets: Optional[int] = Field(None, ge=0, alias="maxBuckets")
    max_storage_bytes: Optional[int] = Field(None, ge=0, alias="maxStorageBytes")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
