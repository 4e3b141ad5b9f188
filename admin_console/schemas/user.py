from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    username: str
    display_name: str = Field("", alias="displayName")
    email: Optional[str] = None
    status: str = "active"
    roles: Optional[List[str]] = None
    tenant_id: Optional[str] = Field(None, alias="tenantId")
    locked_until: Optional[int] = Field(None, alias="lockedUntil")
    created_at: Optional[int] = Field(None, alias="createdAt")


class AccessKey(BaseModel):
    """Access key listing entry; the secret is never part of a listing"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    user_id: str = Field(..., alias="userId")
    status: str = "active"
    created_at: Optional[int] = Field(None, alias="createdAt")
    last_used: Optional[int] = Field(None, alias="lastUsed")
