from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Bucket(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    tenant_id: Optional[str] = Field(None, alias="tenantId")
    object_count: Optional[int] = 0
    size: Optional[int] = 0
