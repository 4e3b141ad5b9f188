from pydantic import BaseModel, ConfigDict, field_validator


class Setting(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    value: str
    type: str = "string"
    category: str = ""
    description: str = ""
    editable: bool = True

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v):
        # Numeric settings are sometimes sent unquoted
        return "" if v is None else str(v)
