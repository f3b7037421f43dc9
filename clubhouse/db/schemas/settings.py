import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SettingUpdate(BaseModel):
    value: str


class InsuranceFormLink(BaseModel):
    url: str = Field(min_length=1)


class Setting(BaseModel):
    id: uuid.UUID
    key: str
    value: str
    type: Literal["text", "boolean"]
    description: Optional[str] = None
    updated_by: Optional[uuid.UUID] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
