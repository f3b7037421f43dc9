import uuid
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


WaitlistStatus = Literal["waiting", "invited", "paid", "deferred", "cancelled", "completed", "no_reply", "joined"]


class UserProfile(BaseModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    roles: List[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class WaitlistJoin(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=40)
    date_of_birth: Optional[date] = None

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value


class WaitlistStatusUpdate(BaseModel):
    status: WaitlistStatus
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class WaitlistEntry(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    status: WaitlistStatus
    admin_notes: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
