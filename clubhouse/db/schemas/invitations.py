import uuid
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


InvitationType = Literal["workshop", "admin"]
InvitationStatus = Literal["pending", "accepted", "expired", "revoked"]


class InvitationCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    invitation_type: InvitationType = "admin"
    waitlist_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: date
    phone_number: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value


class InvitationStatusUpdate(BaseModel):
    status: InvitationStatus


class InvitationCredentials(BaseModel):
    email: str
    date_of_birth: date


class InvitationAccept(InvitationCredentials):
    next_of_kin_name: str = Field(min_length=1, max_length=200)
    next_of_kin_phone: str = Field(min_length=1, max_length=40)


class Invitation(BaseModel):
    id: uuid.UUID
    email: str
    user_id: Optional[uuid.UUID] = None
    waitlist_id: Optional[uuid.UUID] = None
    invitation_type: InvitationType
    status: InvitationStatus
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class InvitationInfo(BaseModel):
    invitation_id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    invitation_type: InvitationType
    status: InvitationStatus
    expires_at: datetime
