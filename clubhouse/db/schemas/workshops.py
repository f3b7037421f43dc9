import uuid
from datetime import date, datetime, time, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


WorkshopStatus = Literal["planned", "published", "cancelled", "finished"]
RegistrationStatus = Literal["pending", "confirmed", "cancelled", "refunded"]
AttendanceStatus = Literal["attended", "no_show", "excused"]
RefundStatus = Literal["pending", "processing", "completed", "failed", "cancelled"]


def euros_to_cents(amount: float) -> int:
    return int(round(amount * 100))


def combine_utc(day: date, at: time) -> datetime:
    return datetime.combine(day, at).replace(tzinfo=timezone.utc)


def _parse_hhmm(value):
    if value is None or isinstance(value, time):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%H:%M").time()
    except ValueError:
        raise ValueError("Time must use the HH:MM format")


class WorkshopFields(BaseModel):
    """Form input shared by create and update. Prices are in euros."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=1)
    workshop_date: Optional[date] = None
    workshop_time: Optional[time] = None
    workshop_end_time: Optional[time] = None
    max_capacity: Optional[int] = Field(default=None, ge=1)
    price_member: Optional[float] = Field(default=None, ge=0)
    price_non_member: Optional[float] = Field(default=None, ge=0)
    is_public: Optional[bool] = None
    refund_deadline_days: Optional[int] = Field(default=None, ge=0)
    announce_discord: Optional[bool] = None
    announce_email: Optional[bool] = None

    @field_validator("workshop_time", "workshop_end_time", mode="before")
    @classmethod
    def _times(cls, value):
        return _parse_hhmm(value)

    @field_validator("workshop_date")
    @classmethod
    def _not_today(cls, value):
        if value is not None and value == datetime.now(timezone.utc).date():
            raise ValueError("Workshop cannot be scheduled for today")
        return value

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.workshop_time and self.workshop_end_time and self.workshop_end_time <= self.workshop_time:
            raise ValueError("End time cannot be before start time")
        return self

    def start_end(self):
        """Return (start, end) datetimes, or (None, None) when date and times are incomplete."""
        if self.workshop_date and self.workshop_time and self.workshop_end_time:
            return (
                combine_utc(self.workshop_date, self.workshop_time),
                combine_utc(self.workshop_date, self.workshop_end_time),
            )
        return None, None


class WorkshopCreate(WorkshopFields):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    location: str = Field(min_length=1)
    workshop_date: date
    workshop_time: time
    workshop_end_time: time
    max_capacity: int = Field(ge=1)
    price_member: float = Field(ge=0)
    is_public: bool = False
    refund_deadline_days: Optional[int] = Field(default=3, ge=0)
    announce_discord: bool = False
    announce_email: bool = False

    def to_row(self) -> dict:
        start, end = self.start_end()
        member_cents = euros_to_cents(self.price_member)
        if self.is_public and self.price_non_member is not None:
            non_member_cents = euros_to_cents(self.price_non_member)
        else:
            non_member_cents = member_cents
        return {
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "start_date": start,
            "end_date": end,
            "max_capacity": self.max_capacity,
            "price_member": member_cents,
            "price_non_member": non_member_cents,
            "is_public": self.is_public,
            "refund_days": self.refund_deadline_days,
            "announce_discord": self.announce_discord,
            "announce_email": self.announce_email,
        }


class WorkshopUpdate(WorkshopFields):
    def to_row(self) -> dict:
        """Column changes for the fields that were actually sent."""
        sent = self.model_fields_set
        row = {}
        for name in ("title", "description", "location", "max_capacity", "is_public",
                     "announce_discord", "announce_email"):
            if name in sent:
                row[name] = getattr(self, name)
        if "refund_deadline_days" in sent:
            row["refund_days"] = self.refund_deadline_days
        start, end = self.start_end()
        if start is not None:
            row["start_date"] = start
            row["end_date"] = end
        if "price_member" in sent and self.price_member is not None:
            row["price_member"] = euros_to_cents(self.price_member)
        if "price_non_member" in sent and self.price_non_member is not None:
            row["price_non_member"] = euros_to_cents(self.price_non_member)
        return row

    def changes_pricing(self) -> bool:
        return bool({"price_member", "price_non_member"} & self.model_fields_set)


class Workshop(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    location: str
    start_date: datetime
    end_date: datetime
    max_capacity: int
    price_member: int
    price_non_member: int
    is_public: bool
    refund_days: Optional[int] = None
    status: WorkshopStatus
    announce_discord: bool
    announce_email: bool
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class WorkshopGenerateRequest(BaseModel):
    prompt: str

    @field_validator("prompt")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Prompt is required")
        return value


class InterestToggleResult(BaseModel):
    action: Literal["expressed", "withdrawn"]
    message: str
    interest_count: int


class PaymentIntentCreate(BaseModel):
    amount: Optional[int] = Field(default=None, ge=0)
    currency: str = "eur"
    customer_id: Optional[str] = None


class RegistrationComplete(BaseModel):
    payment_intent_id: str = Field(min_length=1)


class Registration(BaseModel):
    id: uuid.UUID
    workshop_id: uuid.UUID
    member_user_id: uuid.UUID
    stripe_payment_intent_id: Optional[str] = None
    amount_paid: int
    currency: str
    status: RegistrationStatus
    registered_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    registration_notes: Optional[str] = None
    attendance_status: Optional[AttendanceStatus] = None
    attendance_marked_at: Optional[datetime] = None
    attendance_marked_by: Optional[uuid.UUID] = None
    attendance_notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class AttendanceUpdate(BaseModel):
    registration_id: uuid.UUID
    attendance_status: AttendanceStatus
    notes: Optional[str] = Field(default=None, max_length=500)


class AttendanceUpdateRequest(BaseModel):
    attendance_updates: List[AttendanceUpdate] = Field(min_length=1)


class RefundProcess(BaseModel):
    registration_id: uuid.UUID
    reason: str = Field(min_length=1, max_length=500)


class Refund(BaseModel):
    id: uuid.UUID
    registration_id: uuid.UUID
    refund_amount: int
    refund_reason: Optional[str] = None
    status: RefundStatus
    stripe_refund_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    requested_at: datetime
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    requested_by: Optional[uuid.UUID] = None
    processed_by: Optional[uuid.UUID] = None
    model_config = ConfigDict(from_attributes=True)


class AttendeeAdd(BaseModel):
    user_profile_id: uuid.UUID
    priority: int = Field(default=1, ge=1)


class AttendeeCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    move_to_waitlist: bool = False
    request_refund: bool = False


class AttendeeRefund(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    move_to_waitlist: bool = False


class Attendee(BaseModel):
    id: uuid.UUID
    workshop_id: uuid.UUID
    user_profile_id: uuid.UUID
    status: str
    priority: int
    invited_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[uuid.UUID] = None
    refund_requested: bool
    refund_processed_at: Optional[datetime] = None
    stripe_refund_id: Optional[str] = None
    waitlist_return_requested: bool
    model_config = ConfigDict(from_attributes=True)
