import uuid
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Workshop(Base):
    __tablename__ = 'workshops'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    location = Column(Text, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    max_capacity = Column(Integer, nullable=False)
    # Prices are stored in cents
    price_member = Column(Integer, nullable=False, default=0)
    price_non_member = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, nullable=False, default=False)
    # NULL means no refund deadline; the create schema supplies the default of 3
    refund_days = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default='planned')  # planned|published|cancelled|finished
    announce_discord = Column(Boolean, nullable=False, default=False)
    announce_email = Column(Boolean, nullable=False, default=False)
    created_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_workshops_status', 'status'),
        Index('ix_workshops_start_date', 'start_date'),
        CheckConstraint("status in ('planned','published','cancelled','finished')", name='ck_workshops_status'),
        CheckConstraint('max_capacity > 0', name='ck_workshops_max_capacity'),
        CheckConstraint('price_member >= 0 AND price_non_member >= 0', name='ck_workshops_prices'),
        CheckConstraint('refund_days IS NULL OR refund_days >= 0', name='ck_workshops_refund_days'),
    )


class WorkshopInterest(Base):
    __tablename__ = 'workshop_interest'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workshop_id = Column(UUID(as_uuid=True), ForeignKey('workshops.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        UniqueConstraint('workshop_id', 'user_id', name='uq_workshop_interest_user'),
        Index('ix_workshop_interest_workshop_id', 'workshop_id'),
    )


class WorkshopRegistration(Base):
    __tablename__ = 'workshop_registrations'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workshop_id = Column(UUID(as_uuid=True), ForeignKey('workshops.id', ondelete='CASCADE'), nullable=False)
    member_user_id = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False)
    stripe_payment_intent_id = Column(Text, nullable=True, unique=True)
    amount_paid = Column(Integer, nullable=False, default=0)  # cents
    currency = Column(String, nullable=False, default='eur')
    status = Column(String, nullable=False, default='pending')  # pending|confirmed|cancelled|refunded
    registered_at = Column(DateTime(timezone=True), default=now_utc)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    registration_notes = Column(Text, nullable=True)
    attendance_status = Column(String, nullable=True)  # attended|no_show|excused
    attendance_marked_at = Column(DateTime(timezone=True), nullable=True)
    attendance_marked_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id'), nullable=True)
    attendance_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    member = relationship('UserProfile', foreign_keys=[member_user_id], lazy='joined')

    __table_args__ = (
        UniqueConstraint('workshop_id', 'member_user_id', name='uq_workshop_registrations_member'),
        Index('ix_workshop_registrations_workshop_id', 'workshop_id'),
        Index('ix_workshop_registrations_status', 'status'),
        CheckConstraint("status in ('pending','confirmed','cancelled','refunded')", name='ck_workshop_registrations_status'),
        CheckConstraint(
            "attendance_status IS NULL OR attendance_status in ('attended','no_show','excused')",
            name='ck_workshop_registrations_attendance',
        ),
    )


class WorkshopRefund(Base):
    __tablename__ = 'workshop_refunds'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    registration_id = Column(
        UUID(as_uuid=True), ForeignKey('workshop_registrations.id', ondelete='CASCADE'), nullable=False, unique=True
    )
    refund_amount = Column(Integer, nullable=False)  # cents
    refund_reason = Column(Text, nullable=True)
    status = Column(String, nullable=False, default='pending')  # pending|processing|completed|failed|cancelled
    stripe_refund_id = Column(Text, nullable=True, unique=True)
    stripe_payment_intent_id = Column(Text, nullable=True)
    requested_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    requested_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id'), nullable=True)
    processed_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    registration = relationship('WorkshopRegistration', lazy='joined')

    __table_args__ = (
        Index('ix_workshop_refunds_status', 'status'),
        CheckConstraint('refund_amount > 0', name='ck_workshop_refunds_amount'),
        CheckConstraint(
            "status in ('pending','processing','completed','failed','cancelled')", name='ck_workshop_refunds_status'
        ),
    )


class WorkshopAttendee(Base):
    __tablename__ = 'workshop_attendees'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workshop_id = Column(UUID(as_uuid=True), ForeignKey('workshops.id', ondelete='CASCADE'), nullable=False)
    user_profile_id = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False)
    status = Column(String, nullable=False, default='invited')
    priority = Column(Integer, nullable=False, default=1)
    invited_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_url_token = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id'), nullable=True)
    refund_requested = Column(Boolean, nullable=False, default=False)
    refund_processed_at = Column(DateTime(timezone=True), nullable=True)
    stripe_refund_id = Column(Text, nullable=True)
    waitlist_return_requested = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    profile = relationship('UserProfile', foreign_keys=[user_profile_id], lazy='joined')

    __table_args__ = (
        UniqueConstraint('workshop_id', 'user_profile_id', name='uq_workshop_attendees_profile'),
        CheckConstraint(
            "status in ('invited','pending','confirmed','attended','no_show','cancelled')",
            name='ck_workshop_attendees_status',
        ),
    )
