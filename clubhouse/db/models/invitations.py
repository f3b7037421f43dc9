import uuid
from datetime import timedelta
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


INVITATION_TTL = timedelta(days=7)


def default_expiry():
    return now_utc() + INVITATION_TTL


class Invitation(Base):
    __tablename__ = 'invitations'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=True)
    waitlist_id = Column(UUID(as_uuid=True), ForeignKey('waitlist.id', ondelete='SET NULL'), nullable=True)
    invitation_type = Column(String, nullable=False, default='admin')  # workshop|admin
    status = Column(String, nullable=False, default='pending')  # pending|accepted|expired|revoked
    expires_at = Column(DateTime(timezone=True), nullable=False, default=default_expiry)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    metadata_json = Column('metadata', JSONB, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_invitations_email', 'email'),
        Index('ix_invitations_status', 'status'),
        CheckConstraint("invitation_type in ('workshop','admin')", name='ck_invitations_type'),
        CheckConstraint("status in ('pending','accepted','expired','revoked')", name='ck_invitations_status'),
    )
