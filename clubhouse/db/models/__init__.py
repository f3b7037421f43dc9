"""
Aggregated SQLAlchemy models.

Importing this package registers every table on ``Base.metadata``.
"""
from .base import Base, now_utc, as_aware
from .profiles import UserProfile, WaitlistEntry, WAITLIST_STATUSES
from .workshops import (
    Workshop,
    WorkshopInterest,
    WorkshopRegistration,
    WorkshopRefund,
    WorkshopAttendee,
)
from .inventory import EquipmentCategory, Container, InventoryItem, InventoryHistory
from .invitations import Invitation, INVITATION_TTL
from .settings import Setting
from .audit import AuditLog

__all__ = [
    "Base",
    "now_utc",
    "as_aware",
    "UserProfile",
    "WaitlistEntry",
    "WAITLIST_STATUSES",
    "Workshop",
    "WorkshopInterest",
    "WorkshopRegistration",
    "WorkshopRefund",
    "WorkshopAttendee",
    "EquipmentCategory",
    "Container",
    "InventoryItem",
    "InventoryHistory",
    "Invitation",
    "INVITATION_TTL",
    "Setting",
    "AuditLog",
]
