"""
Domain-split Pydantic schemas with an aggregator.
"""
from .audits import AuditLogBase, AuditLogCreate, AuditLog
from .profiles import UserProfile, WaitlistJoin, WaitlistStatusUpdate, WaitlistEntry
from .workshops import (
    WorkshopCreate,
    WorkshopUpdate,
    Workshop,
    WorkshopGenerateRequest,
    InterestToggleResult,
    PaymentIntentCreate,
    RegistrationComplete,
    Registration,
    AttendanceUpdate,
    AttendanceUpdateRequest,
    RefundProcess,
    Refund,
    AttendeeAdd,
    AttendeeCancel,
    AttendeeRefund,
    Attendee,
)
from .inventory import (
    AttributeDefinition,
    CategoryCreate,
    CategoryUpdate,
    Category,
    ContainerCreate,
    ContainerUpdate,
    Container,
    ItemCreate,
    ItemUpdate,
    ItemSearch,
    ItemMove,
    ItemMaintenance,
    Item,
    HistoryEntry,
)
from .invitations import (
    InvitationCreate,
    InvitationStatusUpdate,
    InvitationCredentials,
    InvitationAccept,
    Invitation,
    InvitationInfo,
)
from .settings import SettingUpdate, InsuranceFormLink, Setting
