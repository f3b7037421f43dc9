"""Business logic services; each public method runs in one RLS-scoped transaction."""

from .workshop_service import WorkshopService
from .registration_service import RegistrationService
from .attendance_service import AttendanceService
from .refund_service import RefundService
from .attendee_service import AttendeeService
from .category_service import CategoryService
from .container_service import ContainerService
from .item_service import ItemService
from .history_service import HistoryService
from .invitation_service import InvitationService
from .waitlist_service import WaitlistService
from .settings_service import SettingsService
from .payments import StripeGateway, get_payment_gateway
from .workshop_generator import WorkshopGenerator, get_workshop_generator

__all__ = [
    "WorkshopService",
    "RegistrationService",
    "AttendanceService",
    "RefundService",
    "AttendeeService",
    "CategoryService",
    "ContainerService",
    "ItemService",
    "HistoryService",
    "InvitationService",
    "WaitlistService",
    "SettingsService",
    "StripeGateway",
    "get_payment_gateway",
    "WorkshopGenerator",
    "get_workshop_generator",
]
