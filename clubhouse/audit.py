"""
Audit logging helpers and enums.

Records are written inside the caller's transaction (flush only) so an audit
row never outlives a rolled back change.
"""
from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from clubhouse.db import schemas
from clubhouse.db.repositories import audits as audit_repo


class AuditAction(str, Enum):
    # Workshops
    WORKSHOP_CREATE = "workshop_create"
    WORKSHOP_UPDATE = "workshop_update"
    WORKSHOP_DELETE = "workshop_delete"
    WORKSHOP_PUBLISH = "workshop_publish"
    WORKSHOP_CANCEL = "workshop_cancel"
    WORKSHOP_FINISH = "workshop_finish"
    # Registrations and refunds
    REGISTRATION_REFUND = "registration_refund"
    # Attendee roster
    ATTENDEE_CANCEL = "attendee_cancel"
    ATTENDEE_REFUND = "attendee_refund"
    # Invitations
    INVITATION_CREATE = "invitation_create"
    INVITATION_STATUS_CHANGE = "invitation_status_change"
    INVITATION_ACCEPT = "invitation_accept"
    # Settings
    SETTING_UPDATE = "setting_update"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: Optional[uuid.UUID] = None,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper."""
    # Persist plain strings, not Enum reprs
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    entry = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(db, entry, actor_user_id=actor_user_id)


__all__ = ["AuditAction", "AuditStatus", "log"]
