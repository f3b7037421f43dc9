"""
Member invitations and the public waitlist.

The ``/api/invite`` routes are used by invitees before they have an account
and therefore take no caller context.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubhouse.api.deps import claims_of, require_roles
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.db.database import get_db
from clubhouse.db.rls import anonymous_claims
from clubhouse.services import InvitationService, WaitlistService
from clubhouse.utils.role_permissions import INVITATION_ROLES

router = APIRouter(prefix="/api/invitations", tags=["invitations"])
public_router = APIRouter(prefix="/api/invite", tags=["invitations"])
waitlist_router = APIRouter(prefix="/api/waitlist", tags=["waitlist"])

inviter = require_roles(INVITATION_ROLES)


def _invitation(row):
    return schemas.Invitation.model_validate(row)


@router.post("", status_code=201)
def create_invitation(
    payload: schemas.InvitationCreate,
    db: Session = Depends(get_db),
    user_context=Depends(inviter),
):
    invitation_id = InvitationService(db, claims_of(user_context)).create(payload)
    return success({"id": invitation_id}, message="Invitation created")


@router.get("")
def list_invitations(
    status: Optional[str] = None,
    email: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
    invitation_type: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(inviter),
):
    invitations = InvitationService(db, claims_of(user_context)).find_many(
        status=status, email=email, user_id=user_id, invitation_type=invitation_type
    )
    return success([_invitation(i) for i in invitations])


@router.get("/{invitation_id}")
def get_invitation(
    invitation_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(inviter),
):
    return success(_invitation(InvitationService(db, claims_of(user_context)).find_by_id(invitation_id)))


@router.patch("/{invitation_id}/status")
def update_invitation_status(
    invitation_id: uuid.UUID,
    payload: schemas.InvitationStatusUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(inviter),
):
    invitation = InvitationService(db, claims_of(user_context)).update_status(invitation_id, payload.status)
    return success(_invitation(invitation), message="Invitation updated")


# Public invitee flow

@public_router.get("/{invitation_id}")
def invitation_info(invitation_id: uuid.UUID, db: Session = Depends(get_db)):
    info = InvitationService(db, anonymous_claims()).get_invitation_info(invitation_id)
    return success(schemas.InvitationInfo(**info))


@public_router.post("/{invitation_id}/validate")
def validate_invitation(
    invitation_id: uuid.UUID,
    payload: schemas.InvitationCredentials,
    db: Session = Depends(get_db),
):
    valid = InvitationService(db, anonymous_claims()).validate_credentials(
        invitation_id, payload.email, payload.date_of_birth
    )
    return success({"valid": valid})


@public_router.post("/{invitation_id}/accept")
def accept_invitation(
    invitation_id: uuid.UUID,
    payload: schemas.InvitationAccept,
    db: Session = Depends(get_db),
):
    info = InvitationService(db, anonymous_claims()).accept(invitation_id, payload)
    return success({**info, "status": "accepted"}, message="Invitation accepted")


# Waitlist

@waitlist_router.post("", status_code=201)
def join_waitlist(payload: schemas.WaitlistJoin, db: Session = Depends(get_db)):
    entry = WaitlistService(db, anonymous_claims()).join(payload)
    return success(schemas.WaitlistEntry.model_validate(entry), message="Added to waitlist")


@waitlist_router.get("")
def list_waitlist(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(inviter),
):
    entries = WaitlistService(db, claims_of(user_context)).find_many(status)
    return success([schemas.WaitlistEntry.model_validate(e) for e in entries])


@waitlist_router.patch("/{entry_id}")
def update_waitlist_entry(
    entry_id: uuid.UUID,
    payload: schemas.WaitlistStatusUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(inviter),
):
    entry = WaitlistService(db, claims_of(user_context)).update_status(entry_id, payload.status, payload.admin_notes)
    return success(schemas.WaitlistEntry.model_validate(entry), message="Waitlist entry updated")
