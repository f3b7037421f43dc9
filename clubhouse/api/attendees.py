"""
Beginners workshop roster endpoints (manually managed attendees).
"""
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubhouse.api.deps import claims_of, get_payments, require_roles
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.db.database import get_db
from clubhouse.services import AttendeeService
from clubhouse.utils.role_permissions import ATTENDEE_MANAGEMENT_ROLES

router = APIRouter(prefix="/api/workshops/{workshop_id}", tags=["attendees"])

roster_manager = require_roles(ATTENDEE_MANAGEMENT_ROLES)


def _attendee(row):
    return schemas.Attendee.model_validate(row)


@router.get("/attendees")
def list_attendees(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(roster_manager),
):
    attendees = AttendeeService(db, claims_of(user_context)).find_many(workshop_id)
    return success([_attendee(a) for a in attendees])


@router.post("/attendees", status_code=201)
def add_attendee(
    workshop_id: uuid.UUID,
    payload: schemas.AttendeeAdd,
    db: Session = Depends(get_db),
    user_context=Depends(roster_manager),
):
    attendee = AttendeeService(db, claims_of(user_context)).add(workshop_id, payload.user_profile_id, payload.priority)
    return success(_attendee(attendee), message="Attendee added")


@router.delete("/attendees/{attendee_id}")
def remove_attendee(
    workshop_id: uuid.UUID,
    attendee_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(roster_manager),
):
    AttendeeService(db, claims_of(user_context)).remove(workshop_id, attendee_id)
    return success({"id": attendee_id}, message="Attendee removed")


@router.post("/attendees/{attendee_id}/cancel")
def cancel_attendee(
    workshop_id: uuid.UUID,
    attendee_id: uuid.UUID,
    payload: schemas.AttendeeCancel,
    db: Session = Depends(get_db),
    user_context=Depends(roster_manager),
):
    result = AttendeeService(db, claims_of(user_context)).cancel(
        workshop_id,
        attendee_id,
        reason=payload.reason,
        move_to_waitlist=payload.move_to_waitlist,
        request_refund=payload.request_refund,
    )
    return success({**result, "attendee": _attendee(result["attendee"])}, message="Attendee cancelled")


@router.post("/attendees/{attendee_id}/refund")
def refund_attendee(
    workshop_id: uuid.UUID,
    attendee_id: uuid.UUID,
    payload: schemas.AttendeeRefund,
    db: Session = Depends(get_db),
    user_context=Depends(roster_manager),
    payments=Depends(get_payments),
):
    service = AttendeeService(db, claims_of(user_context), payments=payments)
    result = service.refund(workshop_id, attendee_id, reason=payload.reason, move_to_waitlist=payload.move_to_waitlist)
    return success({**result, "attendee": _attendee(result["attendee"])}, message="Refund processed")


@router.get("/search-users")
def search_users(
    workshop_id: uuid.UUID,
    q: str = "",
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_context=Depends(roster_manager),
):
    profiles = AttendeeService(db, claims_of(user_context)).search_users(workshop_id, q, limit=limit)
    return success([schemas.UserProfile.model_validate(p) for p in profiles])
