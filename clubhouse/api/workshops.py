"""
Workshop API endpoints.

Planning and lifecycle routes are limited to workshop coordinators; interest
and self-registration are open to every signed-in member.
"""
from datetime import datetime
from typing import Optional
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubhouse.api.deps import (
    claims_of,
    get_current_user_context,
    get_generator,
    get_payments,
    require_refunds_feature,
    require_roles,
)
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.db.database import get_db
from clubhouse.errors import NotFoundError
from clubhouse.services import (
    AttendanceService,
    RefundService,
    RegistrationService,
    WorkshopService,
)
from clubhouse.utils.feature_flags import llm_features_enabled
from clubhouse.utils.role_permissions import WORKSHOP_ROLES, can_manage_workshops

router = APIRouter(prefix="/api/workshops", tags=["workshops"])

workshop_manager = require_roles(WORKSHOP_ROLES)


def _workshop(row):
    return schemas.Workshop.model_validate(row)


def _registration(row):
    return schemas.Registration.model_validate(row)


def _named_registration(entry):
    return {
        **_registration(entry["registration"]).model_dump(),
        "first_name": entry.get("first_name"),
        "last_name": entry.get("last_name"),
        "email": entry.get("email"),
    }


@router.get("")
def list_workshops(
    status: Optional[str] = None,
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    created_by: Optional[uuid.UUID] = None,
    is_public: Optional[bool] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _, current_user = user_context
    if not can_manage_workshops(current_user["roles"]):
        status = "published"
    service = WorkshopService(db, claims_of(user_context))
    workshops = service.find_many(
        status=status,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        created_by=created_by,
        is_public=is_public,
    )
    return success([_workshop(w) for w in workshops])


@router.post("", status_code=201)
def create_workshop(
    payload: schemas.WorkshopCreate,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    workshop = WorkshopService(db, claims_of(user_context)).create(payload)
    return success(_workshop(workshop), message="Workshop created")


@router.post("/generate")
def generate_workshop(
    payload: schemas.WorkshopGenerateRequest,
    user_context=Depends(workshop_manager),
    generator=Depends(get_generator),
):
    if not llm_features_enabled():
        raise NotFoundError("Not found")
    draft = generator.generate(payload.prompt)
    return success(draft.model_dump(mode="json"))


@router.get("/{workshop_id}")
def get_workshop(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return success(_workshop(WorkshopService(db, claims_of(user_context)).find_by_id(workshop_id)))


@router.put("/{workshop_id}")
def update_workshop(
    workshop_id: uuid.UUID,
    payload: schemas.WorkshopUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    workshop = WorkshopService(db, claims_of(user_context)).update(workshop_id, payload)
    return success(_workshop(workshop), message="Workshop updated")


@router.delete("/{workshop_id}")
def delete_workshop(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    WorkshopService(db, claims_of(user_context)).delete(workshop_id)
    return success({"id": workshop_id}, message="Workshop deleted")


@router.post("/{workshop_id}/publish")
def publish_workshop(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    workshop = WorkshopService(db, claims_of(user_context)).publish(workshop_id)
    return success(_workshop(workshop), message="Workshop published")


@router.patch("/{workshop_id}/cancel")
def cancel_workshop(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
    payments=Depends(get_payments),
):
    workshop = WorkshopService(db, claims_of(user_context), payments=payments).cancel(workshop_id)
    return success(_workshop(workshop), message="Workshop cancelled")


@router.post("/{workshop_id}/finish")
def finish_workshop(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    workshop = WorkshopService(db, claims_of(user_context)).finish(workshop_id)
    return success(_workshop(workshop), message="Workshop finished")


# Interest and self-registration

@router.post("/{workshop_id}/interest")
def toggle_interest(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    result = RegistrationService(db, claims_of(user_context)).toggle_interest(workshop_id)
    return success(schemas.InterestToggleResult(**result), message=result["message"])


@router.post("/{workshop_id}/register/payment-intent")
def create_payment_intent(
    workshop_id: uuid.UUID,
    payload: schemas.PaymentIntentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
    payments=Depends(get_payments),
):
    profile, _ = user_context
    service = RegistrationService(db, claims_of(user_context), payments=payments)
    intent = service.create_payment_intent(
        workshop_id,
        amount=payload.amount,
        currency=payload.currency,
        customer_id=payload.customer_id or profile.customer_id,
    )
    return success(intent)


@router.post("/{workshop_id}/register/complete", status_code=201)
def complete_registration(
    workshop_id: uuid.UUID,
    payload: schemas.RegistrationComplete,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
    payments=Depends(get_payments),
):
    service = RegistrationService(db, claims_of(user_context), payments=payments)
    registration = service.complete_registration(workshop_id, payload.payment_intent_id)
    return success(_registration(registration), message="Registration completed")


@router.delete("/{workshop_id}/register")
def cancel_registration(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    result = RegistrationService(db, claims_of(user_context)).cancel_registration(workshop_id)
    return success(
        {"registration": _registration(result["registration"]), "refund_processed": result["refund_processed"]},
        message="Registration cancelled",
    )


@router.get("/{workshop_id}/registrations")
def list_registrations(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    entries = RegistrationService(db, claims_of(user_context)).get_workshop_attendees(workshop_id)
    return success([_named_registration(e) for e in entries])


# Attendance

@router.get("/{workshop_id}/attendance")
def get_attendance(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    entries = AttendanceService(db, claims_of(user_context)).get_workshop_attendance(workshop_id)
    return success([_named_registration(e) for e in entries])


@router.put("/{workshop_id}/attendance")
def update_attendance(
    workshop_id: uuid.UUID,
    payload: schemas.AttendanceUpdateRequest,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    rows = AttendanceService(db, claims_of(user_context)).update_attendance(workshop_id, payload.attendance_updates)
    return success([_registration(r) for r in rows], message="Attendance updated")


# Refunds

@router.get("/{workshop_id}/refunds", dependencies=[Depends(require_refunds_feature)])
def list_refunds(
    workshop_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    entries = RefundService(db, claims_of(user_context)).get_workshop_refunds(workshop_id)
    return success([
        {
            **schemas.Refund.model_validate(e["refund"]).model_dump(),
            "first_name": e["first_name"],
            "last_name": e["last_name"],
        }
        for e in entries
    ])


@router.get("/{workshop_id}/refunds/eligibility/{registration_id}", dependencies=[Depends(require_refunds_feature)])
def refund_eligibility(
    workshop_id: uuid.UUID,
    registration_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
):
    return success(RefundService(db, claims_of(user_context)).check_eligibility(registration_id))


@router.post("/{workshop_id}/refunds", dependencies=[Depends(require_refunds_feature)])
def process_refund(
    workshop_id: uuid.UUID,
    payload: schemas.RefundProcess,
    db: Session = Depends(get_db),
    user_context=Depends(workshop_manager),
    payments=Depends(get_payments),
):
    service = RefundService(db, claims_of(user_context), payments=payments)
    refund = service.process_refund(payload.registration_id, payload.reason)
    return success(schemas.Refund.model_validate(refund), message="Refund processed")
