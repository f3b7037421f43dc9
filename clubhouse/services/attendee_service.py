"""
Manually managed workshop roster (beginners workshops).

Attendees are invited by coordinators rather than registering themselves;
payment happens through a payment link, so refunds have to locate the
matching payment intent on the member's Stripe customer.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from clubhouse import audit
from clubhouse.audit import AuditAction
from clubhouse.db import models
from clubhouse.db.models import as_aware, now_utc
from clubhouse.errors import ConflictError, InvalidStateError, NotFoundError, ValidationFailed
from clubhouse.services.base import BaseService

PAYMENT_MATCH_WINDOW = timedelta(minutes=5)
MIN_SEARCH_LENGTH = 2


def _match_payment(intents: List[Dict[str, Any]], attendee: models.WorkshopAttendee) -> Optional[Dict[str, Any]]:
    """Pick the succeeded intent that paid for this attendee.

    A payment link token match wins over any intent created close to
    ``paid_at``; the time window is only consulted when no token matches.
    """
    succeeded = [i for i in intents if i.get("status") == "succeeded"]
    if attendee.payment_url_token:
        for intent in succeeded:
            if (intent.get("metadata") or {}).get("payment_link_token") == attendee.payment_url_token:
                return intent
    paid_at = as_aware(attendee.paid_at)
    if paid_at is None:
        return None
    for intent in succeeded:
        created = intent.get("created")
        if created is None:
            continue
        created_at = datetime.fromtimestamp(created, tz=timezone.utc)
        if abs(created_at - paid_at) <= PAYMENT_MATCH_WINDOW:
            return intent
    return None


class AttendeeService(BaseService):
    logger_name = "clubhouse.attendees"

    def __init__(self, db, claims, logger=None, payments=None):
        super().__init__(db, claims, logger)
        self.payments = payments

    def find_many(self, workshop_id: uuid.UUID) -> List[models.WorkshopAttendee]:
        with self.transaction() as trx:
            return (
                trx.query(models.WorkshopAttendee)
                .filter(models.WorkshopAttendee.workshop_id == workshop_id)
                .order_by(models.WorkshopAttendee.priority.asc(), models.WorkshopAttendee.created_at.asc())
                .all()
            )

    def add(self, workshop_id: uuid.UUID, user_profile_id: uuid.UUID, priority: int = 1) -> models.WorkshopAttendee:
        self.logger.info("attendee_add: workshop_id=%s user_profile_id=%s", workshop_id, user_profile_id)
        with self.transaction() as trx:
            if trx.get(models.Workshop, workshop_id) is None:
                raise NotFoundError("Workshop not found")
            if trx.get(models.UserProfile, user_profile_id) is None:
                raise NotFoundError("User profile not found")
            existing = (
                trx.query(models.WorkshopAttendee)
                .filter(
                    models.WorkshopAttendee.workshop_id == workshop_id,
                    models.WorkshopAttendee.user_profile_id == user_profile_id,
                )
                .first()
            )
            if existing is not None:
                raise ConflictError("User is already an attendee of this workshop")
            attendee = models.WorkshopAttendee(
                workshop_id=workshop_id,
                user_profile_id=user_profile_id,
                priority=priority,
                status="invited",
                invited_at=now_utc(),
            )
            trx.add(attendee)
            trx.flush()
            return attendee

    def remove(self, workshop_id: uuid.UUID, attendee_id: uuid.UUID) -> None:
        self.logger.info("attendee_remove: workshop_id=%s attendee_id=%s", workshop_id, attendee_id)
        with self.transaction() as trx:
            trx.delete(self._find(trx, workshop_id, attendee_id))

    def cancel(
        self,
        workshop_id: uuid.UUID,
        attendee_id: uuid.UUID,
        reason: Optional[str] = None,
        move_to_waitlist: bool = False,
        request_refund: bool = False,
    ) -> Dict[str, Any]:
        self.logger.info(
            "attendee_cancel: workshop_id=%s attendee_id=%s move_to_waitlist=%s request_refund=%s",
            workshop_id, attendee_id, move_to_waitlist, request_refund,
        )
        with self.transaction() as trx:
            attendee = self._find(trx, workshop_id, attendee_id)
            if attendee.status == "cancelled":
                raise InvalidStateError("Attendee already cancelled")
            attendee.status = "cancelled"
            attendee.cancelled_at = now_utc()
            attendee.cancelled_by = self.user_id
            attendee.refund_requested = request_refund
            attendee.waitlist_return_requested = move_to_waitlist
            if move_to_waitlist:
                self._move_to_waitlist(trx, attendee, reason or "Cancelled by admin")
            trx.flush()
            audit.log(
                trx,
                action=AuditAction.ATTENDEE_CANCEL,
                target_type="workshop_attendee",
                target_id=attendee.id,
                actor_user_id=self.user_id,
                reason=reason,
                metadata={"workshop_id": str(workshop_id), "move_to_waitlist": move_to_waitlist},
            )
            return {
                "attendee": attendee,
                "has_paid": attendee.paid_at is not None,
                "move_to_waitlist": move_to_waitlist,
                "request_refund": request_refund,
            }

    def refund(
        self,
        workshop_id: uuid.UUID,
        attendee_id: uuid.UUID,
        reason: Optional[str] = None,
        move_to_waitlist: bool = False,
    ) -> Dict[str, Any]:
        self.logger.info("attendee_refund: workshop_id=%s attendee_id=%s", workshop_id, attendee_id)
        with self.transaction() as trx:
            attendee = self._find(trx, workshop_id, attendee_id)
            if attendee.paid_at is None:
                raise ValidationFailed("Attendee has not paid - no refund needed")
            if attendee.refund_processed_at is not None:
                raise ValidationFailed("Refund already processed")
            profile = attendee.profile
            if profile is None or not profile.customer_id:
                raise ValidationFailed("Customer ID not found - cannot process refund")
            intents = self.payments.list_payment_intents(customer_id=profile.customer_id, limit=50)
            payment = _match_payment(intents, attendee)
            if payment is None:
                raise ValidationFailed("Payment intent not found for this attendee")
            stripe_refund = self.payments.create_refund(
                payment_intent_id=payment["id"],
                metadata={
                    "workshop_id": str(workshop_id),
                    "attendee_id": str(attendee_id),
                    "admin_reason": reason or "Cancelled by admin",
                },
            )
            now = now_utc()
            attendee.status = "cancelled"
            attendee.cancelled_at = now
            attendee.cancelled_by = self.user_id
            attendee.refund_requested = True
            attendee.refund_processed_at = now
            attendee.stripe_refund_id = stripe_refund["id"]
            attendee.waitlist_return_requested = move_to_waitlist
            if move_to_waitlist:
                self._move_to_waitlist(trx, attendee, reason or "Refunded and moved to waitlist")
            trx.flush()
            audit.log(
                trx,
                action=AuditAction.ATTENDEE_REFUND,
                target_type="workshop_attendee",
                target_id=attendee.id,
                actor_user_id=self.user_id,
                reason=reason,
                metadata={"stripe_refund_id": stripe_refund["id"], "amount": stripe_refund["amount"]},
            )
            return {
                "attendee": attendee,
                "refund_id": stripe_refund["id"],
                "refund_amount": stripe_refund["amount"] / 100,
                "move_to_waitlist": move_to_waitlist,
            }

    def search_users(self, workshop_id: uuid.UUID, q: str, limit: int = 10) -> List[models.UserProfile]:
        term = (q or "").strip()
        if len(term) < MIN_SEARCH_LENGTH:
            raise ValidationFailed("Search query too short. Minimum 2 characters required")
        self.logger.info("attendee_search_users: workshop_id=%s q=%s", workshop_id, term)
        pattern = f"%{term}%"
        with self.transaction() as trx:
            on_roster = select(models.WorkshopAttendee.user_profile_id).where(
                models.WorkshopAttendee.workshop_id == workshop_id
            )
            return (
                trx.query(models.UserProfile)
                .filter(
                    or_(
                        models.UserProfile.first_name.ilike(pattern),
                        models.UserProfile.last_name.ilike(pattern),
                        models.UserProfile.email.ilike(pattern),
                    ),
                    models.UserProfile.id.notin_(on_roster),
                )
                .order_by(
                    func.coalesce(models.UserProfile.first_name, "").asc(),
                    func.coalesce(models.UserProfile.last_name, "").asc(),
                    models.UserProfile.email.asc(),
                )
                .limit(limit)
                .all()
            )

    def _find(self, trx: Session, workshop_id: uuid.UUID, attendee_id: uuid.UUID) -> models.WorkshopAttendee:
        attendee = (
            trx.query(models.WorkshopAttendee)
            .filter(
                models.WorkshopAttendee.id == attendee_id,
                models.WorkshopAttendee.workshop_id == workshop_id,
            )
            .first()
        )
        if attendee is None:
            raise NotFoundError("Attendee not found")
        return attendee

    def _move_to_waitlist(self, trx: Session, attendee: models.WorkshopAttendee, note: str) -> None:
        profile = attendee.profile
        entry = trx.get(models.WaitlistEntry, profile.waitlist_id) if profile and profile.waitlist_id else None
        if entry is None:
            raise InvalidStateError("Attendee has no associated waitlist entry")
        entry.status = "waiting"
        prefix = f"{entry.admin_notes} " if entry.admin_notes else ""
        entry.admin_notes = f"{prefix}[Cancelled from workshop, given priority] {note}"
