"""
Refunds for paid workshop registrations.

Eligibility is evaluated in a fixed order so the first failing rule is the
reason reported to the caller.
"""
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from clubhouse import audit
from clubhouse.audit import AuditAction, AuditStatus
from clubhouse.db import models
from clubhouse.db.models import as_aware, now_utc
from clubhouse.errors import PaymentError, ValidationFailed
from clubhouse.services.base import BaseService

# Refund rows in these states do not block a new request
RETRYABLE_STATUSES = ("failed", "cancelled")


class RefundService(BaseService):
    logger_name = "clubhouse.refunds"

    def __init__(self, db, claims, logger=None, payments=None):
        super().__init__(db, claims, logger)
        self.payments = payments

    def get_workshop_refunds(self, workshop_id: uuid.UUID) -> List[Dict[str, Any]]:
        self.logger.info("refund_list: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            rows = (
                trx.query(models.WorkshopRefund, models.UserProfile)
                .join(models.WorkshopRegistration, models.WorkshopRefund.registration_id == models.WorkshopRegistration.id)
                .outerjoin(models.UserProfile, models.WorkshopRegistration.member_user_id == models.UserProfile.id)
                .filter(models.WorkshopRegistration.workshop_id == workshop_id)
                .order_by(models.WorkshopRefund.requested_at.desc())
                .all()
            )
            return [
                {
                    "refund": refund,
                    "first_name": profile.first_name if profile else None,
                    "last_name": profile.last_name if profile else None,
                }
                for refund, profile in rows
            ]

    def check_eligibility(self, registration_id: uuid.UUID) -> Dict[str, Any]:
        self.logger.info("refund_eligibility: registration_id=%s", registration_id)
        with self.transaction() as trx:
            eligible, reason, _ = self._check_eligibility(trx, registration_id)
        result: Dict[str, Any] = {"eligible": eligible}
        if reason:
            result["reason"] = reason
        return result

    def process_refund(self, registration_id: uuid.UUID, reason: str) -> models.WorkshopRefund:
        self.logger.info("refund_process: registration_id=%s", registration_id)
        failure: Optional[PaymentError] = None
        with self.transaction() as trx:
            refund, failure = self._process_refund(trx, registration_id, reason)
        # The failed refund row is committed before the gateway error reaches the caller
        if failure is not None:
            raise failure
        return refund

    def _check_eligibility(self, trx: Session, registration_id: uuid.UUID):
        registration = trx.get(models.WorkshopRegistration, registration_id)
        if registration is None:
            return False, "Registration not found", None
        if registration.status == "refunded":
            return False, "Registration already refunded", registration
        workshop = trx.get(models.Workshop, registration.workshop_id)
        if workshop.status in ("finished", "cancelled"):
            return False, "Cannot refund finished workshop", registration
        # A workshop without refund_days has no refund deadline
        if workshop.refund_days is not None:
            deadline = as_aware(workshop.start_date) - timedelta(days=workshop.refund_days)
            if now_utc() > deadline:
                return False, "Refund deadline has passed", registration
        existing = self._existing_refund(trx, registration_id)
        if existing is not None and existing.status not in RETRYABLE_STATUSES:
            return False, "Refund already requested for this registration", registration
        return True, None, registration

    def _existing_refund(self, trx: Session, registration_id: uuid.UUID) -> Optional[models.WorkshopRefund]:
        return (
            trx.query(models.WorkshopRefund)
            .filter(models.WorkshopRefund.registration_id == registration_id)
            .first()
        )

    def _process_refund(self, trx: Session, registration_id: uuid.UUID, reason: str):
        eligible, why, registration = self._check_eligibility(trx, registration_id)
        if not eligible:
            raise ValidationFailed(why or "Refund not eligible")
        if not registration.amount_paid:
            raise ValidationFailed("Registration has no payment to refund")
        previous_status = registration.status
        # registration_id is unique, so a retry reuses the failed row
        refund = self._existing_refund(trx, registration.id)
        if refund is None:
            refund = models.WorkshopRefund(registration_id=registration.id)
            trx.add(refund)
        refund.refund_amount = registration.amount_paid
        refund.refund_reason = reason
        refund.status = "pending"
        refund.stripe_payment_intent_id = registration.stripe_payment_intent_id
        refund.stripe_refund_id = None
        refund.requested_by = self.user_id
        refund.requested_at = now_utc()
        refund.processed_at = None
        refund.processed_by = None
        registration.status = "refunded"
        trx.flush()

        failure = None
        if registration.stripe_payment_intent_id:
            try:
                stripe_refund = self.payments.create_refund(
                    payment_intent_id=registration.stripe_payment_intent_id,
                    amount=registration.amount_paid,
                )
            except PaymentError as exc:
                self.logger.error("refund_failed: registration_id=%s error=%s", registration.id, exc.message)
                refund.status = "failed"
                registration.status = previous_status
                failure = exc
            else:
                refund.stripe_refund_id = stripe_refund["id"]
                refund.status = "processing"
                refund.processed_at = now_utc()
                refund.processed_by = self.user_id
        trx.flush()
        audit.log(
            trx,
            action=AuditAction.REGISTRATION_REFUND,
            status=AuditStatus.FAILURE if failure else AuditStatus.SUCCESS,
            target_type="workshop_registration",
            target_id=registration.id,
            actor_user_id=self.user_id,
            reason=reason,
            metadata={"refund_id": str(refund.id), "amount": refund.refund_amount},
        )
        return refund, failure
