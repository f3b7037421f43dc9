"""
Member interest and paid registrations for workshops.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from clubhouse.db import models
from clubhouse.db.models import now_utc
from clubhouse.errors import ConflictError, InvalidStateError, NotFoundError, ValidationFailed
from clubhouse.services.base import BaseService

ACTIVE_STATUSES = ("pending", "confirmed")


def _with_names(registration: models.WorkshopRegistration) -> Dict[str, Any]:
    member = registration.member
    return {
        "registration": registration,
        "first_name": member.first_name if member else None,
        "last_name": member.last_name if member else None,
        "email": member.email if member else None,
    }


class RegistrationService(BaseService):
    logger_name = "clubhouse.registrations"

    def __init__(self, db, claims, logger=None, payments=None):
        super().__init__(db, claims, logger)
        self.payments = payments

    def find_by_id(self, registration_id: uuid.UUID) -> models.WorkshopRegistration:
        self.logger.info("registration_find_by_id: registration_id=%s", registration_id)
        with self.transaction() as trx:
            return self._find_by_id(trx, registration_id)

    def find_many(
        self,
        workshop_id: Optional[uuid.UUID] = None,
        member_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> List[models.WorkshopRegistration]:
        self.logger.info("registration_find_many: workshop_id=%s member_id=%s status=%s", workshop_id, member_id, status)
        with self.transaction() as trx:
            query = trx.query(models.WorkshopRegistration)
            if workshop_id:
                query = query.filter(models.WorkshopRegistration.workshop_id == workshop_id)
            if member_id:
                query = query.filter(models.WorkshopRegistration.member_user_id == member_id)
            if status:
                query = query.filter(models.WorkshopRegistration.status == status)
            return query.order_by(models.WorkshopRegistration.created_at.asc()).all()

    def get_workshop_attendees(self, workshop_id: uuid.UUID) -> List[Dict[str, Any]]:
        self.logger.info("registration_attendees: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            rows = (
                trx.query(models.WorkshopRegistration)
                .filter(
                    models.WorkshopRegistration.workshop_id == workshop_id,
                    models.WorkshopRegistration.status.in_(ACTIVE_STATUSES),
                )
                .order_by(models.WorkshopRegistration.created_at.asc())
                .all()
            )
            return [_with_names(r) for r in rows]

    def toggle_interest(self, workshop_id: uuid.UUID) -> Dict[str, Any]:
        user_id = self.require_user_id()
        self.logger.info("interest_toggle: workshop_id=%s user_id=%s", workshop_id, user_id)
        with self.transaction() as trx:
            workshop = trx.get(models.Workshop, workshop_id)
            if workshop is None:
                raise NotFoundError("Workshop not found")
            if workshop.status != "planned":
                raise InvalidStateError("Can only express interest in planned workshops")
            existing = (
                trx.query(models.WorkshopInterest)
                .filter(
                    models.WorkshopInterest.workshop_id == workshop_id,
                    models.WorkshopInterest.user_id == user_id,
                )
                .first()
            )
            if existing:
                trx.delete(existing)
                action, message = "withdrawn", "Interest withdrawn successfully"
            else:
                trx.add(models.WorkshopInterest(workshop_id=workshop_id, user_id=user_id))
                action, message = "expressed", "Interest expressed successfully"
            trx.flush()
            count = (
                trx.query(models.WorkshopInterest)
                .filter(models.WorkshopInterest.workshop_id == workshop_id)
                .count()
            )
            return {"action": action, "message": message, "interest_count": count}

    def create_payment_intent(
        self,
        workshop_id: uuid.UUID,
        amount: Optional[int] = None,
        currency: str = "eur",
        customer_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        user_id = self.require_user_id()
        self.logger.info("payment_intent_create: workshop_id=%s amount=%s user_id=%s", workshop_id, amount, user_id)
        with self.transaction() as trx:
            workshop = trx.get(models.Workshop, workshop_id)
            if workshop is None:
                raise NotFoundError("Workshop not found")
            if workshop.status != "published":
                raise InvalidStateError("Workshop not available for registration")
            if self._active_registration(trx, workshop_id, user_id) is not None:
                raise ConflictError("Already registered for this workshop")
            taken = (
                trx.query(models.WorkshopRegistration)
                .filter(
                    models.WorkshopRegistration.workshop_id == workshop_id,
                    models.WorkshopRegistration.status.in_(ACTIVE_STATUSES),
                )
                .count()
            )
            if taken >= workshop.max_capacity:
                raise ConflictError("Workshop is full")
            charge = workshop.price_member if amount is None else amount
            intent = self.payments.create_payment_intent(
                amount=charge,
                currency=currency,
                customer_id=customer_id,
                metadata={
                    "workshop_id": str(workshop_id),
                    "workshop_title": workshop.title,
                    "user_id": str(user_id),
                    "type": "workshop_registration",
                },
            )
            return {
                "client_secret": intent["client_secret"],
                "payment_intent_id": intent["id"],
                "amount": charge,
                "currency": currency,
            }

    def complete_registration(self, workshop_id: uuid.UUID, payment_intent_id: str) -> models.WorkshopRegistration:
        user_id = self.require_user_id()
        self.logger.info("registration_complete: workshop_id=%s payment_intent_id=%s", workshop_id, payment_intent_id)
        with self.transaction() as trx:
            intent = self.payments.retrieve_payment_intent(payment_intent_id)
            if intent.get("status") != "succeeded":
                raise ValidationFailed("Payment not completed")
            metadata = intent.get("metadata") or {}
            if metadata.get("workshop_id") != str(workshop_id):
                raise ValidationFailed("Payment intent does not match workshop")
            if metadata.get("user_id") != str(user_id):
                raise ValidationFailed("Payment intent does not belong to this member")
            if trx.get(models.Workshop, workshop_id) is None:
                raise NotFoundError("Workshop not found")
            registration = (
                trx.query(models.WorkshopRegistration)
                .filter(
                    models.WorkshopRegistration.workshop_id == workshop_id,
                    models.WorkshopRegistration.member_user_id == user_id,
                )
                .first()
            )
            if registration is not None and registration.status in ACTIVE_STATUSES:
                if registration.stripe_payment_intent_id == payment_intent_id:
                    return registration
                raise ConflictError("Already registered for this workshop")
            if self._intent_already_used(trx, payment_intent_id):
                raise ConflictError("Payment intent has already been used")
            if registration is None:
                registration = models.WorkshopRegistration(workshop_id=workshop_id, member_user_id=user_id)
                trx.add(registration)
            # A previously cancelled registration is reused; (workshop, member) is unique
            now = now_utc()
            registration.stripe_payment_intent_id = payment_intent_id
            registration.amount_paid = intent.get("amount") or 0
            registration.currency = intent.get("currency") or "eur"
            registration.status = "confirmed"
            registration.registered_at = now
            registration.confirmed_at = now
            registration.cancelled_at = None
            trx.flush()
            return registration

    def cancel_registration(self, workshop_id: uuid.UUID) -> Dict[str, Any]:
        user_id = self.require_user_id()
        self.logger.info("registration_cancel: workshop_id=%s user_id=%s", workshop_id, user_id)
        with self.transaction() as trx:
            registration = self._active_registration(trx, workshop_id, user_id)
            if registration is None:
                raise NotFoundError("Registration not found")
            registration.status = "cancelled"
            registration.cancelled_at = now_utc()
            trx.flush()
            return {"registration": registration, "refund_processed": False}

    def _intent_already_used(self, trx: Session, payment_intent_id: str) -> bool:
        """True when the intent backed a registration or a refund before.

        Stripe keeps a refunded intent in the succeeded state, so the status
        alone cannot stop the same payment from confirming a second time.
        """
        registered = (
            trx.query(models.WorkshopRegistration.id)
            .filter(models.WorkshopRegistration.stripe_payment_intent_id == payment_intent_id)
            .first()
        )
        if registered is not None:
            return True
        refunded = (
            trx.query(models.WorkshopRefund.id)
            .filter(models.WorkshopRefund.stripe_payment_intent_id == payment_intent_id)
            .first()
        )
        return refunded is not None

    def _find_by_id(self, trx: Session, registration_id: uuid.UUID) -> models.WorkshopRegistration:
        registration = trx.get(models.WorkshopRegistration, registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    def _active_registration(self, trx: Session, workshop_id: uuid.UUID, user_id: uuid.UUID):
        return (
            trx.query(models.WorkshopRegistration)
            .filter(
                models.WorkshopRegistration.workshop_id == workshop_id,
                models.WorkshopRegistration.member_user_id == user_id,
                models.WorkshopRegistration.status.in_(ACTIVE_STATUSES),
            )
            .first()
        )
