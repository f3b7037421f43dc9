"""
Workshop lifecycle: planned -> published -> finished | cancelled.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from clubhouse import audit
from clubhouse.audit import AuditAction
from clubhouse.db import models, schemas
from clubhouse.errors import InvalidStateError, NotFoundError, PaymentError
from clubhouse.services.base import BaseService
from clubhouse.services.payments import is_already_refunded


class WorkshopService(BaseService):
    logger_name = "clubhouse.workshops"

    def __init__(self, db, claims, logger=None, payments=None):
        super().__init__(db, claims, logger)
        self.payments = payments

    # Queries

    def find_by_id(self, workshop_id: uuid.UUID) -> models.Workshop:
        self.logger.info("workshop_find_by_id: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            return self._find_by_id(trx, workshop_id)

    def find_many(
        self,
        status: Optional[str] = None,
        start_date_from: Optional[datetime] = None,
        start_date_to: Optional[datetime] = None,
        created_by: Optional[uuid.UUID] = None,
        is_public: Optional[bool] = None,
    ) -> List[models.Workshop]:
        self.logger.info("workshop_find_many: status=%s is_public=%s", status, is_public)
        with self.transaction() as trx:
            query = trx.query(models.Workshop)
            if status:
                query = query.filter(models.Workshop.status == status)
            if start_date_from:
                query = query.filter(models.Workshop.start_date >= start_date_from)
            if start_date_to:
                query = query.filter(models.Workshop.start_date <= start_date_to)
            if created_by:
                query = query.filter(models.Workshop.created_by == created_by)
            if is_public is not None:
                query = query.filter(models.Workshop.is_public == is_public)
            return query.order_by(models.Workshop.start_date.asc()).all()

    def can_edit(self, workshop_id: uuid.UUID) -> bool:
        with self.transaction() as trx:
            workshop = trx.get(models.Workshop, workshop_id)
            return workshop is not None and workshop.status == "planned"

    def can_edit_pricing(self, workshop_id: uuid.UUID) -> bool:
        with self.transaction() as trx:
            return self._can_edit_pricing(trx, workshop_id)

    # Mutations

    def create(self, data: schemas.WorkshopCreate) -> models.Workshop:
        self.logger.info("workshop_create: title=%s", data.title)
        with self.transaction() as trx:
            return self._create(trx, data)

    def update(self, workshop_id: uuid.UUID, data: schemas.WorkshopUpdate) -> models.Workshop:
        self.logger.info("workshop_update: workshop_id=%s fields=%s", workshop_id, sorted(data.model_fields_set))
        with self.transaction() as trx:
            workshop = self._find_by_id(trx, workshop_id)
            if workshop.status != "planned":
                raise InvalidStateError("Only planned workshops can be edited")
            if data.changes_pricing() and not self._can_edit_pricing(trx, workshop_id):
                raise InvalidStateError("Pricing cannot be changed once registrations exist")
            row = data.to_row()
            if "price_non_member" in row and not row.get("is_public", workshop.is_public):
                row["price_non_member"] = row.get("price_member", workshop.price_member)
            for key, value in row.items():
                setattr(workshop, key, value)
            if "start_date" in row and workshop.end_date <= workshop.start_date:
                raise InvalidStateError("End time cannot be before start time")
            trx.flush()
            audit.log(
                trx,
                action=AuditAction.WORKSHOP_UPDATE,
                target_type="workshop",
                target_id=workshop.id,
                actor_user_id=self.user_id,
                metadata={"fields": sorted(row)},
            )
            return workshop

    def delete(self, workshop_id: uuid.UUID) -> None:
        self.logger.info("workshop_delete: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            workshop = self._find_by_id(trx, workshop_id)
            if workshop.status != "planned":
                raise InvalidStateError("Only planned workshops can be deleted")
            title = workshop.title
            trx.delete(workshop)
            trx.flush()
            audit.log(
                trx,
                action=AuditAction.WORKSHOP_DELETE,
                target_type="workshop",
                target_id=workshop_id,
                actor_user_id=self.user_id,
                metadata={"title": title},
            )

    def publish(self, workshop_id: uuid.UUID) -> models.Workshop:
        self.logger.info("workshop_publish: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            workshop = self._find_by_id(trx, workshop_id)
            if workshop.status != "planned":
                raise InvalidStateError("Only planned workshops can be published")
            return self._set_status(trx, workshop, "published", AuditAction.WORKSHOP_PUBLISH)

    def cancel(self, workshop_id: uuid.UUID) -> models.Workshop:
        """Cancel a published workshop, refunding every paid registration first."""
        self.logger.info("workshop_cancel: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            workshop = self._find_by_id(trx, workshop_id)
            if workshop.status != "published":
                raise InvalidStateError("Only published workshops can be cancelled")
            refunded = self._refund_registrations(trx, workshop)
            return self._set_status(
                trx, workshop, "cancelled", AuditAction.WORKSHOP_CANCEL, metadata={"refunded_registrations": refunded}
            )

    def finish(self, workshop_id: uuid.UUID) -> models.Workshop:
        self.logger.info("workshop_finish: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            workshop = self._find_by_id(trx, workshop_id)
            if workshop.status != "published":
                raise InvalidStateError(
                    f"Workshop is {workshop.status} and cannot be finished. "
                    "Only published workshops can be finished."
                )
            waiting = (
                trx.query(models.WorkshopAttendee)
                .filter(
                    models.WorkshopAttendee.workshop_id == workshop_id,
                    models.WorkshopAttendee.status.in_(("pending", "invited")),
                )
                .count()
            )
            if waiting:
                raise InvalidStateError(
                    "Workshop cannot be finished while there are attendees with pending or invited status"
                )
            return self._set_status(trx, workshop, "finished", AuditAction.WORKSHOP_FINISH)

    # Transactional helpers

    def _find_by_id(self, trx: Session, workshop_id: uuid.UUID) -> models.Workshop:
        workshop = trx.get(models.Workshop, workshop_id)
        if workshop is None:
            raise NotFoundError("Workshop not found", details={"workshop_id": str(workshop_id)})
        return workshop

    def _create(self, trx: Session, data: schemas.WorkshopCreate) -> models.Workshop:
        workshop = models.Workshop(**data.to_row(), status="planned", created_by=self.user_id)
        trx.add(workshop)
        trx.flush()
        audit.log(
            trx,
            action=AuditAction.WORKSHOP_CREATE,
            target_type="workshop",
            target_id=workshop.id,
            actor_user_id=self.user_id,
            metadata={"title": workshop.title},
        )
        return workshop

    def _can_edit_pricing(self, trx: Session, workshop_id: uuid.UUID) -> bool:
        workshop = trx.get(models.Workshop, workshop_id)
        if workshop is None:
            return False
        if workshop.status == "planned":
            return True
        registrations = (
            trx.query(models.WorkshopRegistration)
            .filter(models.WorkshopRegistration.workshop_id == workshop_id)
            .count()
        )
        return registrations == 0

    def _set_status(self, trx: Session, workshop, status: str, action: AuditAction, metadata=None):
        previous = workshop.status
        workshop.status = status
        trx.flush()
        audit.log(
            trx,
            action=action,
            target_type="workshop",
            target_id=workshop.id,
            actor_user_id=self.user_id,
            metadata={"from": previous, "to": status, **(metadata or {})},
        )
        return workshop

    def _refund_registrations(self, trx: Session, workshop: models.Workshop) -> int:
        registrations = (
            trx.query(models.WorkshopRegistration)
            .filter(
                models.WorkshopRegistration.workshop_id == workshop.id,
                models.WorkshopRegistration.status == "confirmed",
                models.WorkshopRegistration.stripe_payment_intent_id.isnot(None),
            )
            .all()
        )
        for registration in registrations:
            if registration.amount_paid > 0:
                try:
                    self.payments.create_refund(
                        payment_intent_id=registration.stripe_payment_intent_id,
                        amount=registration.amount_paid,
                    )
                except PaymentError as exc:
                    if not is_already_refunded(exc):
                        raise
                    self.logger.warning(
                        "workshop_cancel_refund_skipped: registration_id=%s reason=already_refunded",
                        registration.id,
                    )
            registration.status = "refunded"
        trx.flush()
        return len(registrations)
