import uuid
from typing import Any, Dict, List, Sequence

from clubhouse.db import models, schemas
from clubhouse.db.models import as_aware, now_utc
from clubhouse.errors import InvalidStateError, NotFoundError, ValidationFailed
from clubhouse.services.base import BaseService


class AttendanceService(BaseService):
    logger_name = "clubhouse.attendance"

    def get_workshop_attendance(self, workshop_id: uuid.UUID) -> List[Dict[str, Any]]:
        self.logger.info("attendance_list: workshop_id=%s", workshop_id)
        with self.transaction() as trx:
            rows = (
                trx.query(models.WorkshopRegistration)
                .filter(
                    models.WorkshopRegistration.workshop_id == workshop_id,
                    models.WorkshopRegistration.status == "confirmed",
                )
                .order_by(models.WorkshopRegistration.created_at.asc())
                .all()
            )
            return [
                {
                    "registration": r,
                    "first_name": r.member.first_name if r.member else None,
                    "last_name": r.member.last_name if r.member else None,
                }
                for r in rows
            ]

    def update_attendance(
        self, workshop_id: uuid.UUID, updates: Sequence[schemas.AttendanceUpdate]
    ) -> List[models.WorkshopRegistration]:
        self.logger.info("attendance_update: workshop_id=%s count=%s", workshop_id, len(updates))
        if not updates:
            raise ValidationFailed("At least one attendance update is required")
        with self.transaction() as trx:
            workshop = trx.get(models.Workshop, workshop_id)
            if workshop is None:
                raise NotFoundError("Workshop not found")
            now = now_utc()
            if as_aware(workshop.start_date) > now:
                raise InvalidStateError("Cannot update attendance for a workshop that has not started yet")
            updated = []
            for item in updates:
                registration = (
                    trx.query(models.WorkshopRegistration)
                    .filter(
                        models.WorkshopRegistration.id == item.registration_id,
                        models.WorkshopRegistration.workshop_id == workshop_id,
                    )
                    .first()
                )
                if registration is None:
                    # Rows from another workshop are skipped
                    continue
                registration.attendance_status = item.attendance_status
                registration.attendance_marked_at = now
                registration.attendance_marked_by = self.user_id
                registration.attendance_notes = item.notes
                updated.append(registration)
            trx.flush()
            return updated
