import uuid
from typing import List, Optional

from clubhouse.db import models, schemas
from clubhouse.errors import ConflictError, InvalidStateError, NotFoundError
from clubhouse.services.base import BaseService
from clubhouse.services.settings_service import SettingsService


class WaitlistService(BaseService):
    logger_name = "clubhouse.waitlist"

    def join(self, data: schemas.WaitlistJoin) -> models.WaitlistEntry:
        """Public signup; runs unscoped because the visitor has no account."""
        self.logger.info("waitlist_join: email=%s", data.email)
        with self.unscoped_transaction() as trx:
            if not SettingsService(trx, self.claims, self.logger)._is_waitlist_open(trx):
                raise InvalidStateError("Waitlist is closed")
            exists = trx.query(models.WaitlistEntry).filter(models.WaitlistEntry.email == data.email).first()
            if exists is not None:
                raise ConflictError("Email already on waitlist")
            entry = models.WaitlistEntry(**data.model_dump(), status="waiting")
            trx.add(entry)
            trx.flush()
            return entry

    def find_many(self, status: Optional[str] = None) -> List[models.WaitlistEntry]:
        with self.transaction() as trx:
            query = trx.query(models.WaitlistEntry)
            if status:
                query = query.filter(models.WaitlistEntry.status == status)
            return query.order_by(models.WaitlistEntry.created_at.asc()).all()

    def update_status(self, entry_id: uuid.UUID, status: str, admin_notes: Optional[str] = None) -> models.WaitlistEntry:
        self.logger.info("waitlist_update_status: entry_id=%s status=%s", entry_id, status)
        with self.transaction() as trx:
            entry = trx.get(models.WaitlistEntry, entry_id)
            if entry is None:
                raise NotFoundError("Waitlist entry not found")
            entry.status = status
            if admin_notes is not None:
                entry.admin_notes = admin_notes
            trx.flush()
            return entry
