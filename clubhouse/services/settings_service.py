from typing import List, Optional, Sequence
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from clubhouse import audit
from clubhouse.audit import AuditAction
from clubhouse.db import models
from clubhouse.errors import NotFoundError, ValidationFailed
from clubhouse.services.base import BaseService

WAITLIST_OPEN = "waitlist_open"
INSURANCE_FORM_LINK = "hema_insurance_form_link"
SUBSCRIPTION_MAX_PAUSE_MONTHS = "subscription_max_pause_months"
SUBSCRIPTION_MIN_PAUSE_DAYS = "subscription_min_pause_days"

KNOWN_SETTINGS = {
    WAITLIST_OPEN: ("boolean", "false", "Whether the public waitlist accepts new entries"),
    INSURANCE_FORM_LINK: ("text", "", "Link to the HEMA insurance form shown during signup"),
    SUBSCRIPTION_MAX_PAUSE_MONTHS: ("text", "3", "Maximum subscription pause in months"),
    SUBSCRIPTION_MIN_PAUSE_DAYS: ("text", "7", "Minimum subscription pause in days"),
}

BOOLEAN_VALUES = ("true", "false")


class SettingsService(BaseService):
    logger_name = "clubhouse.settings"

    def find_by_key(self, key: str) -> Optional[models.Setting]:
        with self.transaction() as trx:
            return self._find_by_key(trx, key)

    def find_many(self, keys: Optional[Sequence[str]] = None) -> List[models.Setting]:
        with self.transaction() as trx:
            query = trx.query(models.Setting)
            if keys:
                query = query.filter(models.Setting.key.in_(list(keys)))
            return query.order_by(models.Setting.key.asc()).all()

    def update(self, key: str, value: str) -> models.Setting:
        self.logger.info("setting_update: key=%s", key)
        with self.transaction() as trx:
            return self._update(trx, key, value)

    def update_insurance_form_link(self, url: str) -> models.Setting:
        parsed = urlparse((url or "").strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationFailed("Insurance form link must be a valid http(s) URL")
        return self.update(INSURANCE_FORM_LINK, url.strip())

    def toggle(self, key: str) -> models.Setting:
        self.logger.info("setting_toggle: key=%s", key)
        with self.transaction() as trx:
            setting = self._require(trx, key)
            if setting.type != "boolean":
                raise ValidationFailed("Only boolean settings can be toggled")
            return self._update(trx, key, "false" if setting.value == "true" else "true")

    def toggle_waitlist(self) -> models.Setting:
        return self.toggle(WAITLIST_OPEN)

    def is_waitlist_open(self) -> bool:
        with self.unscoped_transaction() as trx:
            return self._is_waitlist_open(trx)

    def _is_waitlist_open(self, trx: Session) -> bool:
        setting = self._find_by_key(trx, WAITLIST_OPEN)
        return setting is not None and setting.value == "true"

    def _find_by_key(self, trx: Session, key: str) -> Optional[models.Setting]:
        return trx.query(models.Setting).filter(models.Setting.key == key).first()

    def _require(self, trx: Session, key: str) -> models.Setting:
        setting = self._find_by_key(trx, key)
        if setting is None:
            raise NotFoundError("Setting not found")
        return setting

    def _update(self, trx: Session, key: str, value: str) -> models.Setting:
        setting = self._require(trx, key)
        if setting.type == "boolean" and value not in BOOLEAN_VALUES:
            raise ValidationFailed("Boolean settings only accept 'true' or 'false'")
        previous = setting.value
        setting.value = value
        setting.updated_by = self.user_id
        trx.flush()
        audit.log(
            trx,
            action=AuditAction.SETTING_UPDATE,
            target_type="setting",
            target_id=setting.id,
            actor_user_id=self.user_id,
            metadata={"key": key, "from": previous, "to": value},
        )
        return setting

    def ensure_defaults(self) -> int:
        """Insert any known setting that is missing. Returns the number created."""
        created = 0
        with self.transaction() as trx:
            for key, (kind, value, description) in KNOWN_SETTINGS.items():
                if self._find_by_key(trx, key) is None:
                    trx.add(models.Setting(key=key, type=kind, value=value, description=description))
                    created += 1
            trx.flush()
        return created
