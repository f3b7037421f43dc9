"""
Club settings endpoints (committee only), plus the public waitlist status.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubhouse.api.deps import claims_of, require_roles
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.db.database import get_db
from clubhouse.db.rls import anonymous_claims
from clubhouse.errors import NotFoundError
from clubhouse.services import SettingsService
from clubhouse.services.settings_service import INSURANCE_FORM_LINK, WAITLIST_OPEN
from clubhouse.utils.role_permissions import SETTINGS_ROLES

router = APIRouter(prefix="/api/settings", tags=["settings"])

settings_manager = require_roles(SETTINGS_ROLES)


def _setting(row):
    return schemas.Setting.model_validate(row)


@router.get("")
def list_settings(
    keys: Optional[List[str]] = Query(default=None),
    db: Session = Depends(get_db),
    user_context=Depends(settings_manager),
):
    return success([_setting(s) for s in SettingsService(db, claims_of(user_context)).find_many(keys)])


@router.get("/waitlist-status")
def waitlist_status(db: Session = Depends(get_db)):
    return success({"open": SettingsService(db, anonymous_claims()).is_waitlist_open()})


@router.post("/waitlist/toggle")
def toggle_waitlist(
    db: Session = Depends(get_db),
    user_context=Depends(settings_manager),
):
    setting = SettingsService(db, claims_of(user_context)).toggle_waitlist()
    return success(_setting(setting), message=f"{WAITLIST_OPEN} set to {setting.value}")


@router.put("/insurance-form-link")
def update_insurance_form_link(
    payload: schemas.InsuranceFormLink,
    db: Session = Depends(get_db),
    user_context=Depends(settings_manager),
):
    setting = SettingsService(db, claims_of(user_context)).update_insurance_form_link(payload.url)
    return success(_setting(setting), message=f"{INSURANCE_FORM_LINK} updated")


@router.get("/{key}")
def get_setting(
    key: str,
    db: Session = Depends(get_db),
    user_context=Depends(settings_manager),
):
    setting = SettingsService(db, claims_of(user_context)).find_by_key(key)
    if setting is None:
        raise NotFoundError("Setting not found")
    return success(_setting(setting))


@router.put("/{key}")
def update_setting(
    key: str,
    payload: schemas.SettingUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(settings_manager),
):
    setting = SettingsService(db, claims_of(user_context)).update(key, payload.value)
    return success(_setting(setting), message="Setting updated")


@router.post("/{key}/toggle")
def toggle_setting(
    key: str,
    db: Session = Depends(get_db),
    user_context=Depends(settings_manager),
):
    return success(_setting(SettingsService(db, claims_of(user_context)).toggle(key)))
