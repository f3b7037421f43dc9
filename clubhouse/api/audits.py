"""
Audit log API endpoints.

Lists audit entries newest first for the settings roles; under PostgreSQL
the read also runs through the audit_logs RLS policy.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubhouse.api.deps import claims_of, require_roles
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.db.database import get_db
from clubhouse.db.repositories import audits as audit_repo
from clubhouse.db.rls import execute_with_rls
from clubhouse.utils.role_permissions import SETTINGS_ROLES

router = APIRouter(prefix="/api/audits", tags=["audits"])


@router.get("")
def list_audit_logs(
    action_type: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
    target_id: Optional[uuid.UUID] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_roles(SETTINGS_ROLES)),
):
    logs = execute_with_rls(
        db,
        claims_of(user_context),
        lambda trx: audit_repo.get_audit_logs(
            trx, user_id=user_id, action_type=action_type, target_id=target_id, skip=skip, limit=limit
        ),
    )
    return success([schemas.AuditLog.model_validate(log) for log in logs])
