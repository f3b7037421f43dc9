"""
Shared plumbing for the RLS-scoped service layer.

Each public method opens exactly one :func:`rls_transaction`; the ``_name(trx, ...)``
variants run inside a transaction owned by the caller so several services can
cooperate on one unit of work.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from clubhouse.db.rls import Claims, rls_transaction, unscoped_transaction
from clubhouse.errors import AuthenticationRequired


class BaseService:
    logger_name = "clubhouse.services"

    def __init__(self, db: Session, claims: Optional[Claims], logger: Optional[logging.Logger] = None):
        self.db = db
        self.claims = claims or {}
        self.logger = logger or logging.getLogger(self.logger_name)

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        sub = self.claims.get("sub")
        return uuid.UUID(str(sub)) if sub else None

    def require_user_id(self) -> uuid.UUID:
        user_id = self.user_id
        if user_id is None:
            raise AuthenticationRequired()
        return user_id

    @property
    def roles(self) -> set:
        return set((self.claims.get("app_metadata") or {}).get("roles") or [])

    def transaction(self):
        return rls_transaction(self.db, self.claims)

    def unscoped_transaction(self):
        return unscoped_transaction(self.db)
