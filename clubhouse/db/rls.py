"""
RLS-scoped transactions.

Every service operation runs through :func:`rls_transaction`: the session is
bound to the caller's claims so PostgreSQL row-level-security policies see the
same identity the API layer authenticated, then committed or rolled back as a
unit. Binding is a no-op on SQLite or when ``ENABLE_RLS`` is off.
"""
from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import Session

from clubhouse.utils.runtime import rls_db_role, rls_enabled

logger = logging.getLogger("clubhouse.rls")

Claims = Dict[str, Any]
T = TypeVar("T")


def build_claims(user_id: Optional[uuid.UUID], email: Optional[str], roles: Iterable[str]) -> Claims:
    """Claims payload in the shape the policies read from ``request.jwt.claims``."""
    return {
        "sub": str(user_id) if user_id else None,
        "role": "authenticated" if user_id else "anon",
        "email": email,
        "app_metadata": {"roles": sorted(set(roles or []))},
    }


def anonymous_claims() -> Claims:
    return build_claims(None, None, [])


def _is_postgres(db: Session) -> bool:
    bind = db.get_bind()
    return bind is not None and bind.dialect.name == "postgresql"


def bind_claims(db: Session, claims: Optional[Claims]) -> None:
    if not rls_enabled() or not _is_postgres(db):
        return
    claims = claims or anonymous_claims()
    db.execute(
        text("SELECT set_config('request.jwt.claims', :claims, true)"),
        {"claims": json.dumps(claims)},
    )
    db.execute(
        text("SELECT set_config('request.jwt.claim.sub', :sub, true)"),
        {"sub": claims.get("sub") or ""},
    )
    role = rls_db_role()
    # Role names cannot be bound parameters; only plain identifiers are accepted.
    if not role.replace("_", "").isalnum():
        raise ValueError(f"Invalid RLS_DB_ROLE: {role!r}")
    db.execute(text(f"SET LOCAL ROLE {role}"))


@contextmanager
def rls_transaction(db: Session, claims: Optional[Claims]) -> Iterator[Session]:
    """Bind claims, yield the session, commit on success and roll back on error."""
    try:
        bind_claims(db, claims)
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def execute_with_rls(db: Session, claims: Optional[Claims], fn: Callable[[Session], T]) -> T:
    with rls_transaction(db, claims) as trx:
        return fn(trx)


@contextmanager
def unscoped_transaction(db: Session) -> Iterator[Session]:
    """Transaction without claims binding, for the public invitation flow."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


__all__ = [
    "Claims",
    "build_claims",
    "anonymous_claims",
    "bind_claims",
    "rls_transaction",
    "execute_with_rls",
    "unscoped_transaction",
]
