"""
API dependency helpers.

Provides the caller context, role guards, and the external gateways routes
hand to services (overridable through ``app.dependency_overrides``).
"""
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from clubhouse.api.auth import get_or_create_profile, resolve_identity_from_headers
from clubhouse.api.permissions import authorize
from clubhouse.db.database import get_db
from clubhouse.db.rls import build_claims
from clubhouse.errors import AuthenticationRequired, NotFoundError
from clubhouse.services.payments import get_payment_gateway
from clubhouse.services.workshop_generator import get_workshop_generator
from clubhouse.utils.feature_flags import inventory_feature_enabled, refunds_feature_enabled
from clubhouse.utils.runtime import DEV_USER_EMAIL, DEV_USER_NAME, dev_mode_active

# Contract:
# Returns (UserProfile, current_user_context_dict)
# Raises 401 if identity cannot be resolved.


def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[Any, Dict[str, Any]]:
    if dev_mode_active():
        name, email = DEV_USER_NAME, DEV_USER_EMAIL
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise AuthenticationRequired()
    profile = get_or_create_profile(db, email=email, display_name=name)
    roles = sorted(profile.roles or [])
    current_user = {
        "id": profile.id,
        "email": profile.email,
        "display_name": profile.display_name,
        "roles": roles,
        "claims": build_claims(profile.id, profile.email, roles),
    }
    return profile, current_user


def require_roles(allowed: Iterable[str]):
    """Dependency factory: caller context restricted to ``allowed`` roles."""
    allowed = frozenset(allowed)

    def _dependency(user_context=Depends(get_current_user_context)):
        _, current_user = user_context
        authorize(current_user, allowed)
        return user_context

    return _dependency


def get_payments():
    return get_payment_gateway()


def get_generator():
    return get_workshop_generator()


def require_inventory_feature():
    if not inventory_feature_enabled():
        raise NotFoundError("Not found")


def require_refunds_feature():
    if not refunds_feature_enabled():
        raise NotFoundError("Not found")


def claims_of(user_context) -> Dict[str, Any]:
    _, current_user = user_context
    return current_user["claims"]
