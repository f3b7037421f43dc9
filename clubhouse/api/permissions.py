"""
Role checks shared by route dependencies.

Roles travel in the caller claims (``app_metadata.roles``) so the same set is
seen by the API layer and by the database policies.
"""
from typing import Any, Dict, Iterable, Optional, Set

from clubhouse.errors import AuthenticationRequired, PermissionDenied
from clubhouse.utils.role_permissions import has_any_role


def roles_from_claims(claims: Optional[Dict[str, Any]]) -> Set[str]:
    if not claims:
        return set()
    return set((claims.get("app_metadata") or {}).get("roles") or [])


def authorize(current_user: Optional[Dict[str, Any]], allowed: Iterable[str]) -> Dict[str, Any]:
    """Return ``current_user`` when one of its roles is in ``allowed``."""
    if not current_user:
        raise AuthenticationRequired()
    if not has_any_role(current_user.get("roles"), allowed):
        raise PermissionDenied()
    return current_user
