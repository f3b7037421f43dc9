"""
Authentication helpers and identity resolution.

Parses oauth2-proxy headers, normalizes emails, and fetches or creates the
caller's profile, promoting ``ADMIN_EMAILS`` to the admin role.
"""
import os
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from clubhouse.db import models
from clubhouse.db.repositories import profiles as profile_repo
from clubhouse.utils.role_permissions import ROLE_ADMIN, ROLE_MEMBER


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower() or None


def _admin_emails() -> set:
    values = set()
    for entry in os.getenv("ADMIN_EMAILS", "").split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def get_or_create_profile(db: Session, email: str, display_name: Optional[str] = None) -> models.UserProfile:
    profile = profile_repo.get_profile_by_email(db, email)
    is_admin = email in _admin_emails()
    if profile is None:
        roles = [ROLE_MEMBER, ROLE_ADMIN] if is_admin else [ROLE_MEMBER]
        profile = profile_repo.create_profile(
            db,
            email=email,
            roles=roles,
            display_name=display_name or email.split("@")[0],
        )
        db.commit()
        return profile
    # Existing profiles might predate a new ADMIN_EMAILS value
    if is_admin and profile_repo.add_roles(db, profile, [ROLE_ADMIN]):
        db.commit()
    return profile
