"""
User profile repository functions.
"""
from __future__ import annotations

import uuid
from typing import Iterable, Optional
from sqlalchemy.orm import Session

from clubhouse.db import models


def get_profile(db: Session, profile_id: uuid.UUID) -> Optional[models.UserProfile]:
    return db.query(models.UserProfile).filter(models.UserProfile.id == profile_id).first()


def get_profile_by_email(db: Session, email: str) -> Optional[models.UserProfile]:
    return db.query(models.UserProfile).filter(models.UserProfile.email == email.strip().lower()).first()


def create_profile(
    db: Session,
    *,
    email: str,
    roles: Iterable[str],
    display_name: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    is_active: bool = True,
    **extra,
) -> models.UserProfile:
    profile = models.UserProfile(
        email=email.strip().lower(),
        display_name=display_name,
        first_name=first_name,
        last_name=last_name,
        roles=sorted(set(roles)),
        is_active=is_active,
        **extra,
    )
    db.add(profile)
    db.flush()
    return profile


def add_roles(db: Session, profile: models.UserProfile, roles: Iterable[str]) -> bool:
    """Merge ``roles`` into the profile. Returns True when something changed."""
    current = set(profile.roles or [])
    merged = current | set(roles)
    if merged == current:
        return False
    # Reassign so the JSON column is flagged dirty
    profile.roles = sorted(merged)
    db.flush()
    return True
