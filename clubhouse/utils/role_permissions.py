"""
Club role constants and the role groups that gate each area.

Route dependencies and the RLS policies in migrations share these groups, so
changes here must be mirrored in the policy revision.
"""

from typing import FrozenSet, Iterable, Set
from enum import Enum


ROLE_ADMIN = "admin"
ROLE_PRESIDENT = "president"
ROLE_TREASURER = "treasurer"
ROLE_COMMITTEE_COORDINATOR = "committee_coordinator"
ROLE_SPARRING_COORDINATOR = "sparring_coordinator"
ROLE_WORKSHOP_COORDINATOR = "workshop_coordinator"
ROLE_BEGINNERS_COORDINATOR = "beginners_coordinator"
ROLE_QUARTERMASTER = "quartermaster"
ROLE_PR_MANAGER = "pr_manager"
ROLE_VOLUNTEER_COORDINATOR = "volunteer_coordinator"
ROLE_RESEARCH_COORDINATOR = "research_coordinator"
ROLE_COACH = "coach"
ROLE_MEMBER = "member"

ALLOWED_ROLES: FrozenSet[str] = frozenset({
    ROLE_ADMIN,
    ROLE_PRESIDENT,
    ROLE_TREASURER,
    ROLE_COMMITTEE_COORDINATOR,
    ROLE_SPARRING_COORDINATOR,
    ROLE_WORKSHOP_COORDINATOR,
    ROLE_BEGINNERS_COORDINATOR,
    ROLE_QUARTERMASTER,
    ROLE_PR_MANAGER,
    ROLE_VOLUNTEER_COORDINATOR,
    ROLE_RESEARCH_COORDINATOR,
    ROLE_COACH,
    ROLE_MEMBER,
})

# Derived role groups
WORKSHOP_ROLES: FrozenSet[str] = frozenset({ROLE_WORKSHOP_COORDINATOR, ROLE_PRESIDENT, ROLE_ADMIN})
ATTENDEE_MANAGEMENT_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_PRESIDENT, ROLE_BEGINNERS_COORDINATOR})
INVENTORY_ROLES: FrozenSet[str] = frozenset({ROLE_QUARTERMASTER, ROLE_ADMIN, ROLE_PRESIDENT})
INVENTORY_READ_ROLES: FrozenSet[str] = INVENTORY_ROLES | {ROLE_MEMBER}
SETTINGS_ROLES: FrozenSet[str] = frozenset({ROLE_PRESIDENT, ROLE_COMMITTEE_COORDINATOR, ROLE_ADMIN})
INVITATION_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_PRESIDENT, ROLE_COMMITTEE_COORDINATOR})


class RoleEnum(str, Enum):
    """Enum for club roles used in schemas and validation."""
    admin = ROLE_ADMIN
    president = ROLE_PRESIDENT
    treasurer = ROLE_TREASURER
    committee_coordinator = ROLE_COMMITTEE_COORDINATOR
    sparring_coordinator = ROLE_SPARRING_COORDINATOR
    workshop_coordinator = ROLE_WORKSHOP_COORDINATOR
    beginners_coordinator = ROLE_BEGINNERS_COORDINATOR
    quartermaster = ROLE_QUARTERMASTER
    pr_manager = ROLE_PR_MANAGER
    volunteer_coordinator = ROLE_VOLUNTEER_COORDINATOR
    research_coordinator = ROLE_RESEARCH_COORDINATOR
    coach = ROLE_COACH
    member = ROLE_MEMBER


def validate_role(role: str) -> None:
    """
    Validate that a role is allowed.

    Raises:
        ValueError: If role is not allowed
    """
    if role not in ALLOWED_ROLES:
        raise ValueError(f"Invalid role '{role}'. Allowed roles: {sorted(ALLOWED_ROLES)}")


def normalize_roles(roles: Iterable[str] | None) -> Set[str]:
    """Return the known roles from ``roles``, silently dropping unknown names."""
    return {r for r in (roles or []) if r in ALLOWED_ROLES}


def has_any_role(roles: Iterable[str] | None, allowed: Iterable[str]) -> bool:
    return bool(set(roles or []) & set(allowed))


def can_manage_workshops(roles: Iterable[str] | None) -> bool:
    return has_any_role(roles, WORKSHOP_ROLES)
