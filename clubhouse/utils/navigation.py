"""
Sidebar navigation tree and role-based filtering.

Items without ``roles`` are visible to every authenticated user; groups whose
items are all filtered out are dropped.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from clubhouse.utils.role_permissions import (
    ATTENDEE_MANAGEMENT_ROLES,
    INVENTORY_READ_ROLES,
    INVENTORY_ROLES,
    INVITATION_ROLES,
    SETTINGS_ROLES,
    WORKSHOP_ROLES,
)

NavItem = Dict[str, Any]
NavGroup = Dict[str, Any]


NAVIGATION: List[NavGroup] = [
    {
        "label": "Club",
        "items": [
            {"title": "Dashboard", "url": "/dashboard"},
            {"title": "Workshops", "url": "/dashboard/workshops"},
            {"title": "My profile", "url": "/dashboard/profile"},
        ],
    },
    {
        "label": "Management",
        "items": [
            {"title": "Workshop planning", "url": "/dashboard/workshops/manage", "roles": sorted(WORKSHOP_ROLES)},
            {"title": "Beginners workshops", "url": "/dashboard/beginners", "roles": sorted(ATTENDEE_MANAGEMENT_ROLES)},
            {"title": "Members", "url": "/dashboard/members", "roles": sorted(INVITATION_ROLES)},
            {"title": "Waitlist", "url": "/dashboard/waitlist", "roles": sorted(INVITATION_ROLES)},
        ],
    },
    {
        "label": "Inventory",
        "items": [
            {"title": "Equipment", "url": "/dashboard/inventory", "roles": sorted(INVENTORY_READ_ROLES)},
            {"title": "Containers", "url": "/dashboard/inventory/containers", "roles": sorted(INVENTORY_ROLES)},
            {"title": "Categories", "url": "/dashboard/inventory/categories", "roles": sorted(INVENTORY_ROLES)},
        ],
    },
    {
        "label": "Administration",
        "items": [
            {"title": "Settings", "url": "/dashboard/settings", "roles": sorted(SETTINGS_ROLES)},
            {"title": "Audit log", "url": "/dashboard/audits", "roles": sorted(SETTINGS_ROLES)},
        ],
    },
]


def _item_visible(item: NavItem, roles: set) -> bool:
    required = item.get("roles")
    if not required:
        return True
    return bool(roles & set(required))


def filter_navigation(groups: Iterable[NavGroup], roles: Iterable[str]) -> List[NavGroup]:
    role_set = set(roles or [])
    filtered: List[NavGroup] = []
    for group in groups:
        items = [item for item in group.get("items", []) if _item_visible(item, role_set)]
        if items:
            filtered.append({**group, "items": items})
    return filtered
