import pytest

from clubhouse.utils.role_permissions import (
    ALLOWED_ROLES,
    ATTENDEE_MANAGEMENT_ROLES,
    INVENTORY_READ_ROLES,
    INVENTORY_ROLES,
    RoleEnum,
    WORKSHOP_ROLES,
    can_manage_workshops,
    has_any_role,
    normalize_roles,
    validate_role,
)


class TestRolePermissions:
    """Role constants and the groups that gate each area."""

    def test_validate_role_valid_roles(self):
        for role in ALLOWED_ROLES:
            validate_role(role)

    def test_validate_role_invalid_role(self):
        with pytest.raises(ValueError, match="Invalid role 'owner'"):
            validate_role("owner")

    def test_enum_matches_allowed_roles(self):
        assert {r.value for r in RoleEnum} == set(ALLOWED_ROLES)

    def test_normalize_roles_drops_unknown(self):
        assert normalize_roles(["member", "wizard", "coach"]) == {"member", "coach"}
        assert normalize_roles(None) == set()

    def test_has_any_role(self):
        assert has_any_role(["member", "treasurer"], {"treasurer"}) is True
        assert has_any_role([], {"treasurer"}) is False
        assert has_any_role(None, {"treasurer"}) is False

    def test_workshop_management(self):
        assert can_manage_workshops(["workshop_coordinator"]) is True
        assert can_manage_workshops(["president"]) is True
        assert can_manage_workshops(["member", "coach"]) is False

    def test_groups_include_admin(self):
        for group in (WORKSHOP_ROLES, ATTENDEE_MANAGEMENT_ROLES, INVENTORY_ROLES):
            assert "admin" in group

    def test_members_read_inventory_only(self):
        assert "member" in INVENTORY_READ_ROLES
        assert "member" not in INVENTORY_ROLES
        assert INVENTORY_ROLES <= INVENTORY_READ_ROLES
