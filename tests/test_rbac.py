"""Tests for the role table and permission checks."""
from types import SimpleNamespace

import pytest

from qrstudio.core import rbac


def _who(id, role):
    return SimpleNamespace(id=id, role=role)


def test_super_admin_wildcard_grants_anything():
    assert rbac.has_permission("superAdmin", "qr.create")
    assert rbac.has_permission("superAdmin", "something.invented")


def test_exact_permission_match_only():
    assert rbac.has_permission("editor", "qr.create")
    assert rbac.has_permission("editor", "bulk.generate")
    assert not rbac.has_permission("editor", "user.manage")
    assert not rbac.has_permission("editor", "qr")
    assert not rbac.has_permission("viewer", "qr.create")
    assert rbac.has_permission("guest", "qr.scan")


ALL_PERMISSION_KEYS = sorted(
    {p["key"] for category in rbac.PERMISSION_CATALOG for p in category["permissions"]}
    | {p for role in rbac.ROLES.values() for p in role["permissions"] if p != rbac.WILDCARD}
)
PLAIN_ROLES = [key for key, role in rbac.ROLES.items() if rbac.WILDCARD not in role["permissions"]]


@pytest.mark.parametrize("role", PLAIN_ROLES)
@pytest.mark.parametrize("permission", ALL_PERMISSION_KEYS)
def test_permission_granted_iff_listed(role, permission):
    assert rbac.has_permission(role, permission) == (permission in rbac.ROLES[role]["permissions"])


def test_unknown_role_has_nothing():
    assert not rbac.has_permission("nobody", "qr.scan")
    assert rbac.role_level("nobody") == 0
    assert not rbac.is_valid_role("user")


def test_hierarchy_sorted_by_level_descending():
    hierarchy = rbac.get_role_hierarchy()
    assert [r["key"] for r in hierarchy] == ["superAdmin", "admin", "editor", "viewer", "guest"]
    assert [r["level"] for r in hierarchy] == [100, 80, 60, 40, 20]
    assert set(hierarchy[0]) == {"key", "name", "level", "permissions", "description"}


def test_permissions_catalog_categories():
    catalog = rbac.get_permissions_list()
    assert [c["category"] for c in catalog] == ["QR Codes", "Analytics", "Users", "Team", "Settings"]
    qr_keys = [p["key"] for p in catalog[0]["permissions"]]
    assert "qr.manage_all" in qr_keys


def test_catalog_copies_are_independent():
    catalog = rbac.get_permissions_list()
    catalog[0]["permissions"].clear()
    assert rbac.get_permissions_list()[0]["permissions"]


@pytest.mark.parametrize("manager,target,expected", [
    ("superAdmin", "admin", True),
    ("admin", "editor", True),
    ("admin", "admin", False),
    ("editor", "admin", False),
    ("viewer", "guest", True),
    ("guest", "guest", False),
    ("admin", "mystery", True),
])
def test_can_manage_user_compares_levels(manager, target, expected):
    assert rbac.can_manage_user(_who(1, manager), _who(2, target)) is expected


def test_nobody_manages_themselves():
    assert not rbac.can_manage_user(_who(7, "superAdmin"), _who(7, "superAdmin"))


def test_can_assign_role_caps_at_own_level():
    assert rbac.can_assign_role("admin", "editor")
    assert rbac.can_assign_role("admin", "admin")
    assert not rbac.can_assign_role("admin", "superAdmin")
    assert rbac.can_assign_role("superAdmin", "superAdmin")
