"""
Tests for role-based capability checks.

Covers:
- Permission table entries
- Role monotonicity
- Default deny for unconfigured pairs and unknown roles
- require_capability raising Forbidden
"""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import Forbidden
from app.core.org_context import OrgContext
from app.core.rbac import (
    DELETE,
    MANAGE,
    PERMISSIONS,
    READ,
    WRITE,
    can,
    min_role,
    require_capability,
    role_rank,
)
from autotest_shared.schemas.organizations import ROLE_ORDER, Role


def _ctx(role) -> OrgContext:
    return OrgContext(user_id=uuid.uuid4(), active_org_id=uuid.uuid4(), role=role)


class TestRoleRank:
    def test_order(self):
        assert [role_rank(r) for r in ROLE_ORDER] == [0, 1, 2, 3]
        assert role_rank(Role.VIEWER) < role_rank(Role.MEMBER) < role_rank(Role.ADMIN) < role_rank(Role.OWNER)

    def test_accepts_strings(self):
        assert role_rank("ADMIN") == role_rank(Role.ADMIN)

    def test_unknown_is_negative(self):
        assert role_rank("SUPERUSER") == -1
        assert role_rank(None) == -1


class TestPermissionTable:
    def test_members_manage_is_admin(self):
        assert min_role(MANAGE, "members") == Role.ADMIN

    def test_org_delete_is_owner(self):
        assert min_role(DELETE, "orgs") == Role.OWNER

    @pytest.mark.parametrize("resource", ["scenarios", "prompts", "variables"])
    def test_content_resources(self, resource):
        assert min_role(READ, resource) == Role.VIEWER
        assert min_role(WRITE, resource) == Role.MEMBER
        assert min_role(DELETE, resource) == Role.MEMBER
        assert min_role(MANAGE, resource) == Role.ADMIN

    def test_unconfigured_pair(self):
        assert min_role(READ, "billing") is None


class TestCan:
    def test_admin_can_manage_members(self):
        assert can(_ctx(Role.ADMIN), MANAGE, "members") is True

    def test_viewer_cannot_manage_members(self):
        assert can(_ctx(Role.VIEWER), MANAGE, "members") is False

    def test_unconfigured_resource_denied_for_every_role(self):
        for role in ROLE_ORDER:
            assert can(_ctx(role), READ, "billing") is False

    def test_unconfigured_action_denied(self):
        assert can(_ctx(Role.OWNER), "export", "members") is False

    def test_unknown_role_denied(self):
        assert can(_ctx("SUPERUSER"), READ, "members") is False

    def test_monotonic(self):
        """If a role is allowed, every higher role is too."""
        for (resource, action) in PERMISSIONS:
            allowed = [can(_ctx(role), action, resource) for role in ROLE_ORDER]
            first = allowed.index(True)
            assert all(allowed[first:]), (resource, action)
            assert not any(allowed[:first]), (resource, action)

    def test_owner_can_everything_configured(self):
        for (resource, action) in PERMISSIONS:
            assert can(_ctx(Role.OWNER), action, resource)


class TestRequireCapability:
    def test_passes(self):
        require_capability(_ctx(Role.MEMBER), WRITE, "prompts")

    def test_raises_forbidden(self):
        with pytest.raises(Forbidden) as exc_info:
            require_capability(_ctx(Role.MEMBER), MANAGE, "members")
        assert exc_info.value.status_code == 403
        assert exc_info.value.code.value == "FORBIDDEN"
