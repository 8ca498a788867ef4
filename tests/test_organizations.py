"""
Integration tests for Organization endpoints.

Tests cover:
- Listing and creating orgs (creator becomes OWNER, unique slugs)
- Rename / delete capability checks against the path org
- Delete cleanup (pointers, memberships, claim cookies)
- Error envelope shape
"""

from __future__ import annotations

import uuid

import pytest

from app.services.organizations import slugify
from autotest_shared.schemas.organizations import MemberStatus, Role


class TestSlugify:
    def test_basic(self):
        assert slugify("Acme Labs") == "acme-labs"

    def test_strips_punctuation(self):
        assert slugify("  Bob's  Workspace!! ") == "bob-s-workspace"

    def test_empty(self):
        assert slugify("!!!") == ""


class TestListOrgs:
    async def test_requires_session(self, client):
        resp = await client.get("/api/v1/orgs")
        assert resp.status_code == 401
        assert resp.json() == {
            "error": {"code": "UNAUTHENTICATED", "message": "Authentication required", "status": 401}
        }

    async def test_lists_active_memberships_only(self, client, seed):
        user = await seed.user()
        other = await seed.user()
        mine = await seed.org("Mine", owner=user)
        shared = await seed.org("Shared", owner=other)
        left = await seed.org("Left", owner=other)
        await seed.member(shared, user, Role.VIEWER)
        await seed.member(left, user, Role.ADMIN, status=MemberStatus.REMOVED)

        resp = await client.get("/api/v1/orgs", headers=seed.headers(user))

        assert resp.status_code == 200
        roles = {item["id"]: item["role"] for item in resp.json()}
        assert roles == {str(mine.id): "OWNER", str(shared.id): "VIEWER"}

    async def test_garbage_token_is_unauthenticated(self, client):
        resp = await client.get("/api/v1/orgs", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestCreateOrg:
    async def test_creator_becomes_owner(self, client, seed):
        user = await seed.user()

        resp = await client.post("/api/v1/orgs", json={"name": "Acme Labs"}, headers=seed.headers(user))

        assert resp.status_code == 201
        data = resp.json()
        assert data["name"] == "Acme Labs"
        assert data["slug"] == "acme-labs"
        member = await seed.get_member(uuid.UUID(data["id"]), user.id)
        assert member.role == "OWNER"
        assert member.status == "ACTIVE"

    async def test_slug_collision_gets_suffix(self, client, seed):
        user = await seed.user()
        first = await client.post("/api/v1/orgs", json={"name": "Acme"}, headers=seed.headers(user))
        second = await client.post("/api/v1/orgs", json={"name": "Acme"}, headers=seed.headers(user))
        assert first.json()["slug"] == "acme"
        assert second.json()["slug"] == "acme-1"

    async def test_name_too_short(self, client, seed):
        user = await seed.user()
        resp = await client.post("/api/v1/orgs", json={"name": "A"}, headers=seed.headers(user))
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "BAD_REQUEST"


class TestRenameOrg:
    async def test_admin_can_rename_without_switching(self, client, seed):
        owner = await seed.user()
        admin = await seed.user()
        org = await seed.org("Acme", owner=owner)
        await seed.member(org, admin, Role.ADMIN)

        resp = await client.patch(
            f"/api/v1/orgs/{org.id}", json={"name": "Acme Two"}, headers=seed.headers(admin)
        )

        assert resp.status_code == 200
        assert resp.json()["name"] == "Acme Two"

    async def test_member_cannot_rename(self, client, seed):
        owner = await seed.user()
        member = await seed.user()
        org = await seed.org("Acme", owner=owner)
        await seed.member(org, member, Role.MEMBER)

        resp = await client.patch(
            f"/api/v1/orgs/{org.id}", json={"name": "Nope"}, headers=seed.headers(member)
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Insufficient role"


class TestDeleteOrg:
    async def test_admin_cannot_delete(self, client, seed):
        owner = await seed.user()
        admin = await seed.user()
        org = await seed.org("Acme", owner=owner)
        await seed.member(org, admin, Role.ADMIN)

        resp = await client.delete(f"/api/v1/orgs/{org.id}", headers=seed.headers(admin))

        assert resp.status_code == 403
        assert (await seed.get_member(org.id, owner.id)) is not None

    async def test_owner_delete_cleans_up(self, client, seed):
        owner = await seed.user()
        viewer = await seed.user()
        doomed = await seed.org("Doomed", owner=owner)
        fallback = await seed.org("Fallback", owner=owner)
        await seed.member(doomed, viewer, Role.VIEWER)
        await seed.invitation(doomed, "later@example.com")
        await seed.set_pointer(owner, doomed.id)
        await seed.set_pointer(viewer, doomed.id)

        resp = await client.delete(
            f"/api/v1/orgs/{doomed.id}", headers=seed.headers(owner, org_claim=doomed.id)
        )

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "next_org_id": str(fallback.id)}
        assert (await seed.get_user(owner.id)).active_org_id is None
        assert (await seed.get_user(viewer.id)).active_org_id is None
        assert (await seed.get_member(doomed.id, viewer.id)) is None

        cleared = [h for h in resp.headers.get_list("set-cookie") if h.startswith("active_org_id=")]
        assert cleared and "Max-Age=0" in cleared[0]

    async def test_delete_of_other_org_keeps_claim(self, client, seed):
        owner = await seed.user()
        active = await seed.org("Active", owner=owner)
        other = await seed.org("Other", owner=owner)

        resp = await client.delete(
            f"/api/v1/orgs/{other.id}", headers=seed.headers(owner, org_claim=active.id)
        )

        assert resp.status_code == 200
        assert resp.json()["next_org_id"] == str(active.id)
        assert not any(
            h.startswith("active_org_id=") for h in resp.headers.get_list("set-cookie")
        )

    @pytest.mark.parametrize("method", ["patch", "delete"])
    async def test_non_member_gets_forbidden_not_404(self, client, seed, method):
        user = await seed.user()
        kwargs = {"json": {"name": "Whatever"}} if method == "patch" else {}
        resp = await getattr(client, method)(
            f"/api/v1/orgs/{uuid.uuid4()}", headers=seed.headers(user), **kwargs
        )
        assert resp.status_code == 403
