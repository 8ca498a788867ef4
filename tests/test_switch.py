"""
Tests for switching the active org, at the service layer and over HTTP.
"""

from __future__ import annotations

import uuid

import pytest
from starlette.requests import Request

from app.core.auth import UserIdentity
from app.core.errors import Forbidden
from app.core.org_context import OrgContext, require_org_context, switch_active_org
from autotest_shared.schemas.organizations import MemberStatus, Role


class StubProvider:
    def __init__(self, identity):
        self.identity = identity

    async def get_session(self, headers):
        return self.identity


def _claim_request(org_id) -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": b"",
        "headers": [(b"cookie", f"active_org_id={org_id}".encode())],
    })


async def _switch(app, user_id, org_id) -> Role:
    async with app.state.db.session() as session:
        return await switch_active_org(session, user_id, org_id)


class TestSwitchActiveOrg:
    async def test_switch_updates_pointer_and_returns_role(self, app, seed):
        owner = await seed.user()
        admin = await seed.user()
        org_a = await seed.org("Alpha", owner=admin)
        org_b = await seed.org("Beta", owner=owner)
        await seed.member(org_b, admin, Role.ADMIN)
        await seed.set_pointer(admin, org_a.id)

        role = await _switch(app, admin.id, org_b.id)

        assert role == Role.ADMIN
        assert (await seed.get_user(admin.id)).active_org_id == org_b.id

    async def test_context_after_switch_matches(self, app, settings, seed):
        owner = await seed.user()
        member = await seed.user()
        org = await seed.org("Acme", owner=owner)
        await seed.member(org, member, Role.MEMBER)

        role = await _switch(app, member.id, org.id)

        async with app.state.db.session() as session:
            ctx = await require_org_context(
                _claim_request(org.id),
                session=session,
                provider=StubProvider(UserIdentity(id=member.id)),
                settings=settings,
            )
        assert ctx == OrgContext(user_id=member.id, active_org_id=org.id, role=role)

    async def test_non_member_leaves_pointer_unchanged(self, app, seed):
        owner = await seed.user()
        user = await seed.user()
        home = await seed.org("Home", owner=user)
        other = await seed.org("Other", owner=owner)
        await seed.set_pointer(user, home.id)

        with pytest.raises(Forbidden):
            await _switch(app, user.id, other.id)

        assert (await seed.get_user(user.id)).active_org_id == home.id

    async def test_removed_member_leaves_pointer_unchanged(self, app, seed):
        owner = await seed.user()
        user = await seed.user()
        home = await seed.org("Home", owner=user)
        other = await seed.org("Other", owner=owner)
        await seed.member(other, user, Role.ADMIN, status=MemberStatus.REMOVED)
        await seed.set_pointer(user, home.id)

        with pytest.raises(Forbidden):
            await _switch(app, user.id, other.id)

        assert (await seed.get_user(user.id)).active_org_id == home.id

    async def test_unknown_org_is_forbidden(self, app, seed):
        user = await seed.user()
        with pytest.raises(Forbidden):
            await _switch(app, user.id, uuid.uuid4())
        assert (await seed.get_user(user.id)).active_org_id is None


class TestSwitchEndpoint:
    async def test_requires_session(self, client):
        resp = await client.post(f"/api/v1/orgs/{uuid.uuid4()}/switch")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    async def test_non_member_forbidden(self, client, seed):
        owner = await seed.user()
        outsider = await seed.user()
        org = await seed.org("Acme", owner=owner)

        resp = await client.post(f"/api/v1/orgs/{org.id}/switch", headers=seed.headers(outsider))

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"
        assert "active_org_id" not in resp.cookies

    async def test_switch_sets_claim_cookies(self, client, seed):
        owner = await seed.user()
        viewer = await seed.user()
        org = await seed.org("Acme", owner=owner)
        await seed.member(org, viewer, Role.VIEWER)

        resp = await client.post(f"/api/v1/orgs/{org.id}/switch", headers=seed.headers(viewer))

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "active_org_id": str(org.id), "org_role": "VIEWER"}
        assert resp.cookies["active_org_id"] == str(org.id)
        assert resp.cookies["org_role"] == "VIEWER"
        assert (await seed.get_user(viewer.id)).active_org_id == org.id

    async def test_switched_org_is_flagged_active(self, client, seed):
        user = await seed.user()
        org_a = await seed.org("Alpha", owner=user)
        org_b = await seed.org("Beta", owner=user)
        await seed.set_pointer(user, org_a.id)

        await client.post(f"/api/v1/orgs/{org_b.id}/switch", headers=seed.headers(user))
        resp = await client.get("/api/v1/orgs", headers=seed.headers(user))

        flags = {item["id"]: item["is_active"] for item in resp.json()}
        assert flags == {str(org_a.id): False, str(org_b.id): True}
