"""
Membership API endpoints. All require {id} to be the caller's active org.

GET    /api/v1/orgs/{id}/members             — List ACTIVE members
POST   /api/v1/orgs/{id}/members/invite      — Invite by email
PATCH  /api/v1/orgs/{id}/members/{user_id}   — Change role
DELETE /api/v1/orgs/{id}/members/{user_id}   — Remove (soft)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.claims import set_org_cookies
from app.core.config import Settings
from app.core.database import get_session
from app.core.dependencies import get_app_settings, require_active
from app.core.errors import Forbidden
from app.core.org_context import OrgContext
from app.core.rbac import MANAGE, READ
from app.services import invitations as invitation_service
from app.services import members as member_service
from autotest_shared.schemas.organizations import (
    AlreadyMemberResponse,
    InvitationCreatedResponse,
    InviteRequest,
    MemberResponse,
    MemberRoleResponse,
    MemberRoleUpdateRequest,
    OkResponse,
)

router = APIRouter()


def require_invites_enabled(settings: Settings = Depends(get_app_settings)) -> None:
    """Checked before auth so a disabled flow answers the same way for everyone."""
    if not settings.invite_flow_enabled:
        raise Forbidden("Invites disabled")


@router.get("", response_model=list[MemberResponse], tags=["Members"])
async def list_members(
    org_id: uuid.UUID,
    ctx: OrgContext = Depends(require_active(READ, "members")),
    session: AsyncSession = Depends(get_session),
):
    """List ACTIVE members of the caller's active org."""
    return await member_service.list_active_members(org_id, session)


@router.post(
    "/invite",
    response_model=InvitationCreatedResponse | AlreadyMemberResponse,
    tags=["Members"],
    dependencies=[Depends(require_invites_enabled)],
)
async def invite_member(
    org_id: uuid.UUID,
    body: InviteRequest,
    ctx: OrgContext = Depends(require_active(MANAGE, "members")),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """Invite an email address (Admin+). Idempotent for existing members."""
    invite = await invitation_service.create_invitation(
        ctx, body.email, body.role, session, ttl_days=settings.invitation_ttl_days
    )
    if invite is None:
        return AlreadyMemberResponse()
    return InvitationCreatedResponse(id=invite.id, token=invite.token, expires_at=invite.expires_at)


@router.patch("/{user_id}", response_model=MemberRoleResponse, tags=["Members"])
async def update_member_role(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    body: MemberRoleUpdateRequest,
    ctx: OrgContext = Depends(require_active(MANAGE, "members")),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """Change a member's role (Admin+). Refreshes claim cookies when callers change themselves."""
    member = await member_service.update_member_role(ctx, user_id, body.role, session)
    payload = MemberRoleResponse(user_id=member.user_id, role=member.role)
    if user_id == ctx.user_id:
        response = JSONResponse(payload.model_dump(mode="json"))
        return set_org_cookies(response, org_id, member.role, settings)
    return payload


@router.delete("/{user_id}", response_model=OkResponse, tags=["Members"])
async def remove_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    ctx: OrgContext = Depends(require_active(MANAGE, "members")),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member from the org (Admin+). The membership row is kept as REMOVED."""
    await member_service.remove_member(ctx, user_id, session)
    return OkResponse()
