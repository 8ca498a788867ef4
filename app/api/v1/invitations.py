"""
Invitation API endpoints. All require {id} to be the caller's active org
and the member-management capability.

GET    /api/v1/orgs/{id}/invitations                  — List PENDING invitations
POST   /api/v1/orgs/{id}/invitations/{inv}/resend     — Restart expiry
DELETE /api/v1/orgs/{id}/invitations/{inv}            — Revoke
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.database import get_session
from app.core.dependencies import get_app_settings, require_active
from app.core.org_context import OrgContext
from app.core.rbac import MANAGE
from app.services import invitations as invitation_service
from autotest_shared.schemas.organizations import InvitationResponse, OkResponse

router = APIRouter()


@router.get("", response_model=list[InvitationResponse], tags=["Invitations"])
async def list_invitations(
    org_id: uuid.UUID,
    ctx: OrgContext = Depends(require_active(MANAGE, "members")),
    session: AsyncSession = Depends(get_session),
):
    return await invitation_service.list_pending_invitations(org_id, session)


@router.post("/{invitation_id}/resend", response_model=OkResponse, tags=["Invitations"])
async def resend_invitation(
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    ctx: OrgContext = Depends(require_active(MANAGE, "members")),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    await invitation_service.resend_invitation(
        org_id, invitation_id, session, ttl_days=settings.invitation_ttl_days
    )
    return OkResponse()


@router.delete("/{invitation_id}", response_model=OkResponse, tags=["Invitations"])
async def revoke_invitation(
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    ctx: OrgContext = Depends(require_active(MANAGE, "members")),
    session: AsyncSession = Depends(get_session),
):
    await invitation_service.revoke_invitation(org_id, invitation_id, session)
    return OkResponse()
