"""
Organization API endpoints.

GET    /api/v1/orgs               — List orgs for the authenticated user
POST   /api/v1/orgs               — Create a new org (creator becomes OWNER)
PATCH  /api/v1/orgs/{id}          — Rename (ADMIN+ of that org)
DELETE /api/v1/orgs/{id}          — Delete (OWNER of that org)
POST   /api/v1/orgs/{id}/switch   — Make {id} the active org
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import UserIdentity
from app.core.claims import clear_org_cookies, set_org_cookies
from app.core.config import Settings
from app.core.database import get_session
from app.core.dependencies import get_app_settings, get_current_user, require_target
from app.core.org_context import OrgContext, read_org_claim, switch_active_org
from app.core.rbac import DELETE, MANAGE
from app.services import organizations as org_service
from autotest_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgDeleteResponse,
    OrgListItem,
    OrgRenameRequest,
    OrgResponse,
    OrgSwitchResponse,
)

log = structlog.get_logger()

router = APIRouter()


@router.get("", response_model=list[OrgListItem], tags=["Organizations"])
async def list_orgs(
    user: UserIdentity = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user is an active member of."""
    return await org_service.list_user_orgs(user.id, session)


@router.post("", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user: UserIdentity = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    org = await org_service.create_org(body.name, user.id, session)
    return OrgResponse.model_validate(org)


@router.patch("/{org_id}", response_model=OrgResponse, tags=["Organizations"])
async def rename_org(
    org_id: uuid.UUID,
    body: OrgRenameRequest,
    ctx: OrgContext = Depends(require_target(MANAGE, "orgs")),
    session: AsyncSession = Depends(get_session),
):
    """Rename an org (Admin or Owner of that org, active or not)."""
    org = await org_service.rename_org(org_id, body.name, session)
    return OrgResponse.model_validate(org)


@router.delete("/{org_id}", response_model=OrgDeleteResponse, tags=["Organizations"])
async def delete_org(
    org_id: uuid.UUID,
    request: Request,
    ctx: OrgContext = Depends(require_target(DELETE, "orgs")),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """Delete an org (Owner only). Returns another org the caller can switch to."""
    next_org_id = await org_service.delete_org(org_id, ctx.user_id, session)
    response = JSONResponse(
        OrgDeleteResponse(next_org_id=next_org_id).model_dump(mode="json")
    )
    if read_org_claim(request, settings) == str(org_id):
        clear_org_cookies(response, settings)
    return response


@router.post("/{org_id}/switch", response_model=OrgSwitchResponse, tags=["Organizations"])
async def switch_org(
    org_id: uuid.UUID,
    user: UserIdentity = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """Switch the caller's active org and mirror it into the claim cookies."""
    role = await switch_active_org(session, user.id, org_id)
    response = JSONResponse(
        OrgSwitchResponse(active_org_id=org_id, org_role=role).model_dump(mode="json")
    )
    return set_org_cookies(response, org_id, role, settings)
