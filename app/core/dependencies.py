"""
FastAPI dependencies wiring the auth/org layer to request handlers.

Everything is pulled from ``request.app.state`` (settings, database,
session provider) so handlers never reach for module globals.
"""

from __future__ import annotations

import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import SessionProvider, UserIdentity, resolve_session
from app.core.config import Settings
from app.core.database import get_session
from app.core.errors import Forbidden
from app.core.org_context import OrgContext, context_for_org, require_org_context
from app.core.rbac import require_capability


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_provider(request: Request) -> SessionProvider:
    return request.app.state.session_provider


async def get_current_user(
    request: Request,
    provider: SessionProvider = Depends(get_session_provider),
) -> UserIdentity:
    """Session only; no org required."""
    return await resolve_session(provider, request.headers)


async def get_org_context(
    request: Request,
    session: AsyncSession = Depends(get_session),
    provider: SessionProvider = Depends(get_session_provider),
    settings: Settings = Depends(get_app_settings),
) -> OrgContext:
    return await require_org_context(
        request, session=session, provider=provider, settings=settings
    )


async def get_active_org_context(
    org_id: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
) -> OrgContext:
    """The path org must be the caller's active org."""
    if ctx.active_org_id != org_id:
        raise Forbidden("Switch to the org first")
    return ctx


async def get_target_org_context(
    org_id: uuid.UUID,
    user: UserIdentity = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OrgContext:
    """Context for the path org whether or not it is the active one."""
    return await context_for_org(session, user.id, org_id)


def require_active(action: str, resource: str):
    """Dependency factory: active-org context that passes ``can(action, resource)``."""

    async def dependency(ctx: OrgContext = Depends(get_active_org_context)) -> OrgContext:
        require_capability(ctx, action, resource)
        return ctx

    return dependency


def require_target(action: str, resource: str):
    """Dependency factory: path-org context (active or not) that passes ``can(action, resource)``."""

    async def dependency(ctx: OrgContext = Depends(get_target_org_context)) -> OrgContext:
        require_capability(ctx, action, resource)
        return ctx

    return dependency
