"""
Active-organization resolution and switching.

An ``OrgContext`` is rebuilt for every request from three inputs: the
session, the client's org claim (cookie or header) and the membership
table. The claim only selects which membership to look up; it never
grants anything on its own.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from starlette.requests import HTTPConnection

from autotest_shared.schemas.organizations import MemberStatus, Role

from app.core.auth import SessionProvider, resolve_session
from app.core.config import Settings
from app.core.errors import Forbidden, NotFound, OrgRequired
from app.models.organization_member import OrganizationMember
from app.models.user import User

log = structlog.get_logger()


@dataclass(frozen=True)
class OrgContext:
    user_id: uuid.UUID
    active_org_id: uuid.UUID
    role: Role

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER


def read_org_claim(conn: HTTPConnection, settings: Settings) -> Optional[str]:
    """The org id the client claims to be acting as; cookie first, then header."""
    for raw in (conn.cookies.get(settings.org_cookie), conn.headers.get(settings.org_header)):
        claim = (raw or "").strip()
        if claim:
            return claim
    return None


async def get_membership(
    session: AsyncSession,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Optional[OrganizationMember]:
    stmt = select(OrganizationMember).where(
        OrganizationMember.org_id == org_id,
        OrganizationMember.user_id == user_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def context_for_org(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> OrgContext:
    """Build a context for ``org_id`` from an ACTIVE membership, or raise Forbidden."""
    member = await get_membership(session, org_id, user_id)
    if member is None or member.status != MemberStatus.ACTIVE.value:
        raise Forbidden("Not a member of this organization")
    return OrgContext(user_id=user_id, active_org_id=org_id, role=Role(member.role))


async def require_org_context(
    conn: HTTPConnection,
    *,
    session: AsyncSession,
    provider: SessionProvider,
    settings: Settings,
) -> OrgContext:
    """Resolve the caller's active org and role. Read-only; safe to call repeatedly.

    Raises Unauthenticated (no session), OrgRequired (no claim) or Forbidden
    (claim does not match an ACTIVE membership).
    """
    identity = await resolve_session(provider, conn.headers)

    claim = read_org_claim(conn, settings)
    if claim is None:
        raise OrgRequired()

    try:
        org_id = uuid.UUID(claim)
    except ValueError:
        raise Forbidden("Not a member of this organization")

    return await context_for_org(session, identity.id, org_id)


async def switch_active_org(
    session: AsyncSession, user_id: uuid.UUID, target_org_id: uuid.UUID
) -> Role:
    """Point the user's active org at ``target_org_id`` and return their role there.

    The membership row is read (and locked where the backend supports it)
    before the pointer is written, all inside the caller's transaction. On
    Forbidden nothing has been written.
    """
    member = await get_membership(session, target_org_id, user_id, for_update=True)
    if member is None or member.status != MemberStatus.ACTIVE.value:
        raise Forbidden("Not a member of this org")

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")

    role = Role(member.role)
    user.active_org_id = target_org_id
    session.add(user)
    await session.flush()

    log.info("org.switched", user_id=str(user_id), org_id=str(target_org_id), role=role.value)
    return role
