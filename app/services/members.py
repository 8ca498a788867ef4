"""
Membership service — listing, role changes and soft removal.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import BadRequest, Forbidden, NotFound
from app.core.org_context import OrgContext, get_membership
from app.core.rbac import role_rank
from app.models.organization_member import OrganizationMember
from app.models.user import User

from autotest_shared.schemas.organizations import MemberStatus, Role

log = structlog.get_logger()


async def list_active_members(org_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    """ACTIVE members of the org, oldest membership first."""
    result = await session.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(
            OrganizationMember.org_id == org_id,
            OrganizationMember.status == MemberStatus.ACTIVE.value,
        )
        .order_by(OrganizationMember.created_at)
    )
    return [
        {
            "user_id": m.user_id,
            "name": user.name,
            "email": user.email,
            "role": m.role,
            "status": m.status,
        }
        for m, user in result.all()
    ]


async def _active_owner_count(org_id: uuid.UUID, session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(OrganizationMember)
        .where(
            OrganizationMember.org_id == org_id,
            OrganizationMember.role == Role.OWNER.value,
            OrganizationMember.status == MemberStatus.ACTIVE.value,
        )
    )
    return result.scalar_one()


async def _get_active_member(
    org_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> OrganizationMember:
    member = await get_membership(session, org_id, user_id)
    if member is None or member.status != MemberStatus.ACTIVE.value:
        raise NotFound("Member not found")
    return member


async def update_member_role(
    ctx: OrgContext,
    user_id: uuid.UUID,
    role: Role,
    session: AsyncSession,
) -> OrganizationMember:
    """Change a member's role within ctx's active org.

    Callers cannot grant a role above their own, cannot touch a member who
    outranks them, and the last ACTIVE OWNER cannot be demoted.
    """
    org_id = ctx.active_org_id
    member = await _get_active_member(org_id, user_id, session)

    if role_rank(role) > role_rank(ctx.role):
        raise Forbidden("Cannot grant a role above your own")
    if role_rank(member.role) > role_rank(ctx.role):
        raise Forbidden("Cannot change the role of a higher-ranked member")

    if member.role == Role.OWNER.value and role != Role.OWNER:
        if await _active_owner_count(org_id, session) <= 1:
            raise BadRequest("Cannot remove the last Owner")

    previous = member.role
    member.role = role.value
    session.add(member)
    await session.flush()

    log.info(
        "member.role_changed",
        org_id=str(org_id),
        user_id=str(user_id),
        previous=previous,
        role=role.value,
        by=str(ctx.user_id),
    )
    return member


async def remove_member(
    ctx: OrgContext, user_id: uuid.UUID, session: AsyncSession
) -> None:
    """Soft-remove a member (status REMOVED) and clear their pointer to this org."""
    org_id = ctx.active_org_id
    member = await _get_active_member(org_id, user_id, session)

    if role_rank(member.role) > role_rank(ctx.role):
        raise Forbidden("Cannot remove a higher-ranked member")

    if member.role == Role.OWNER.value:
        if await _active_owner_count(org_id, session) <= 1:
            raise BadRequest("Cannot remove the last Owner")

    member.status = MemberStatus.REMOVED.value
    session.add(member)
    await session.execute(
        update(User)
        .where(User.id == user_id, User.active_org_id == org_id)
        .values(active_org_id=None)
    )
    await session.flush()

    log.info("member.removed", org_id=str(org_id), user_id=str(user_id), by=str(ctx.user_id))
