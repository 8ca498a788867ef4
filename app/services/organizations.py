"""
Organization service — business logic for org CRUD and the active-org pointer.
"""

from __future__ import annotations

import re
import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound
from app.models.organization import Organization
from app.models.organization_invitation import OrganizationInvitation
from app.models.organization_member import OrganizationMember
from app.models.user import User

from autotest_shared.schemas.organizations import MemberStatus, Role

log = structlog.get_logger()

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lower-case, collapse non-alphanumerics to '-', trim leading/trailing '-'."""
    return _SLUG_STRIP.sub("-", value.lower()).strip("-")


async def unique_slug(base: str, session: AsyncSession) -> str:
    """First of base, base-1, base-2, … not already taken."""
    base = base or "workspace"
    attempt = 0
    while True:
        slug = base if attempt == 0 else f"{base}-{attempt}"
        result = await session.execute(select(Organization.id).where(Organization.slug == slug))
        if result.scalar_one_or_none() is None:
            return slug
        attempt += 1


async def get_org(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    result = await session.execute(select(Organization).where(Organization.id == org_id))
    org = result.scalar_one_or_none()
    if not org:
        raise NotFound("Organization not found")
    return org


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """List orgs where the user has an ACTIVE membership, flagging the persisted active one."""
    result = await session.execute(select(User.active_org_id).where(User.id == user_id))
    active_org_id = result.scalar_one_or_none()

    result = await session.execute(
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.org_id == Organization.id)
        .where(OrganizationMember.user_id == user_id)
        .where(OrganizationMember.status == MemberStatus.ACTIVE.value)
        .order_by(OrganizationMember.updated_at.desc())
    )
    return [
        {
            "id": org.id,
            "name": org.name,
            "slug": org.slug,
            "role": role,
            "is_active": org.id == active_org_id,
        }
        for org, role in result.all()
    ]


async def create_org(
    name: str,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator its OWNER."""
    slug = await unique_slug(slugify(name), session)
    org = Organization(name=name, slug=slug, created_by_user_id=creator_id)
    session.add(org)
    await session.flush()

    membership = OrganizationMember(
        org_id=org.id,
        user_id=creator_id,
        role=Role.OWNER.value,
        status=MemberStatus.ACTIVE.value,
    )
    session.add(membership)
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=slug, creator=str(creator_id))
    return org


async def rename_org(org_id: uuid.UUID, name: str, session: AsyncSession) -> Organization:
    org = await get_org(org_id, session)
    org.name = name
    session.add(org)
    await session.flush()
    log.info("org.renamed", org_id=str(org.id))
    return org


async def delete_org(
    org_id: uuid.UUID, requester_id: uuid.UUID, session: AsyncSession
) -> Optional[uuid.UUID]:
    """Delete an org with its memberships and invitations.

    Every user pointer aimed at the org is cleared first. Returns another
    org the requester is an ACTIVE member of, for the client to switch to.
    """
    org = await get_org(org_id, session)

    result = await session.execute(
        select(OrganizationMember.org_id)
        .where(
            OrganizationMember.user_id == requester_id,
            OrganizationMember.org_id != org_id,
            OrganizationMember.status == MemberStatus.ACTIVE.value,
        )
        .order_by(OrganizationMember.updated_at.desc())
        .limit(1)
    )
    next_org_id = result.scalar_one_or_none()

    await session.execute(
        update(User).where(User.active_org_id == org_id).values(active_org_id=None)
    )
    await session.execute(
        delete(OrganizationInvitation).where(OrganizationInvitation.org_id == org_id)
    )
    await session.execute(
        delete(OrganizationMember).where(OrganizationMember.org_id == org_id)
    )
    await session.delete(org)
    await session.flush()

    log.info("org.deleted", org_id=str(org_id), requester=str(requester_id))
    return next_org_id


async def ensure_personal_org(user: User, session: AsyncSession) -> uuid.UUID:
    """Return an org the user is ACTIVE in, creating "<name>'s Workspace" if there is none."""
    result = await session.execute(
        select(OrganizationMember.org_id)
        .where(
            OrganizationMember.user_id == user.id,
            OrganizationMember.status == MemberStatus.ACTIVE.value,
        )
        .order_by(OrganizationMember.created_at)
        .limit(1)
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    base = user.name or user.email or "Personal"
    org = await create_org(f"{base}'s Workspace", user.id, session)
    log.info("org.personal_created", org_id=str(org.id), user_id=str(user.id))
    return org.id


async def resolve_active_org(user: User, session: AsyncSession) -> Optional[tuple[uuid.UUID, Role]]:
    """Validate the persisted pointer, repointing it at the first ACTIVE membership if stale.

    Returns (org_id, role) or None when the user belongs to no org.
    """
    memberships = (
        await session.execute(
            select(OrganizationMember)
            .where(
                OrganizationMember.user_id == user.id,
                OrganizationMember.status == MemberStatus.ACTIVE.value,
            )
            .order_by(OrganizationMember.created_at)
        )
    ).scalars().all()
    if not memberships:
        if user.active_org_id is not None:
            user.active_org_id = None
            session.add(user)
            await session.flush()
        return None

    for m in memberships:
        if m.org_id == user.active_org_id:
            return m.org_id, Role(m.role)

    first = memberships[0]
    user.active_org_id = first.org_id
    session.add(user)
    await session.flush()
    return first.org_id, Role(first.role)
