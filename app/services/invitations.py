"""
Invitation service — create, list, resend, revoke and accept org invitations.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import BadRequest, Forbidden, NotFound
from app.core.org_context import OrgContext, get_membership
from app.core.rbac import role_rank
from app.models.base import utcnow
from app.models.organization_invitation import OrganizationInvitation
from app.models.organization_member import OrganizationMember
from app.models.user import User

from autotest_shared.schemas.organizations import (
    INVITATION_TRANSITIONS,
    InvitationStatus,
    MemberStatus,
    Role,
)

log = structlog.get_logger()


async def create_invitation(
    ctx: OrgContext,
    email: str,
    role: Role,
    session: AsyncSession,
    *,
    ttl_days: int = 7,
) -> Optional[OrganizationInvitation]:
    """Create a PENDING invitation in ctx's active org.

    Returns None when the address already belongs to an ACTIVE member.
    """
    if role_rank(role) > role_rank(ctx.role):
        raise Forbidden("Cannot invite with a role above your own")

    email = email.lower()
    result = await session.execute(select(User).where(func.lower(User.email) == email))
    existing_user = result.scalar_one_or_none()
    if existing_user is not None:
        member = await get_membership(session, ctx.active_org_id, existing_user.id)
        if member is not None and member.status == MemberStatus.ACTIVE.value:
            return None

    invite = OrganizationInvitation(
        org_id=ctx.active_org_id,
        email=email,
        role=role.value,
        token=secrets.token_urlsafe(32),
        status=InvitationStatus.PENDING.value,
        expires_at=utcnow() + timedelta(days=ttl_days),
        invited_by_user_id=ctx.user_id,
    )
    session.add(invite)
    await session.flush()

    log.info(
        "invitation.created",
        org_id=str(ctx.active_org_id),
        invitation_id=str(invite.id),
        role=role.value,
        by=str(ctx.user_id),
    )
    return invite


async def list_pending_invitations(org_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    """PENDING invitations only, newest first."""
    result = await session.execute(
        select(OrganizationInvitation)
        .where(
            OrganizationInvitation.org_id == org_id,
            OrganizationInvitation.status == InvitationStatus.PENDING.value,
        )
        .order_by(OrganizationInvitation.created_at.desc())
    )
    return [
        {
            "id": inv.id,
            "email": inv.email,
            "role": inv.role,
            "expires_at": inv.expires_at,
            "status": inv.status,
        }
        for inv in result.scalars().all()
    ]


async def _get_org_invitation(
    org_id: uuid.UUID, invitation_id: uuid.UUID, session: AsyncSession
) -> OrganizationInvitation:
    result = await session.execute(
        select(OrganizationInvitation).where(OrganizationInvitation.id == invitation_id)
    )
    invite = result.scalar_one_or_none()
    if invite is None or invite.org_id != org_id:
        raise NotFound("Invite not found")
    return invite


def _transition(invite: OrganizationInvitation, target: InvitationStatus) -> None:
    current = InvitationStatus(invite.status)
    if target not in INVITATION_TRANSITIONS.get(current, []):
        raise BadRequest("Invitation is no longer pending")
    invite.status = target.value
    invite.updated_at = utcnow()


async def resend_invitation(
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    session: AsyncSession,
    *,
    ttl_days: int = 7,
) -> OrganizationInvitation:
    """Restart the expiry window of a PENDING invitation."""
    invite = await _get_org_invitation(org_id, invitation_id, session)
    if not INVITATION_TRANSITIONS.get(InvitationStatus(invite.status)):
        raise BadRequest("Invitation is no longer pending")

    invite.expires_at = utcnow() + timedelta(days=ttl_days)
    invite.updated_at = utcnow()
    session.add(invite)
    await session.flush()

    log.info("invitation.resent", org_id=str(org_id), invitation_id=str(invitation_id))
    return invite


async def revoke_invitation(
    org_id: uuid.UUID, invitation_id: uuid.UUID, session: AsyncSession
) -> OrganizationInvitation:
    invite = await _get_org_invitation(org_id, invitation_id, session)
    _transition(invite, InvitationStatus.REVOKED)
    session.add(invite)
    await session.flush()

    log.info("invitation.revoked", org_id=str(org_id), invitation_id=str(invitation_id))
    return invite


async def accept_pending_invitations(user: User, session: AsyncSession) -> list[uuid.UUID]:
    """Turn the user's PENDING, unexpired invitations into ACTIVE memberships.

    Matching is on the lower-cased email. PENDING invitations for the same
    address that have already passed their expiry become EXPIRED. Returns
    the ids of the orgs joined.
    """
    if not user.email:
        return []

    email = user.email.lower()
    now = utcnow()

    stale = (
        await session.execute(
            select(OrganizationInvitation).where(
                OrganizationInvitation.email == email,
                OrganizationInvitation.status == InvitationStatus.PENDING.value,
                OrganizationInvitation.expires_at <= now,
            )
        )
    ).scalars().all()
    for inv in stale:
        _transition(inv, InvitationStatus.EXPIRED)
        session.add(inv)

    pending = (
        await session.execute(
            select(OrganizationInvitation)
            .where(
                OrganizationInvitation.email == email,
                OrganizationInvitation.status == InvitationStatus.PENDING.value,
                OrganizationInvitation.expires_at > now,
            )
            .order_by(OrganizationInvitation.created_at)
        )
    ).scalars().all()

    joined: list[uuid.UUID] = []
    for inv in pending:
        member = await get_membership(session, inv.org_id, user.id)
        if member is None:
            session.add(
                OrganizationMember(
                    org_id=inv.org_id,
                    user_id=user.id,
                    role=inv.role,
                    status=MemberStatus.ACTIVE.value,
                )
            )
        elif member.status != MemberStatus.ACTIVE.value:
            member.status = MemberStatus.ACTIVE.value
            member.role = inv.role
            session.add(member)

        _transition(inv, InvitationStatus.ACCEPTED)
        inv.accepted_by_user_id = user.id
        session.add(inv)
        joined.append(inv.org_id)
        log.info("invitation.accepted", org_id=str(inv.org_id), user_id=str(user.id))

    await session.flush()
    return joined
