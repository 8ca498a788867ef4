"""
Account service — registration, credential checks and post-login org setup.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password, verify_password
from app.core.config import Settings
from app.core.errors import Conflict, Unauthenticated
from app.models.user import User
from app.services import invitations as invitation_service
from app.services import organizations as org_service

from autotest_shared.schemas.organizations import Role

log = structlog.get_logger()


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def register_user(
    email: str,
    password: str,
    name: str,
    session: AsyncSession,
    *,
    bcrypt_rounds: int = 12,
) -> User:
    if await get_user_by_email(email, session):
        raise Conflict("Email already registered")

    user = User(
        id=uuid.uuid4(),
        email=email.lower(),
        name=name,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
    )
    session.add(user)
    await session.flush()

    log.info("user.registered", user_id=str(user.id))
    return user


async def authenticate_user(email: str, password: str, session: AsyncSession) -> User:
    user = await get_user_by_email(email, session)
    if not user or not user.password_hash:
        raise Unauthenticated("Invalid email or password")

    if not verify_password(password, user.password_hash):
        log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
        raise Unauthenticated("Invalid email or password")

    log.info("auth.login_success", user_id=str(user.id))
    return user


async def prepare_org_session(
    user: User, session: AsyncSession, settings: Settings
) -> Optional[tuple[uuid.UUID, Role]]:
    """Run at sign-in: accept invitations, create a personal workspace when enabled,
    and settle the active-org pointer. Returns the (org_id, role) to mirror into cookies."""
    await invitation_service.accept_pending_invitations(user, session)
    if settings.org_shadow_mode:
        await org_service.ensure_personal_org(user, session)
    return await org_service.resolve_active_org(user, session)
