"""
Shared fixtures: an isolated app per test on in-memory SQLite, an httpx
client over ASGITransport, and a ``seed`` helper for users, orgs,
memberships and invitations.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlmodel import select

from app.core.auth import UserIdentity, create_jwt, hash_password
from app.core.config import Settings
from app.core.database import Database
from app.main import create_app
from app.models.base import utcnow
from app.models.organization import Organization
from app.models.organization_invitation import OrganizationInvitation
from app.models.organization_member import OrganizationMember
from app.models.user import User
from autotest_shared.schemas.organizations import InvitationStatus, MemberStatus, Role


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="",
        secret_key="test-secret-key-with-enough-length-for-hs256",
        bcrypt_rounds=4,
        debug=True,
        log_format="text",
        log_level="warning",
        _env_file=None,
    )


@pytest.fixture
async def app(settings):
    application = create_app(settings)
    await application.state.db.create_all()
    yield application
    await application.state.db.dispose()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class Seed:
    """Writes fixtures straight to the database, one committed unit of work per call."""

    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    async def user(
        self,
        email: Optional[str] = None,
        name: str = "Test User",
        password: Optional[str] = None,
    ) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            password_hash=hash_password(password, rounds=4) if password else None,
        )
        async with self.db.session() as session:
            session.add(user)
        return user

    async def org(self, name: str = "Acme", owner: Optional[User] = None) -> Organization:
        org = Organization(name=name, slug=f"{name.lower()}-{uuid.uuid4().hex[:6]}")
        async with self.db.session() as session:
            session.add(org)
            await session.flush()
            if owner is not None:
                org.created_by_user_id = owner.id
                session.add(
                    OrganizationMember(org_id=org.id, user_id=owner.id, role=Role.OWNER.value)
                )
        return org

    async def member(
        self,
        org: Organization,
        user: User,
        role: Role,
        status: MemberStatus = MemberStatus.ACTIVE,
    ) -> OrganizationMember:
        member = OrganizationMember(
            org_id=org.id, user_id=user.id, role=role.value, status=status.value
        )
        async with self.db.session() as session:
            session.add(member)
        return member

    async def invitation(
        self,
        org: Organization,
        email: str,
        role: Role = Role.VIEWER,
        status: InvitationStatus = InvitationStatus.PENDING,
        expires_in: timedelta = timedelta(days=7),
    ) -> OrganizationInvitation:
        invite = OrganizationInvitation(
            org_id=org.id,
            email=email.lower(),
            role=role.value,
            token=uuid.uuid4().hex,
            status=status.value,
            expires_at=utcnow() + expires_in,
        )
        async with self.db.session() as session:
            session.add(invite)
        return invite

    async def set_pointer(self, user: User, org_id: Optional[uuid.UUID]) -> None:
        async with self.db.session() as session:
            db_user = await session.get(User, user.id)
            db_user.active_org_id = org_id
            session.add(db_user)

    async def get_user(self, user_id: uuid.UUID) -> User:
        async with self.db.session() as session:
            return (await session.execute(select(User).where(User.id == user_id))).scalar_one()

    async def get_member(self, org_id: uuid.UUID, user_id: uuid.UUID) -> Optional[OrganizationMember]:
        async with self.db.session() as session:
            return await session.get(OrganizationMember, (org_id, user_id))

    async def get_invitation(self, invitation_id: uuid.UUID) -> OrganizationInvitation:
        async with self.db.session() as session:
            return await session.get(OrganizationInvitation, invitation_id)

    def token(self, user: User) -> str:
        token, _ = create_jwt(UserIdentity(id=user.id, email=user.email, name=user.name), self.settings)
        return token

    def headers(self, user: User, org_claim: object = None) -> dict[str, str]:
        """Bearer auth (CSRF-exempt) plus an explicit org claim cookie."""
        headers = {"Authorization": f"Bearer {self.token(user)}"}
        if org_claim is not None:
            headers["Cookie"] = f"{self.settings.org_cookie}={org_claim}"
        return headers


@pytest.fixture
def seed(app, settings) -> Seed:
    return Seed(app.state.db, settings)
