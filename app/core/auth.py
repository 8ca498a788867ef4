"""
Authentication for Prompt Autotest.

Supports:
- Email/Password credentials (bcrypt)
- JWT session tokens carried in the session cookie or a Bearer header
- Redis revocation list for logged-out tokens
- Session resolution: request headers -> UserIdentity
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import bcrypt
import jwt
import structlog
from starlette.datastructures import Headers
from starlette.requests import cookie_parser

from app.core.config import Settings
from app.core.errors import Unauthenticated
from app.core.redis import RevocationList

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UserIdentity:
    """The authenticated user as asserted by the session provider."""

    id: uuid.UUID
    email: Optional[str] = None
    name: Optional[str] = None


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    identity: UserIdentity,
    settings: Settings,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(identity.id),
        "email": identity.email,
        "name": identity.name,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str, settings: Settings) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def extract_session_token(headers: Headers, cookie_name: str) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    authorization = headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    cookies = cookie_parser(headers.get("cookie", ""))
    return cookies.get(cookie_name) or None


# ---------------------------------------------------------------------------
# Session providers
# ---------------------------------------------------------------------------

class SessionProvider(Protocol):
    async def get_session(self, headers: Headers) -> Optional[UserIdentity]:
        ...


class JWTSessionProvider:
    """Resolves sessions from self-issued JWTs, honouring the revocation list when configured."""

    def __init__(self, settings: Settings, revocations: Optional[RevocationList] = None):
        self.settings = settings
        self.revocations = revocations

    async def get_session(self, headers: Headers) -> Optional[UserIdentity]:
        token = extract_session_token(headers, self.settings.session_cookie)
        if not token:
            return None
        try:
            payload = decode_jwt(token, self.settings)
            user_id = uuid.UUID(payload["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            log.info("session.invalid_token")
            return None

        jti = payload.get("jti")
        if jti and self.revocations is not None and await self.revocations.is_revoked(jti):
            log.info("session.revoked", user_id=str(user_id))
            return None

        return UserIdentity(id=user_id, email=payload.get("email"), name=payload.get("name"))

    async def revoke(self, headers: Headers) -> None:
        """Put the presented token's jti on the revocation list until it would expire anyway."""
        if self.revocations is None:
            return
        token = extract_session_token(headers, self.settings.session_cookie)
        if not token:
            return
        try:
            payload = decode_jwt(token, self.settings)
        except jwt.PyJWTError:
            return  # already unusable
        jti = payload.get("jti")
        if not jti:
            return
        remaining = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
        await self.revocations.revoke(jti, ttl_seconds=max(remaining, 1))


async def resolve_session(provider: SessionProvider, headers: Headers) -> UserIdentity:
    """Return the request's user or raise Unauthenticated. Never retried."""
    identity = await provider.get_session(headers)
    if identity is None:
        raise Unauthenticated()
    return identity
