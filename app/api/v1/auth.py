"""
Authentication endpoints.

- Email/Password registration & login
- Session inspection and logout
Sign-in also settles the active org and mirrors it into the claim cookies.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    JWTSessionProvider,
    UserIdentity,
    create_jwt,
    generate_csrf_token,
)
from app.core.claims import clear_org_cookies, set_org_cookies
from app.core.config import Settings
from app.core.database import get_session
from app.core.dependencies import get_app_settings, get_current_user, get_session_provider
from app.models.user import User
from app.services import users as user_service
from autotest_shared.schemas.users import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    SessionResponse,
    SessionUser,
)

log = structlog.get_logger()
router = APIRouter()


def _set_session_cookies(response: Response, token: str, csrf: str, settings: Settings) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    max_age = settings.jwt_expire_minutes * 60
    response.set_cookie(
        key=settings.session_cookie,
        value=token,
        httponly=True,
        secure=not settings.debug,  # allow non-HTTPS in dev
        samesite="lax",
        path="/",
        max_age=max_age,
    )
    response.set_cookie(
        key=settings.csrf_cookie,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=max_age,
    )


async def _start_session(
    user: User, response: Response, session: AsyncSession, settings: Settings
) -> AuthResponse:
    active = await user_service.prepare_org_session(user, session, settings)

    identity = UserIdentity(id=user.id, email=user.email, name=user.name)
    token, _jti = create_jwt(identity, settings)
    _set_session_cookies(response, token, generate_csrf_token(), settings)

    active_org_id = None
    if active is not None:
        org_id, role = active
        set_org_cookies(response, org_id, role, settings)
        active_org_id = str(org_id)

    return AuthResponse(
        user_id=str(user.id),
        email=user.email,
        active_org_id=active_org_id,
        message="Signed in",
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """Register with email/password, then sign in."""
    user = await user_service.register_user(
        body.email, body.password, body.name, session, bcrypt_rounds=settings.bcrypt_rounds
    )
    return await _start_session(user, response, session, settings)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    """Authenticate with email/password and receive a JWT session."""
    user = await user_service.authenticate_user(body.email, body.password, session)
    return await _start_session(user, response, session, settings)


@router.get("/session", response_model=SessionResponse)
async def get_session_info(user: UserIdentity = Depends(get_current_user)):
    """The identity behind the presented session."""
    return SessionResponse(user=SessionUser(id=user.id, email=user.email, name=user.name))


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    provider=Depends(get_session_provider),
    settings: Settings = Depends(get_app_settings),
):
    """Invalidate the current session and drop every auth cookie."""
    if isinstance(provider, JWTSessionProvider):
        await provider.revoke(request.headers)
    log.info("auth.logout")

    response.delete_cookie(settings.session_cookie, path="/")
    response.delete_cookie(settings.csrf_cookie, path="/")
    clear_org_cookies(response, settings)
    return {"message": "Logged out"}
