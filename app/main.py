"""
Prompt Autotest API Server

Entry point for the FastAPI application.
"""

from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.auth import JWTSessionProvider
from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.errors import register_error_handlers
from app.core.logging import configure_logging
from app.core.middleware import CSRFMiddleware, RequestContextMiddleware, SecurityHeadersMiddleware
from app.core.redis import RevocationList
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router

log = structlog.get_logger()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The database handle, settings and session provider live on ``app.state``;
    tests pass their own ``Settings`` to get an isolated instance.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Prompt Autotest",
        description="Multi-tenant prompt testing workspace API.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    revocations = RevocationList.from_url(settings.redis_url) if settings.redis_url else None
    app.state.settings = settings
    app.state.db = Database(settings.database_url, echo=settings.debug)
    app.state.session_provider = JWTSessionProvider(settings, revocations)

    register_error_handlers(app)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CSRFMiddleware,
        session_cookie=settings.session_cookie,
        csrf_cookie=settings.csrf_cookie,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token", settings.org_header],
    )
    app.add_middleware(RequestContextMiddleware)

    # Auth routes (not org-scoped)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        await app.state.db.ping()
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info(
            "Prompt Autotest starting",
            shadow_mode=settings.org_shadow_mode,
            invites=settings.invite_flow_enabled,
            revocation=revocations is not None,
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Prompt Autotest shutting down")
        await app.state.db.dispose()
        if revocations is not None:
            await revocations.close()

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_level=settings.log_level)
