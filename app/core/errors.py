"""
Error kinds raised by the auth/org layer and the JSON envelope they render to.

Components raise the most specific kind; only the handlers registered here
turn them into HTTP responses. Nothing is retried.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from autotest_shared.schemas.common import ErrorBody, ErrorCode, ErrorResponse

log = structlog.get_logger()


class AppError(HTTPException):
    """Base class: an HTTPException that also carries a machine-readable code."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(status_code=type(self).status_code, detail=self.message)


class Unauthenticated(AppError):
    status_code = 401
    code = ErrorCode.UNAUTHENTICATED
    default_message = "Authentication required"


class OrgRequired(AppError):
    status_code = 400
    code = ErrorCode.ORG_REQUIRED
    default_message = "Organization required"


class Forbidden(AppError):
    status_code = 403
    code = ErrorCode.FORBIDDEN
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class BadRequest(AppError):
    status_code = 400
    code = ErrorCode.BAD_REQUEST
    default_message = "Bad request"


class Conflict(AppError):
    status_code = 409
    code = ErrorCode.CONFLICT
    default_message = "Conflict"


class InternalError(AppError):
    """Anything unexpected; the message never leaks the underlying exception."""


def error_payload(code: ErrorCode | str, message: str, status: int, details: Any = None) -> dict:
    fields: dict[str, Any] = {"code": code, "message": message, "status": status}
    if details is not None:
        fields["details"] = jsonable_encoder(details)
    return ErrorResponse(error=ErrorBody(**fields)).model_dump(mode="json", exclude_unset=True)


def error_response(code: ErrorCode | str, message: str, status: int, details: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status, content=error_payload(code, message, status, details))


def internal_error_response() -> JSONResponse:
    err = InternalError()
    return error_response(err.code, err.message, err.status_code)


_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
}


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope renderers on the application."""

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError) -> JSONResponse:
        log.info("request.rejected", code=exc.code.value, status=exc.status_code, path=request.url.path)
        return error_response(exc.code, exc.message, exc.status_code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL)
        return error_response(code, str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(ErrorCode.BAD_REQUEST, "Invalid payload", 422, exc.errors())

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # Reached only for failures outside RequestContextMiddleware.
        log.exception("request.failed", path=request.url.path, method=request.method)
        return internal_error_response()
