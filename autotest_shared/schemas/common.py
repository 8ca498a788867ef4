from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorCode(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    ORG_REQUIRED = "ORG_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    CONFLICT = "CONFLICT"
    CSRF_VALIDATION_FAILED = "CSRF_VALIDATION_FAILED"
    INTERNAL = "INTERNAL"


class ErrorBody(BaseModel):
    code: ErrorCode
    message: str
    status: int
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
