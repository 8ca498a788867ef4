"""Account and session schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, UUID4


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=200)
    name: str = Field(min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class SessionUser(BaseModel):
    id: UUID4
    email: Optional[str] = None
    name: Optional[str] = None


class SessionResponse(BaseModel):
    user: SessionUser


class AuthResponse(BaseModel):
    user_id: str
    email: str
    active_org_id: Optional[str] = None
    message: str
