"""
Organization-related Pydantic schemas shared between the server and its clients.

Covers: org roles and membership states, invitation lifecycle,
org CRUD and switch request/response payloads.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Role(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


# Lowest first. Rank comparisons go through this list only.
ROLE_ORDER: list[Role] = [Role.VIEWER, Role.MEMBER, Role.ADMIN, Role.OWNER]


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------

INVITATION_TRANSITIONS: dict[InvitationStatus, list[InvitationStatus]] = {
    InvitationStatus.PENDING: [
        InvitationStatus.ACCEPTED,
        InvitationStatus.EXPIRED,
        InvitationStatus.REVOKED,
    ],
    InvitationStatus.ACCEPTED: [],
    InvitationStatus.EXPIRED: [],
    InvitationStatus.REVOKED: [],
}


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Organization display name")


class OrgRenameRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)


class MemberRoleUpdateRequest(BaseModel):
    role: Role


class InviteRequest(BaseModel):
    email: EmailStr
    role: Role = Role.VIEWER


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str

    model_config = {"from_attributes": True}


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    role: Role  # the requesting user's role in this org
    is_active: bool


class OrgDeleteResponse(BaseModel):
    ok: bool = True
    next_org_id: Optional[uuid.UUID] = None


class OrgSwitchResponse(BaseModel):
    ok: bool = True
    active_org_id: uuid.UUID
    org_role: Role


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    name: Optional[str] = None
    email: Optional[str] = None
    role: Role
    status: MemberStatus


class MemberRoleResponse(BaseModel):
    user_id: uuid.UUID
    role: Role


class InvitationResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: Role
    expires_at: datetime
    status: InvitationStatus


class InvitationCreatedResponse(BaseModel):
    """Returned once on creation. The token is the only way to reference the invite out of band."""
    id: uuid.UUID
    token: str
    expires_at: datetime


class AlreadyMemberResponse(BaseModel):
    status: str = "already_member"


class OkResponse(BaseModel):
    ok: bool = True
