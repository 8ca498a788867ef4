"""Organization invitation model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class OrganizationInvitation(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organization_invitations"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    email: str = Field(nullable=False, index=True)  # stored lower-cased
    role: str = Field(nullable=False, default="VIEWER")
    token: str = Field(unique=True, nullable=False)
    status: str = Field(nullable=False, default="PENDING", index=True)  # PENDING | ACCEPTED | EXPIRED | REVOKED
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    invited_by_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    accepted_by_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
