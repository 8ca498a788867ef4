"""Organization membership (join table keyed on org + user)."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class OrganizationMember(TimestampMixin, SQLModel, table=True):
    __tablename__ = "organization_members"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="VIEWER")  # OWNER | ADMIN | MEMBER | VIEWER
    status: str = Field(nullable=False, default="ACTIVE", index=True)  # ACTIVE | REMOVED
