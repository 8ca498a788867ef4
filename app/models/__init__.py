# SQLModel definitions — imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .organization_member import OrganizationMember  # noqa: F401
from .organization_invitation import OrganizationInvitation  # noqa: F401
