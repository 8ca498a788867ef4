"""
Role-based capability checks.

``can`` is a pure lookup: (resource, action) -> minimum role, compared by rank.
Anything not in the table is denied.
"""

from __future__ import annotations

from typing import Optional, Union

from autotest_shared.schemas.organizations import ROLE_ORDER, Role

from app.core.errors import Forbidden

READ = "read"
WRITE = "write"
MANAGE = "manage"
DELETE = "delete"

# ---------------------------------------------------------------------------
# Permission table
# ---------------------------------------------------------------------------

_CONTENT_RULES = {
    READ: Role.VIEWER,
    WRITE: Role.MEMBER,
    DELETE: Role.MEMBER,
    MANAGE: Role.ADMIN,
}

PERMISSIONS: dict[tuple[str, str], Role] = {
    **{("scenarios", action): role for action, role in _CONTENT_RULES.items()},
    **{("prompts", action): role for action, role in _CONTENT_RULES.items()},
    **{("variables", action): role for action, role in _CONTENT_RULES.items()},
    ("members", READ): Role.VIEWER,
    ("members", MANAGE): Role.ADMIN,
    ("invitations", READ): Role.ADMIN,
    ("invitations", MANAGE): Role.ADMIN,
    ("settings", READ): Role.MEMBER,
    ("settings", MANAGE): Role.ADMIN,
    ("orgs", READ): Role.VIEWER,
    ("orgs", MANAGE): Role.ADMIN,
    ("orgs", DELETE): Role.OWNER,
}


def role_rank(role: Union[Role, str, None]) -> int:
    """Position of ``role`` in ROLE_ORDER, or -1 for anything unrecognised."""
    try:
        return ROLE_ORDER.index(Role(role))
    except ValueError:
        return -1


def min_role(action: str, resource: str) -> Optional[Role]:
    return PERMISSIONS.get((resource, action))


def can(ctx, action: str, resource: str) -> bool:
    """Return True iff ``ctx.role`` ranks at or above the minimum role for (resource, action)."""
    required = PERMISSIONS.get((resource, action))
    if required is None:
        return False
    rank = role_rank(getattr(ctx, "role", None))
    if rank < 0:
        return False
    return rank >= ROLE_ORDER.index(required)


def require_capability(ctx, action: str, resource: str) -> None:
    if not can(ctx, action, resource):
        raise Forbidden("Insufficient role")
