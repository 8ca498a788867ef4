"""
Client-visible org claims.

The active org id and role are mirrored into plain cookies so the UI can
render the right workspace without a round trip. They are hints: every
privileged path re-reads membership from the database.
"""

from __future__ import annotations

import uuid
from typing import Union

from starlette.responses import Response

from autotest_shared.schemas.organizations import Role

from app.core.config import Settings


def set_org_cookies(
    response: Response,
    org_id: Union[uuid.UUID, str],
    role: Union[Role, str],
    settings: Settings,
) -> Response:
    """Attach the active org id and role cookies (site-wide, readable by JS)."""
    role_value = role.value if isinstance(role, Role) else str(role)
    response.set_cookie(key=settings.org_cookie, value=str(org_id), path="/", httponly=False, samesite="lax")
    response.set_cookie(key=settings.role_cookie, value=role_value, path="/", httponly=False, samesite="lax")
    return response


def clear_org_cookies(response: Response, settings: Settings) -> Response:
    response.delete_cookie(settings.org_cookie, path="/")
    response.delete_cookie(settings.role_cookie, path="/")
    return response
