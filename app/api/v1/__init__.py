"""
API v1 Router

Org-scoped endpoints are prefixed with /orgs/{org_id}.
"""

from fastapi import APIRouter
from . import invitations, members, organizations

router = APIRouter()

# Organization routes (list, create, rename, delete, switch)
router.include_router(organizations.router, prefix="/orgs")

# Active-org scoped resources
router.include_router(members.router, prefix="/orgs/{org_id}/members")
router.include_router(invitations.router, prefix="/orgs/{org_id}/invitations")


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{org_id}/switch",
            "/orgs/{org_id}/members",
            "/orgs/{org_id}/invitations",
        ],
    }
