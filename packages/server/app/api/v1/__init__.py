"""
API v1 Router

Workspace-scoped endpoints are prefixed with /workspaces/{workspaceId}.
"""

from fastapi import APIRouter
from . import (
    api_keys,
    auth,
    automation,
    collections,
    invites,
    teams,
    templates,
    users,
    vault,
    workspaces,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(workspaces.router, prefix="/workspaces", tags=["Workspaces"])

# Workspace-scoped resources
router.include_router(
    collections.router, prefix="/workspaces/{workspaceId}/collections", tags=["Collections"]
)
router.include_router(
    api_keys.router, prefix="/workspaces/{workspaceId}/api-keys", tags=["API Keys"]
)
router.include_router(vault.router, prefix="/workspaces/{workspaceId}/vault", tags=["Vault"])

router.include_router(teams.router, prefix="/teams", tags=["Teams"])
router.include_router(invites.router, prefix="/invites", tags=["Invites"])
router.include_router(templates.router, prefix="/templates", tags=["Templates"])
router.include_router(automation.router, prefix="/automation", tags=["Automation"])


@router.get("/", tags=["API"])
async def api_root():
    """API root - returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/auth",
            "/users/me",
            "/workspaces",
            "/workspaces/{workspaceId}/collections",
            "/workspaces/{workspaceId}/api-keys",
            "/workspaces/{workspaceId}/vault",
            "/teams",
            "/invites",
            "/templates",
            "/automation/collections",
        ],
    }
