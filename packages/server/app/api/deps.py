"""
Request-scoped dependencies: service construction and principal resolution.

Credentials are checked in order:
1. ``Authorization: Bearer <jwt>``: a user access token
2. ``X-API-Key: nik_...``: a workspace API key
otherwise the request is unauthenticated.
"""

from __future__ import annotations

from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, decode_token, token_user_id
from app.core.database import get_session
from app.core.errors import ErrorKind, ServiceError
from app.models.user import User
from app.services.api_keys import ApiKeyService
from app.services.collections import CollectionService
from app.services.teams import TeamService
from app.services.templates import TemplateService
from app.services.tokens import TokenService
from app.services.users import UserService
from app.services.vault import VaultService
from app.services.workspaces import WorkspaceService

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


def get_team_service(session: AsyncSession = Depends(get_session)) -> TeamService:
    return TeamService(session)


def get_workspace_service(session: AsyncSession = Depends(get_session)) -> WorkspaceService:
    return WorkspaceService(session)


def get_collection_service(session: AsyncSession = Depends(get_session)) -> CollectionService:
    return CollectionService(session)


def get_vault_service(session: AsyncSession = Depends(get_session)) -> VaultService:
    return VaultService(session)


def get_api_key_service(session: AsyncSession = Depends(get_session)) -> ApiKeyService:
    return ApiKeyService(session)


def get_token_service(session: AsyncSession = Depends(get_session)) -> TokenService:
    return TokenService(session)


def get_template_service(session: AsyncSession = Depends(get_session)) -> TemplateService:
    return TemplateService(session)


# ---------------------------------------------------------------------------
# Principal resolution
# ---------------------------------------------------------------------------

def _principal_from_jwt(token: str) -> Principal:
    try:
        payload = decode_token(token)
        user_id = token_user_id(payload)
    except (jwt.PyJWTError, KeyError, ValueError):
        raise ServiceError(ErrorKind.UNAUTHENTICATED, "invalid or expired token")
    if "jti" in payload:
        # Refresh tokens are only accepted by /auth/refresh.
        raise ServiceError(ErrorKind.UNAUTHENTICATED, "invalid or expired token")
    return Principal.for_user(user_id, payload.get("email"))


async def get_principal(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    api_key: Optional[str] = Depends(api_key_header),
    api_keys: ApiKeyService = Depends(get_api_key_service),
) -> Principal:
    """Main authentication dependency. Tries the bearer token first, then the API key."""
    if authorization and authorization.startswith("Bearer "):
        principal = _principal_from_jwt(authorization[7:].strip())
    elif api_key:
        key = await api_keys.validate(api_key.strip())
        principal = Principal.for_api_key(key.workspace_id)
    else:
        raise ServiceError(ErrorKind.UNAUTHENTICATED, "authentication required")

    request.state.principal = principal
    structlog.contextvars.bind_contextvars(principal=principal.kind)
    return principal


async def get_user_principal(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_user:
        raise ServiceError(ErrorKind.FORBIDDEN, "user authentication required")
    return principal


async def get_api_key_principal(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_api_key:
        raise ServiceError(ErrorKind.UNAUTHENTICATED, "api key required")
    return principal


async def get_current_user(
    principal: Principal = Depends(get_user_principal),
    users: UserService = Depends(get_user_service),
) -> User:
    try:
        return await users.get_by_id(principal.user_id)
    except ServiceError:
        raise ServiceError(ErrorKind.UNAUTHENTICATED, "user not found")
