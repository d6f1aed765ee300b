"""
Session token endpoints.

POST /api/v1/auth/refresh     - Exchange a refresh token for a new pair
POST /api/v1/auth/logout      - Revoke a refresh token
POST /api/v1/auth/logout-all  - Revoke every refresh token of the caller
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_token_service, get_user_service
from app.core.errors import ErrorKind, ServiceError
from app.models.user import User
from app.services.tokens import TokenService
from app.services.users import UserService
from nikode_shared.schemas.auth import LogoutRequest, RefreshRequest, TokenPairResponse
from nikode_shared.schemas.common import MessageResponse

router = APIRouter()


@router.post("/refresh", response_model=TokenPairResponse)
async def refresh_session(
    body: RefreshRequest,
    tokens: TokenService = Depends(get_token_service),
    users: UserService = Depends(get_user_service),
):
    """Rotate a refresh token. The presented token stops working."""
    user_id = await tokens.validate_refresh_token(body.refresh_token)
    try:
        user = await users.get_by_id(user_id)
    except ServiceError:
        raise ServiceError(ErrorKind.UNAUTHENTICATED, "user not found")
    pair = await tokens.rotate(body.refresh_token, user)
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    tokens: TokenService = Depends(get_token_service),
):
    """Invalidate a refresh token. Unknown tokens are ignored."""
    await tokens.revoke_refresh_token(body.refresh_token)
    return MessageResponse(message="logged out")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    user: User = Depends(get_current_user),
    tokens: TokenService = Depends(get_token_service),
):
    """Invalidate every session of the caller."""
    await tokens.revoke_all_user_tokens(user.id)
    return MessageResponse(message="logged out from all devices")
