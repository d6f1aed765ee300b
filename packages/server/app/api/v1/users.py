"""
User profile endpoints.

GET    /api/v1/users/me  - Current user profile
PATCH  /api/v1/users/me  - Update display name
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_user_service
from app.models.user import User
from app.services.users import UserService
from nikode_shared.schemas.users import UserResponse, UserUpdateRequest

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: UserUpdateRequest,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    updated = await users.update(user.id, body.name)
    return UserResponse.model_validate(updated)
