from fastapi import APIRouter

from learnlink.auth import CurrentAuth
from learnlink.users.schemas import UserProfileUpdate, UserResponse
from learnlink.users.service import UserService


router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me")
async def get_current_user(auth: CurrentAuth) -> UserResponse:
    """Profile of the resolved current user; an empty profile is created on first access."""
    service = UserService(auth.session)
    user = await service.get_or_create_user(auth.user_id)
    await auth.session.commit()
    return UserResponse.model_validate(user)


@router.put("/me")
async def update_current_user(data: UserProfileUpdate, auth: CurrentAuth) -> UserResponse:
    """Update the current user's profile."""
    service = UserService(auth.session)
    user = await service.update_profile(auth.user_id, data)
    return UserResponse.model_validate(user)
