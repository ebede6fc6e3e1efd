from uuid import UUID

from fastapi import APIRouter, Depends

from learnlink.auth import CurrentAuth
from learnlink.database.pagination import Paginator
from learnlink.dependencies import LimitParam, PageParam
from learnlink.follows.schemas import FollowListResponse, FollowStatusResponse
from learnlink.follows.service import FollowService
from learnlink.middleware.security import follows_rate_limit
from learnlink.users.schemas import UserSummary


router = APIRouter(prefix="/api/v1/users", tags=["follows"], dependencies=[Depends(follows_rate_limit)])


def _page(items: list[UserSummary], total: int, page: int, limit: int) -> FollowListResponse:
    paginator = Paginator(page=page, limit=limit)
    return FollowListResponse(
        items=items,
        total=total,
        page=paginator.page,
        pages=(total + paginator.limit - 1) // paginator.limit,
    )


@router.post("/{user_id}/follow", responses={404: {"description": "User not found"}})
async def follow_user(user_id: UUID, auth: CurrentAuth) -> FollowStatusResponse:
    """Follow a user as the current user."""
    return await FollowService(auth.session).follow(auth.user_id, user_id)


@router.delete("/{user_id}/follow")
async def unfollow_user(user_id: UUID, auth: CurrentAuth) -> FollowStatusResponse:
    return await FollowService(auth.session).unfollow(auth.user_id, user_id)


@router.get("/{user_id}/follow")
async def get_follow_status(user_id: UUID, auth: CurrentAuth) -> FollowStatusResponse:
    """Whether the current user follows ``user_id``."""
    return await FollowService(auth.session).get_follow_status(auth.user_id, user_id)


@router.get("/{user_id}/followers")
async def list_followers(
    user_id: UUID,
    auth: CurrentAuth,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> FollowListResponse:
    followers, total = await FollowService(auth.session).list_followers(user_id, page=page, limit=limit)
    return _page(followers, total, page, limit)


@router.get("/{user_id}/following")
async def list_following(
    user_id: UUID,
    auth: CurrentAuth,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> FollowListResponse:
    following, total = await FollowService(auth.session).list_following(user_id, page=page, limit=limit)
    return _page(following, total, page, limit)
