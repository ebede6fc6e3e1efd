from uuid import UUID

from pydantic import BaseModel

from learnlink.users.schemas import UserSummary


class FollowStatusResponse(BaseModel):
    """Whether the current user follows ``user_id``, with that user's counts."""

    user_id: UUID
    is_following: bool
    followers_count: int
    following_count: int


class FollowListResponse(BaseModel):
    items: list[UserSummary]
    total: int
    page: int
    pages: int
