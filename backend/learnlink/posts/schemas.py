from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnlink.posts.models import PostType
from learnlink.users.schemas import UserSummary


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    post_type: PostType = PostType.GENERAL
    media_urls: list[str] = Field(default_factory=list, max_length=10)
    learning_plan_id: UUID | None = None


class PostUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    post_type: PostType | None = None
    media_urls: list[str] | None = Field(None, max_length=10)
    learning_plan_id: UUID | None = None


class PostResponse(BaseModel):
    id: UUID
    title: str
    content: str
    post_type: PostType
    author: UserSummary
    media_urls: list[str] = Field(default_factory=list)
    learning_plan_id: UUID | None = None
    learning_plan_progress: int | None = None
    likes_count: int = 0
    comments_count: int = 0
    is_liked_by_current_user: bool = False
    created_at: datetime
    updated_at: datetime


class PostListResponse(BaseModel):
    items: list[PostResponse]
    total: int
    page: int
    pages: int


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
