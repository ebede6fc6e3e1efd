from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnlink.learning_plans.models import Category, CompletionStatus, ResourceType
from learnlink.users.schemas import UserSummary


# Requests


class ResourceCreate(BaseModel):
    """Schema for adding a resource to a topic."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    url: str | None = Field(None, max_length=2000)
    type: ResourceType = ResourceType.OTHER


class ResourceUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    url: str | None = Field(None, max_length=2000)
    type: ResourceType | None = None


class TopicCreate(BaseModel):
    """Schema for adding a topic; ``order_index`` defaults to the end of the plan."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    order_index: int | None = Field(None, ge=0)
    start_date: datetime | None = None
    resources: list[ResourceCreate] = Field(default_factory=list)


class TopicUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    order_index: int | None = Field(None, ge=0)
    start_date: datetime | None = None


class LearningPlanCreate(BaseModel):
    """Schema for creating a learning plan, optionally with its topics."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: Category
    estimated_days: int | None = Field(None, ge=0)
    is_public: bool = True
    start_date: datetime | None = None
    target_completion_date: datetime | None = None
    topics: list[TopicCreate] = Field(default_factory=list)


class LearningPlanUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    category: Category | None = None
    estimated_days: int | None = Field(None, ge=0)
    is_public: bool | None = None
    start_date: datetime | None = None
    target_completion_date: datetime | None = None


# Responses


class ResourceResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    url: str | None = None
    type: ResourceType
    is_completed: bool

    model_config = ConfigDict(from_attributes=True)


class TopicResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    order_index: int
    completion_status: CompletionStatus
    start_date: datetime | None = None
    completion_date: datetime | None = None
    resources: list[ResourceResponse] = Field(default_factory=list)


class LearningPlanResponse(BaseModel):
    """A plan as seen by one viewer.

    Topic status, resource completion and ``completion_percentage`` come from
    the viewer's progress overlay when they have one, otherwise from the
    creator's defaults.
    """

    id: UUID
    title: str
    description: str | None = None
    creator: UserSummary
    category: Category
    topics: list[TopicResponse] = Field(default_factory=list)
    estimated_days: int | None = None
    completion_percentage: int
    is_public: bool
    start_date: datetime | None = None
    target_completion_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LearningPlanSummary(BaseModel):
    """List entry without the topic tree."""

    id: UUID
    title: str
    description: str | None = None
    user_id: UUID
    category: Category
    estimated_days: int | None = None
    completion_percentage: int
    is_public: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LearningPlanListResponse(BaseModel):
    items: list[LearningPlanSummary]
    total: int
    page: int
    pages: int
