from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from learnlink.activities.models import ActivityType


class ActivityKind(str, Enum):
    """Timeline filter."""

    ALL = "all"
    LEARNING = "learning"
    SOCIAL = "social"


class ActivityResponse(BaseModel):
    id: UUID
    user_id: UUID
    type: ActivityType
    timestamp: datetime
    learning_plan_id: UUID | None = None
    learning_plan_title: str | None = None
    progress_percentage: int | None = None
    topic_id: UUID | None = None
    topic_title: str | None = None
    resource_id: UUID | None = None
    resource_title: str | None = None
    post_id: UUID | None = None
    comment_id: UUID | None = None

    model_config = ConfigDict(from_attributes=True)


class ActivityListResponse(BaseModel):
    items: list[ActivityResponse]
    total: int
    page: int
    pages: int
