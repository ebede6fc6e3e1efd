from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from learnlink.learning_plans.models import CompletionStatus


class TopicProgressResponse(BaseModel):
    topic_id: UUID
    status: CompletionStatus
    completion_date: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ResourceProgressResponse(BaseModel):
    resource_id: UUID
    is_completed: bool
    completion_date: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProgressResponse(BaseModel):
    """A viewer's progress on a plan.

    ``id`` is None when the viewer has not recorded any progress yet; the rest
    is then the zeroed state.
    """

    id: UUID | None = None
    user_id: UUID
    learning_plan_id: UUID
    completion_percentage: int = 0
    start_date: datetime | None = None
    last_updated: datetime | None = None
    topics: list[TopicProgressResponse]
    resources: list[ResourceProgressResponse]
