from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from learnlink.notifications.models import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    recipient_id: UUID
    actor_id: UUID
    type: NotificationType
    message: str
    post_id: UUID | None = None
    comment_id: UUID | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread: int
    page: int
    pages: int


class MarkAllReadResponse(BaseModel):
    """How many notifications were flipped to read."""

    updated: int
