import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Enum as SAEnum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from learnlink.database.base import Base, UTCDateTime


class ActivityType(str, Enum):
    """Timeline entry kinds."""

    LEARNING_PROGRESS = "LEARNING_PROGRESS"
    TOPIC_COMPLETED = "TOPIC_COMPLETED"
    RESOURCE_COMPLETED = "RESOURCE_COMPLETED"
    POST_LIKE = "POST_LIKE"
    POST_COMMENT = "POST_COMMENT"


LEARNING_ACTIVITY_TYPES = (
    ActivityType.LEARNING_PROGRESS,
    ActivityType.TOPIC_COMPLETED,
    ActivityType.RESOURCE_COMPLETED,
)
SOCIAL_ACTIVITY_TYPES = (ActivityType.POST_LIKE, ActivityType.POST_COMMENT)


class UserActivity(Base):
    """One entry in a user's activity timeline.

    Which of the optional columns are filled depends on ``type``. Titles are
    copied at record time so the entry still reads well after renames.
    """

    __tablename__ = "user_activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    type: Mapped[ActivityType] = mapped_column(SAEnum(ActivityType, native_enum=False, length=30), nullable=False)

    # LEARNING_PROGRESS / TOPIC_COMPLETED / RESOURCE_COMPLETED
    learning_plan_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("learning_plans.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    learning_plan_title: Mapped[str | None] = mapped_column(String(200))
    progress_percentage: Mapped[int | None] = mapped_column(Integer)
    topic_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    topic_title: Mapped[str | None] = mapped_column(String(200))
    resource_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    resource_title: Mapped[str | None] = mapped_column(String(200))

    # POST_LIKE / POST_COMMENT
    post_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    comment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
    )

    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=lambda: datetime.now(UTC),
        index=True,
    )
