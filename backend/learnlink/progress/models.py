"""Per-user progress overlay tables.

One ``user_progress`` row per (user, plan), plus one row per tracked topic and
resource. Rows reference plan topics/resources by id and are removed by the
database when the plan, topic or resource goes away.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from learnlink.database.base import Base, UTCDateTime
from learnlink.learning_plans.models import CompletionStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserProgress(Base):
    """A viewer's aggregate progress on one learning plan."""

    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("user_id", "learning_plan_id", name="uq_user_progress_user_plan"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    learning_plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("learning_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    last_updated: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        """Return string representation of the progress overlay."""
        return (
            f"<UserProgress(user_id={self.user_id}, plan_id={self.learning_plan_id}, "
            f"completion={self.completion_percentage})>"
        )


class TopicProgress(Base):
    """A viewer's status for one topic."""

    __tablename__ = "user_topic_progress"
    __table_args__ = (UniqueConstraint("user_progress_id", "topic_id", name="uq_user_topic_progress_topic"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_progress.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    topic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[CompletionStatus] = mapped_column(
        SAEnum(CompletionStatus, native_enum=False, length=20),
        nullable=False,
        default=CompletionStatus.NOT_STARTED,
    )
    completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def set_status(self, status: CompletionStatus) -> None:
        """Change status; the date is stamped on entering COMPLETED and cleared on leaving it."""
        if status == CompletionStatus.COMPLETED:
            if self.completion_date is None:
                self.completion_date = _utcnow()
        else:
            self.completion_date = None
        self.status = status


class ResourceProgress(Base):
    """A viewer's completion flag for one resource."""

    __tablename__ = "user_resource_progress"
    __table_args__ = (
        UniqueConstraint("user_progress_id", "resource_id", name="uq_user_resource_progress_resource"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_progress.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("resources.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def set_completed(self, is_completed: bool) -> None:
        if is_completed:
            if self.completion_date is None:
                self.completion_date = _utcnow()
        else:
            self.completion_date = None
        self.is_completed = is_completed
