import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from learnlink.database.base import Base, UTCDateTime


__all__ = ["Category", "CompletionStatus", "LearningPlan", "Resource", "ResourceType", "Topic"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Category(str, Enum):
    """Learning plan subject area."""

    PROGRAMMING = "PROGRAMMING"
    DESIGN = "DESIGN"
    BUSINESS = "BUSINESS"
    LANGUAGE = "LANGUAGE"
    MUSIC = "MUSIC"
    ART = "ART"
    SCIENCE = "SCIENCE"
    MATH = "MATH"
    HISTORY = "HISTORY"
    OTHER = "OTHER"


class CompletionStatus(str, Enum):
    """Topic completion state, shared by plan topics and per-user topic progress."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ResourceType(str, Enum):
    """Kind of learning material."""

    ARTICLE = "ARTICLE"
    VIDEO = "VIDEO"
    BOOK = "BOOK"
    COURSE = "COURSE"
    EXERCISE = "EXERCISE"
    PDF = "PDF"
    OTHER = "OTHER"


class LearningPlan(Base):
    """Learning plan authored by ``user_id``.

    ``completion_percentage`` is the creator's own (default) progress; viewers
    track theirs in ``user_progress``.
    """

    __tablename__ = "learning_plans"
    __table_args__ = (
        CheckConstraint(
            "completion_percentage >= 0 AND completion_percentage <= 100",
            name="completion_percentage_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[Category] = mapped_column(
        SAEnum(Category, native_enum=False, length=20),
        nullable=False,
        default=Category.OTHER,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    estimated_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    target_completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        """Return string representation of the learning plan."""
        return f"<LearningPlan(id={self.id}, title={self.title})>"


class Topic(Base):
    """Ordered unit of a learning plan."""

    __tablename__ = "topics"
    __table_args__ = (UniqueConstraint("learning_plan_id", "order_index", name="uq_topics_plan_order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    learning_plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("learning_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    completion_status: Mapped[CompletionStatus] = mapped_column(
        SAEnum(CompletionStatus, native_enum=False, length=20),
        nullable=False,
        default=CompletionStatus.NOT_STARTED,
    )
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # Set iff completion_status is COMPLETED
    completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def set_status(self, status: CompletionStatus) -> None:
        """Change status, keeping ``completion_date`` in step with it."""
        if status == CompletionStatus.COMPLETED:
            if self.completion_date is None:
                self.completion_date = _utcnow()
        else:
            self.completion_date = None
        self.completion_status = status

    def __repr__(self) -> str:
        """Return string representation of the topic."""
        return f"<Topic(id={self.id}, order_index={self.order_index}, status={self.completion_status})>"


class Resource(Base):
    """Learning material attached to a topic."""

    __tablename__ = "resources"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    topic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    type: Mapped[ResourceType] = mapped_column(
        SAEnum(ResourceType, native_enum=False, length=20),
        nullable=False,
        default=ResourceType.OTHER,
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        """Return string representation of the resource."""
        return f"<Resource(id={self.id}, title={self.title}, completed={self.is_completed})>"
