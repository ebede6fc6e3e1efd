import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import JSON, Enum as SAEnum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from learnlink.database.base import Base, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PostType(str, Enum):
    GENERAL = "GENERAL"
    LEARNING_PROGRESS = "LEARNING_PROGRESS"
    QUESTION = "QUESTION"
    RESOURCE_SHARE = "RESOURCE_SHARE"


class Post(Base):
    """User post.

    ``learning_plan_progress`` mirrors the author's latest overlay percentage
    and is rewritten on every progress mutation.
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    post_type: Mapped[PostType] = mapped_column(
        SAEnum(PostType, native_enum=False, length=30),
        nullable=False,
        default=PostType.GENERAL,
    )
    media_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    learning_plan_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("learning_plans.id", ondelete="SET NULL"),
        nullable=True,
    )
    learning_plan_progress: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
