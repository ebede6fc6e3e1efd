import uuid
from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from learnlink.database.base import Base, UTCDateTime


class Follow(Base):
    """``follower_id`` follows ``following_id``."""

    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_follower_following"),
        CheckConstraint("follower_id <> following_id", name="no_self_follow"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    follower_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    following_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        """Return string representation of the follow."""
        return f"<Follow(follower_id={self.follower_id}, following_id={self.following_id})>"
