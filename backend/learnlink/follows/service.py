import logging
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.database.pagination import Paginator
from learnlink.exceptions import ValidationError
from learnlink.follows.models import Follow
from learnlink.follows.schemas import FollowStatusResponse
from learnlink.notifications.service import NotificationService
from learnlink.users.schemas import UserSummary
from learnlink.users.service import UserService


logger = logging.getLogger(__name__)


class FollowService:
    """Who follows whom."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._users = UserService(session)

    async def follow(self, follower_id: UUID, following_id: UUID) -> FollowStatusResponse:
        """
        Start following a user. Following someone twice is a no-op.

        The followed user is notified the first time only.

        Raises
        ------
        ValidationError
            If a user tries to follow themselves
        ResourceNotFoundError
            If the user to follow has no profile
        """
        if follower_id == following_id:
            msg = "Users cannot follow themselves"
            raise ValidationError(msg)
        await self._users.get_user(following_id)

        if not await self._is_following(follower_id, following_id):
            try:
                async with self._session.begin_nested():
                    self._session.add(Follow(follower_id=follower_id, following_id=following_id))
                    await self._session.flush()
            except IntegrityError:
                logger.info(f"User {follower_id} already followed {following_id} from a concurrent request")
            else:
                await NotificationService(self._session).notify_follow(following_id, follower_id)
                logger.info(f"User {follower_id} followed {following_id}")
            await self._session.commit()

        return await self.get_follow_status(follower_id, following_id)

    async def unfollow(self, follower_id: UUID, following_id: UUID) -> FollowStatusResponse:
        """Stop following a user. Unfollowing someone not followed is a no-op."""
        await self._users.get_user(following_id)
        await self._session.execute(
            delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
        )
        await self._session.commit()
        return await self.get_follow_status(follower_id, following_id)

    async def get_follow_status(self, follower_id: UUID, following_id: UUID) -> FollowStatusResponse:
        await self._users.get_user(following_id)
        return FollowStatusResponse(
            user_id=following_id,
            is_following=await self._is_following(follower_id, following_id),
            followers_count=await self._count(Follow.following_id == following_id),
            following_count=await self._count(Follow.follower_id == following_id),
        )

    async def list_followers(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[UserSummary], int]:
        """Users following ``user_id``, most recent first."""
        query = (
            select(Follow.follower_id)
            .where(Follow.following_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.id)
        )
        return await self._paginate_users(query, page, limit)

    async def list_following(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[UserSummary], int]:
        """Users ``user_id`` follows, most recent first."""
        query = (
            select(Follow.following_id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.id)
        )
        return await self._paginate_users(query, page, limit)

    async def _paginate_users(
        self,
        query: Select[Any],
        page: int,
        limit: int | None,
    ) -> tuple[list[UserSummary], int]:
        user_ids, total = await Paginator(page=page, limit=limit).paginate(self._session, query)
        summaries = await self._users.get_summaries(set(user_ids))
        return [summaries[user_id] for user_id in user_ids], total

    async def _is_following(self, follower_id: UUID, following_id: UUID) -> bool:
        existing = await self._session.scalar(
            select(Follow.id).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
        )
        return existing is not None

    async def _count(self, criterion: ColumnElement[bool]) -> int:
        return await self._session.scalar(select(func.count()).select_from(Follow).where(criterion)) or 0
