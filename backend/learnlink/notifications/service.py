import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.database.pagination import Paginator
from learnlink.exceptions import ResourceNotFoundError, UnauthorizedActionError
from learnlink.notifications.models import Notification, NotificationType
from learnlink.posts.models import Comment, Post
from learnlink.users.service import UserService


logger = logging.getLogger(__name__)


class NotificationService:
    """Creates notifications for follows, likes and comments, and lets recipients read them.

    Creators only add and flush; the caller owns the transaction. Nobody is
    notified about their own actions.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _actor_name(self, actor_id: UUID) -> str:
        summaries = await UserService(self._session).get_summaries({actor_id})
        return summaries[actor_id].name or "Someone"

    async def _create(self, notification: Notification) -> Notification | None:
        if notification.recipient_id == notification.actor_id:
            return None

        self._session.add(notification)
        await self._session.flush()
        logger.info(
            f"Notified user {notification.recipient_id} of {notification.type.value} by {notification.actor_id}"
        )
        return notification

    async def notify_follow(self, recipient_id: UUID, follower_id: UUID) -> Notification | None:
        name = await self._actor_name(follower_id)
        return await self._create(
            Notification(
                recipient_id=recipient_id,
                actor_id=follower_id,
                type=NotificationType.FOLLOW,
                message=f"{name} started following you",
            )
        )

    async def notify_post_like(self, post: Post, liker_id: UUID) -> Notification | None:
        name = await self._actor_name(liker_id)
        return await self._create(
            Notification(
                recipient_id=post.user_id,
                actor_id=liker_id,
                type=NotificationType.LIKE,
                message=f"{name} liked your post",
                post_id=post.id,
            )
        )

    async def notify_post_comment(self, post: Post, comment: Comment) -> Notification | None:
        name = await self._actor_name(comment.user_id)
        return await self._create(
            Notification(
                recipient_id=post.user_id,
                actor_id=comment.user_id,
                type=NotificationType.COMMENT,
                message=f"{name} commented on your post",
                post_id=post.id,
                comment_id=comment.id,
            )
        )

    async def list_notifications(
        self,
        user_id: UUID,
        *,
        unread_only: bool = False,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[Notification], int]:
        """A user's notifications, newest first."""
        query = select(Notification).where(Notification.recipient_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id)

        paginator = Paginator(page=page, limit=limit)
        return await paginator.paginate(self._session, query)

    async def count_unread(self, user_id: UUID) -> int:
        query = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
        )
        return await self._session.scalar(query) or 0

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        """
        Mark one notification read.

        Raises
        ------
        ResourceNotFoundError
            If the notification does not exist
        UnauthorizedActionError
            If it belongs to another user
        """
        notification = await self._session.get(Notification, notification_id)
        if notification is None:
            msg = "Notification"
            raise ResourceNotFoundError(msg, notification_id)
        if notification.recipient_id != user_id:
            raise UnauthorizedActionError("read", "Notification")

        notification.mark_read()
        await self._session.commit()
        return notification

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification of ``user_id`` read and return how many changed."""
        unread = (
            await self._session.scalars(
                select(Notification).where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            )
        ).all()
        for notification in unread:
            notification.mark_read()
        await self._session.commit()

        if unread:
            logger.info(f"Marked {len(unread)} notifications read for user {user_id}")
        return len(unread)
