import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.activities.service import ActivityService
from learnlink.database.pagination import Paginator
from learnlink.exceptions import ResourceNotFoundError, UnauthorizedActionError
from learnlink.notifications.service import NotificationService
from learnlink.posts.models import Comment, Like, Post
from learnlink.posts.schemas import CommentCreate, PostCreate, PostResponse, PostUpdate
from learnlink.users.service import UserService


logger = logging.getLogger(__name__)


class PostService:
    """Posts, likes and comments."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_post(self, post_id: UUID) -> Post:
        """
        Get post by ID.

        Raises
        ------
        ResourceNotFoundError
            If post not found
        """
        post = await self._session.get(Post, post_id)
        if post is None:
            msg = "Post"
            raise ResourceNotFoundError(msg, post_id)
        return post

    async def _get_owned_post(self, post_id: UUID, user_id: UUID, action: str) -> Post:
        post = await self.get_post(post_id)
        if post.user_id != user_id:
            raise UnauthorizedActionError(action, "Post")
        return post

    async def create_post(self, user_id: UUID, data: PostCreate) -> Post:
        post = Post(user_id=user_id, **data.model_dump())
        self._session.add(post)
        await self._session.commit()
        logger.info(f"Created post {post.id} for user {user_id}")
        return post

    async def list_user_posts(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[Post], int]:
        query = select(Post).where(Post.user_id == user_id).order_by(Post.created_at.desc(), Post.id)
        paginator = Paginator(page=page, limit=limit)
        return await paginator.paginate(self._session, query)

    async def update_post(self, post_id: UUID, user_id: UUID, data: PostUpdate) -> Post:
        post = await self._get_owned_post(post_id, user_id, "update")

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(post, key, value)

        await self._session.commit()
        return post

    async def delete_post(self, post_id: UUID, user_id: UUID) -> None:
        """Delete a post; comments, likes and post activities go with it at the database level."""
        await self._get_owned_post(post_id, user_id, "delete")
        await self._session.execute(delete(Post).where(Post.id == post_id))
        await self._session.commit()
        logger.info(f"Deleted post {post_id}")

    async def update_posts_with_learning_plan_progress(self, user_id: UUID, percentage: int) -> int:
        """
        Stamp ``percentage`` on every post of ``user_id``.

        Returns
        -------
        int
            Number of posts updated, 0 when the user has none
        """
        posts = (await self._session.scalars(select(Post).where(Post.user_id == user_id))).all()
        for post in posts:
            post.learning_plan_progress = percentage
        await self._session.flush()

        if posts:
            logger.info(f"Updated learning progress to {percentage}% on {len(posts)} posts of user {user_id}")
        return len(posts)

    # Likes

    async def like_post(self, post_id: UUID, user_id: UUID) -> None:
        """Like a post. Liking twice is a no-op."""
        post = await self.get_post(post_id)

        existing = await self._session.scalar(select(Like).where(Like.post_id == post_id, Like.user_id == user_id))
        if existing is not None:
            return

        self._session.add(Like(post_id=post_id, user_id=user_id))
        await self._session.flush()
        await ActivityService(self._session).record_post_like(user_id, post_id)
        await NotificationService(self._session).notify_post_like(post, user_id)
        await self._session.commit()

    async def unlike_post(self, post_id: UUID, user_id: UUID) -> None:
        await self.get_post(post_id)
        await self._session.execute(delete(Like).where(Like.post_id == post_id, Like.user_id == user_id))
        await self._session.commit()

    # Comments

    async def add_comment(self, post_id: UUID, user_id: UUID, data: CommentCreate) -> Comment:
        post = await self.get_post(post_id)

        comment = Comment(post_id=post_id, user_id=user_id, content=data.content)
        self._session.add(comment)
        await self._session.flush()
        await ActivityService(self._session).record_post_comment(user_id, post_id, comment.id)
        await NotificationService(self._session).notify_post_comment(post, comment)
        await self._session.commit()
        return comment

    async def list_comments(self, post_id: UUID) -> list[Comment]:
        await self.get_post(post_id)
        result = await self._session.execute(
            select(Comment).where(Comment.post_id == post_id).order_by(Comment.created_at, Comment.id)
        )
        return list(result.scalars().all())

    # Responses

    async def build_responses(self, posts: list[Post], current_user_id: UUID) -> list[PostResponse]:
        """Attach author summaries, like/comment counts and the caller's like flag."""
        if not posts:
            return []

        post_ids = [post.id for post in posts]
        likes = dict(
            (
                await self._session.execute(
                    select(Like.post_id, func.count()).where(Like.post_id.in_(post_ids)).group_by(Like.post_id)
                )
            ).all()
        )
        comments = dict(
            (
                await self._session.execute(
                    select(Comment.post_id, func.count())
                    .where(Comment.post_id.in_(post_ids))
                    .group_by(Comment.post_id)
                )
            ).all()
        )
        liked = set(
            (
                await self._session.scalars(
                    select(Like.post_id).where(Like.post_id.in_(post_ids), Like.user_id == current_user_id)
                )
            ).all()
        )
        authors = await UserService(self._session).get_summaries({post.user_id for post in posts})

        return [
            PostResponse(
                id=post.id,
                title=post.title,
                content=post.content,
                post_type=post.post_type,
                author=authors[post.user_id],
                media_urls=post.media_urls or [],
                learning_plan_id=post.learning_plan_id,
                learning_plan_progress=post.learning_plan_progress,
                likes_count=likes.get(post.id, 0),
                comments_count=comments.get(post.id, 0),
                is_liked_by_current_user=post.id in liked,
                created_at=post.created_at,
                updated_at=post.updated_at,
            )
            for post in posts
        ]
