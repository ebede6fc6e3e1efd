import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.activities.models import (
    LEARNING_ACTIVITY_TYPES,
    SOCIAL_ACTIVITY_TYPES,
    ActivityType,
    UserActivity,
)
from learnlink.activities.schemas import ActivityKind
from learnlink.database.pagination import Paginator
from learnlink.learning_plans.models import LearningPlan, Resource, Topic


logger = logging.getLogger(__name__)


class ActivityService:
    """Records and lists user timeline entries.

    Recorders only add and flush; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _record(self, activity: UserActivity) -> UserActivity:
        self._session.add(activity)
        await self._session.flush()
        logger.info(f"Recorded {activity.type.value} activity for user {activity.user_id}")
        return activity

    async def record_learning_plan_progress(
        self,
        user_id: UUID,
        plan: LearningPlan,
        progress_percentage: int,
    ) -> UserActivity:
        return await self._record(
            UserActivity(
                user_id=user_id,
                type=ActivityType.LEARNING_PROGRESS,
                learning_plan_id=plan.id,
                learning_plan_title=plan.title,
                progress_percentage=progress_percentage,
            )
        )

    async def record_topic_completion(self, user_id: UUID, plan: LearningPlan, topic: Topic) -> UserActivity:
        return await self._record(
            UserActivity(
                user_id=user_id,
                type=ActivityType.TOPIC_COMPLETED,
                learning_plan_id=plan.id,
                learning_plan_title=plan.title,
                topic_id=topic.id,
                topic_title=topic.title,
            )
        )

    async def record_resource_completion(
        self,
        user_id: UUID,
        plan: LearningPlan,
        topic: Topic,
        resource: Resource,
    ) -> UserActivity:
        return await self._record(
            UserActivity(
                user_id=user_id,
                type=ActivityType.RESOURCE_COMPLETED,
                learning_plan_id=plan.id,
                learning_plan_title=plan.title,
                topic_id=topic.id,
                topic_title=topic.title,
                resource_id=resource.id,
                resource_title=resource.title,
            )
        )

    async def record_post_like(self, user_id: UUID, post_id: UUID) -> UserActivity:
        return await self._record(UserActivity(user_id=user_id, type=ActivityType.POST_LIKE, post_id=post_id))

    async def record_post_comment(self, user_id: UUID, post_id: UUID, comment_id: UUID) -> UserActivity:
        return await self._record(
            UserActivity(
                user_id=user_id,
                type=ActivityType.POST_COMMENT,
                post_id=post_id,
                comment_id=comment_id,
            )
        )

    async def list_activities(
        self,
        user_id: UUID,
        *,
        kind: ActivityKind = ActivityKind.ALL,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[UserActivity], int]:
        """A user's timeline, newest first."""
        query = select(UserActivity).where(UserActivity.user_id == user_id)

        if kind == ActivityKind.LEARNING:
            query = query.where(UserActivity.type.in_(LEARNING_ACTIVITY_TYPES))
        elif kind == ActivityKind.SOCIAL:
            query = query.where(UserActivity.type.in_(SOCIAL_ACTIVITY_TYPES))

        query = query.order_by(UserActivity.timestamp.desc(), UserActivity.id)

        paginator = Paginator(page=page, limit=limit)
        return await paginator.paginate(self._session, query)
