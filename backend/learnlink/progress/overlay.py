"""Loading a viewer's progress overlay for one plan."""

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.learning_plans.models import CompletionStatus
from learnlink.progress.models import ResourceProgress, TopicProgress, UserProgress


@dataclass
class ProgressOverlay:
    """A UserProgress row with its topic and resource rows keyed by plan ids."""

    progress: UserProgress
    topics: dict[UUID, TopicProgress] = field(default_factory=dict)
    resources: dict[UUID, ResourceProgress] = field(default_factory=dict)

    def topic_statuses(self) -> dict[UUID, CompletionStatus]:
        return {topic_id: row.status for topic_id, row in self.topics.items()}

    def completed_resource_ids(self) -> set[UUID]:
        return {resource_id for resource_id, row in self.resources.items() if row.is_completed}


async def find_user_progress(session: AsyncSession, plan_id: UUID, user_id: UUID) -> UserProgress | None:
    result = await session.execute(
        select(UserProgress).where(
            UserProgress.learning_plan_id == plan_id,
            UserProgress.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def load_overlay(session: AsyncSession, progress: UserProgress) -> ProgressOverlay:
    topic_rows = await session.scalars(select(TopicProgress).where(TopicProgress.user_progress_id == progress.id))
    resource_rows = await session.scalars(
        select(ResourceProgress).where(ResourceProgress.user_progress_id == progress.id)
    )
    return ProgressOverlay(
        progress=progress,
        topics={row.topic_id: row for row in topic_rows},
        resources={row.resource_id: row for row in resource_rows},
    )


async def find_overlay(session: AsyncSession, plan_id: UUID, user_id: UUID) -> ProgressOverlay | None:
    """The viewer's overlay, or None if they never recorded progress on the plan."""
    progress = await find_user_progress(session, plan_id, user_id)
    if progress is None:
        return None
    return await load_overlay(session, progress)
