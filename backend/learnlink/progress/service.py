"""Per-user progress on learning plans.

Every mutation runs in the request's transaction: validate, fetch or create
the overlay, update it, recalculate, flush, run the side effects (post
propagation and activity records) each in its own savepoint, then commit once.
A failing side effect is logged and rolled back on its own; the progress
change is kept.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.activities.service import ActivityService
from learnlink.learning_plans.models import CompletionStatus, Resource, Topic
from learnlink.learning_plans.schemas import LearningPlanResponse
from learnlink.learning_plans.structure import (
    PlanStructure,
    get_resource_in_topic,
    get_topic_in_plan,
    load_plan_structure,
)
from learnlink.learning_plans.view import assemble_plan_view
from learnlink.posts.service import PostService
from learnlink.progress.calculator import calculate_overlay_completion, derive_topic_status
from learnlink.progress.models import ResourceProgress, TopicProgress, UserProgress
from learnlink.progress.overlay import ProgressOverlay, find_user_progress, load_overlay
from learnlink.progress.schemas import ProgressResponse, ResourceProgressResponse, TopicProgressResponse
from learnlink.users.service import UserService


logger = logging.getLogger(__name__)


class UserProgressService:
    """Service for a viewer's progress overlay on learning plans."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._posts = PostService(session)
        self._activities = ActivityService(session)

    # Overlay lifecycle

    async def get_or_create_progress(self, plan_id: UUID, user_id: UUID) -> ProgressOverlay:
        """
        Return the user's overlay for a plan, creating it on first use.

        Raises
        ------
        ResourceNotFoundError
            If the plan does not exist
        """
        structure = await load_plan_structure(self._session, plan_id)
        return await self._get_or_create_overlay(structure, user_id)

    async def _get_or_create_overlay(self, structure: PlanStructure, user_id: UUID) -> ProgressOverlay:
        progress = await find_user_progress(self._session, structure.plan.id, user_id)
        if progress is None:
            progress = await self._create_progress(structure.plan.id, user_id)

        return await self._seed_overlay(progress, structure)

    async def _create_progress(self, plan_id: UUID, user_id: UUID) -> UserProgress:
        """Insert the overlay row, falling back to the row a concurrent request just created."""
        try:
            async with self._session.begin_nested():
                progress = UserProgress(user_id=user_id, learning_plan_id=plan_id, completion_percentage=0)
                self._session.add(progress)
                await self._session.flush()
        except IntegrityError:
            logger.info(f"Progress for user {user_id} on plan {plan_id} was created concurrently, re-fetching")
            existing = await find_user_progress(self._session, plan_id, user_id)
            if existing is None:
                raise
            return existing

        logger.info(f"Created progress overlay {progress.id} for user {user_id} on plan {plan_id}")
        return progress

    async def _seed_overlay(self, progress: UserProgress, structure: PlanStructure) -> ProgressOverlay:
        """Load the overlay and add rows for topics and resources it does not track yet.

        A concurrent request may seed the same rows first; the overlay is then
        reloaded and topped up once more.
        """
        overlay = await load_overlay(self._session, progress)
        try:
            async with self._session.begin_nested():
                await self._add_missing_rows(overlay, structure)
        except IntegrityError:
            logger.info(f"Progress rows on overlay {progress.id} were seeded concurrently, reloading")
            await self._session.refresh(progress)
            overlay = await load_overlay(self._session, progress)
            await self._add_missing_rows(overlay, structure)
        return overlay

    async def _add_missing_rows(self, overlay: ProgressOverlay, structure: PlanStructure) -> None:
        """Seed default rows for topics and resources the overlay does not track yet."""
        added = 0
        for topic in structure.topics:
            if topic.id not in overlay.topics:
                row = TopicProgress(
                    user_progress_id=overlay.progress.id,
                    topic_id=topic.id,
                    status=CompletionStatus.NOT_STARTED,
                    completion_date=None,
                )
                self._session.add(row)
                overlay.topics[topic.id] = row
                added += 1

        for resource in structure.all_resources():
            if resource.id not in overlay.resources:
                row = ResourceProgress(
                    user_progress_id=overlay.progress.id,
                    resource_id=resource.id,
                    is_completed=False,
                    completion_date=None,
                )
                self._session.add(row)
                overlay.resources[resource.id] = row
                added += 1

        if added:
            await self._session.flush()
            logger.debug(f"Seeded {added} progress rows on overlay {overlay.progress.id}")

    # Mutations

    async def set_topic_status(
        self,
        plan_id: UUID,
        topic_id: UUID,
        status: CompletionStatus,
        user_id: UUID,
    ) -> LearningPlanResponse:
        """
        Set the user's status for one topic.

        Raises
        ------
        ResourceNotFoundError
            If the plan or topic does not exist
        InvalidRelationshipError
            If the topic is not part of the plan
        """
        topic = await get_topic_in_plan(self._session, plan_id, topic_id)
        structure = await load_plan_structure(self._session, plan_id)
        overlay = await self._get_or_create_overlay(structure, user_id)

        overlay.topics[topic_id].set_status(status)
        percentage = self._recalculate(overlay, structure)
        await self._session.flush()
        logger.info(f"User {user_id} set topic {topic_id} to {status.value}, plan {plan_id} now at {percentage}%")

        completed_topic = topic if status == CompletionStatus.COMPLETED else None
        await self._propagate(user_id, structure, percentage, completed_topic=completed_topic)
        await self._session.commit()
        return await self._view(structure, overlay)

    async def set_resource_status(
        self,
        plan_id: UUID,
        topic_id: UUID,
        resource_id: UUID,
        is_completed: bool,
        user_id: UUID,
    ) -> LearningPlanResponse:
        """
        Mark one resource done or not done for the user.

        The topic's status is then derived from its resources: all done makes
        it COMPLETED, some done IN_PROGRESS, none NOT_STARTED. A topic that
        was already COMPLETED keeps its original completion date; the date is
        only stamped when the topic had none. Topics without resources are
        left as they are.

        Raises
        ------
        ResourceNotFoundError
            If the plan, topic or resource does not exist
        InvalidRelationshipError
            If the topic is not in the plan or the resource not in the topic
        """
        topic, resource = await get_resource_in_topic(self._session, plan_id, topic_id, resource_id)
        structure = await load_plan_structure(self._session, plan_id)
        overlay = await self._get_or_create_overlay(structure, user_id)

        overlay.resources[resource_id].set_completed(is_completed)
        self._recalculate(overlay, structure)

        topic_resources = structure.resources_for(topic_id)
        completed_ids = overlay.completed_resource_ids()
        derived = derive_topic_status(
            sum(1 for item in topic_resources if item.id in completed_ids),
            len(topic_resources),
        )
        if derived is not None:
            overlay.topics[topic_id].set_status(derived)

        percentage = self._recalculate(overlay, structure)
        await self._session.flush()
        logger.info(
            f"User {user_id} set resource {resource_id} completed={is_completed}, plan {plan_id} now at {percentage}%"
        )

        completed_resource = (topic, resource) if is_completed else None
        await self._propagate(user_id, structure, percentage, completed_resource=completed_resource)
        await self._session.commit()
        return await self._view(structure, overlay)

    # Reads

    async def get_progress(self, plan_id: UUID, user_id: UUID) -> ProgressResponse:
        """The user's progress on a plan; zeroed and unsaved if they have none."""
        progress = await find_user_progress(self._session, plan_id, user_id)
        if progress is None:
            structure = await load_plan_structure(self._session, plan_id)
            return ProgressResponse(
                user_id=user_id,
                learning_plan_id=plan_id,
                topics=[
                    TopicProgressResponse(topic_id=topic.id, status=CompletionStatus.NOT_STARTED)
                    for topic in structure.topics
                ],
                resources=[
                    ResourceProgressResponse(resource_id=resource.id, is_completed=False)
                    for resource in structure.all_resources()
                ],
            )

        overlay = await load_overlay(self._session, progress)
        return ProgressResponse(
            id=progress.id,
            user_id=progress.user_id,
            learning_plan_id=progress.learning_plan_id,
            completion_percentage=progress.completion_percentage,
            start_date=progress.start_date,
            last_updated=progress.last_updated,
            topics=[TopicProgressResponse.model_validate(row) for row in overlay.topics.values()],
            resources=[ResourceProgressResponse.model_validate(row) for row in overlay.resources.values()],
        )

    # Internals

    def _recalculate(self, overlay: ProgressOverlay, structure: PlanStructure) -> int:
        percentage = calculate_overlay_completion(
            structure.topics,
            structure.resources,
            overlay.topic_statuses(),
            overlay.completed_resource_ids(),
        )
        overlay.progress.completion_percentage = percentage
        overlay.progress.last_updated = datetime.now(UTC)
        return percentage

    async def _propagate(
        self,
        user_id: UUID,
        structure: PlanStructure,
        percentage: int,
        *,
        completed_topic: Topic | None = None,
        completed_resource: tuple[Topic, Resource] | None = None,
    ) -> None:
        """Side effects of a progress change."""
        plan = structure.plan

        async def update_posts() -> None:
            await self._posts.update_posts_with_learning_plan_progress(user_id, percentage)

        async def record_activities() -> None:
            await self._activities.record_learning_plan_progress(user_id, plan, percentage)
            if completed_topic is not None:
                await self._activities.record_topic_completion(user_id, plan, completed_topic)
            if completed_resource is not None:
                await self._activities.record_resource_completion(user_id, plan, *completed_resource)

        await self._run_isolated("update posts with learning progress", user_id, update_posts)
        await self._run_isolated("record learning activity", user_id, record_activities)

    async def _run_isolated(self, action: str, user_id: UUID, side_effect: Callable[[], Awaitable[None]]) -> None:
        try:
            async with self._session.begin_nested():
                await side_effect()
        except Exception:
            logger.exception(f"Failed to {action} for user {user_id}; progress change kept")

    async def _view(self, structure: PlanStructure, overlay: ProgressOverlay) -> LearningPlanResponse:
        creators = await UserService(self._session).get_summaries({structure.plan.user_id})
        return assemble_plan_view(structure, creators[structure.plan.user_id], overlay)
