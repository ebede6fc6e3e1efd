"""Plan view assembly: the plan tree merged with one viewer's overlay."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.learning_plans.schemas import LearningPlanResponse, ResourceResponse, TopicResponse
from learnlink.learning_plans.structure import PlanStructure
from learnlink.progress.overlay import ProgressOverlay, find_overlay
from learnlink.users.schemas import UserSummary
from learnlink.users.service import UserService


def assemble_plan_view(
    structure: PlanStructure,
    creator: UserSummary,
    overlay: ProgressOverlay | None = None,
) -> LearningPlanResponse:
    """
    Build the response for a plan.

    Topics come out in ``order_index`` order. With an overlay, topic status and
    date, resource completion and the plan percentage are the viewer's; a
    topic or resource the overlay does not track keeps the creator's value.
    """
    plan = structure.plan
    topics = []

    for topic in structure.topics:
        status = topic.completion_status
        completion_date = topic.completion_date
        topic_row = overlay.topics.get(topic.id) if overlay else None
        if topic_row is not None:
            status = topic_row.status
            completion_date = topic_row.completion_date

        resources = []
        for resource in structure.resources_for(topic.id):
            is_completed = resource.is_completed
            resource_row = overlay.resources.get(resource.id) if overlay else None
            if resource_row is not None:
                is_completed = resource_row.is_completed
            resources.append(
                ResourceResponse(
                    id=resource.id,
                    title=resource.title,
                    description=resource.description,
                    url=resource.url,
                    type=resource.type,
                    is_completed=is_completed,
                )
            )

        topics.append(
            TopicResponse(
                id=topic.id,
                title=topic.title,
                description=topic.description,
                order_index=topic.order_index,
                completion_status=status,
                start_date=topic.start_date,
                completion_date=completion_date,
                resources=resources,
            )
        )

    return LearningPlanResponse(
        id=plan.id,
        title=plan.title,
        description=plan.description,
        creator=creator,
        category=plan.category,
        topics=topics,
        estimated_days=plan.estimated_days,
        completion_percentage=(
            overlay.progress.completion_percentage if overlay else plan.completion_percentage
        ),
        is_public=plan.is_public,
        start_date=plan.start_date,
        target_completion_date=plan.target_completion_date,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


async def build_plan_view(
    session: AsyncSession,
    structure: PlanStructure,
    viewer_id: UUID,
) -> LearningPlanResponse:
    """Load the viewer's overlay and the creator summary, then assemble."""
    overlay = await find_overlay(session, structure.plan.id, viewer_id)
    creators = await UserService(session).get_summaries({structure.plan.user_id})
    return assemble_plan_view(structure, creators[structure.plan.user_id], overlay)
