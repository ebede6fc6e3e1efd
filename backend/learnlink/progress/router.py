"""Per-user progress endpoints on learning plans."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from learnlink.auth import CurrentAuth
from learnlink.learning_plans.models import CompletionStatus
from learnlink.learning_plans.schemas import LearningPlanResponse
from learnlink.middleware.security import progress_route_limit
from learnlink.progress.schemas import ProgressResponse
from learnlink.progress.service import UserProgressService


router = APIRouter(
    prefix="/api/v1/learning-plans",
    tags=["progress"],
    dependencies=[Depends(progress_route_limit)],
)


@router.patch("/{plan_id}/topics/{topic_id}/user-progress")
async def update_topic_progress(
    plan_id: UUID,
    topic_id: UUID,
    status: Annotated[CompletionStatus, Query(description="New topic status")],
    auth: CurrentAuth,
) -> LearningPlanResponse:
    """Set the current user's status for a topic and return the plan as they see it."""
    service = UserProgressService(auth.session)
    return await service.set_topic_status(plan_id, topic_id, status, auth.user_id)


@router.patch("/{plan_id}/topics/{topic_id}/resources/{resource_id}/user-progress")
async def update_resource_progress(
    plan_id: UUID,
    topic_id: UUID,
    resource_id: UUID,
    is_completed: Annotated[bool, Query(description="Whether the resource is done")],
    auth: CurrentAuth,
) -> LearningPlanResponse:
    """Mark a resource done or not done for the current user."""
    service = UserProgressService(auth.session)
    return await service.set_resource_status(plan_id, topic_id, resource_id, is_completed, auth.user_id)


@router.get("/{plan_id}/user-progress")
async def get_user_progress(plan_id: UUID, auth: CurrentAuth) -> ProgressResponse:
    """The current user's progress on a plan. Reading never creates a progress record."""
    service = UserProgressService(auth.session)
    return await service.get_progress(plan_id, auth.user_id)
