from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from learnlink.auth import CurrentAuth
from learnlink.database.pagination import Paginator
from learnlink.dependencies import LimitParam, PageParam
from learnlink.learning_plans.models import CompletionStatus, LearningPlan
from learnlink.learning_plans.schemas import (
    LearningPlanCreate,
    LearningPlanListResponse,
    LearningPlanResponse,
    LearningPlanSummary,
    LearningPlanUpdate,
    ResourceCreate,
    ResourceUpdate,
    TopicCreate,
    TopicUpdate,
)
from learnlink.learning_plans.service import LearningPlanService
from learnlink.middleware.security import learning_plans_rate_limit


router = APIRouter(
    prefix="/api/v1/learning-plans",
    tags=["learning-plans"],
    dependencies=[Depends(learning_plans_rate_limit)],
)


def _page(plans: list[LearningPlan], total: int, page: int, limit: int) -> LearningPlanListResponse:
    paginator = Paginator(page=page, limit=limit)
    return LearningPlanListResponse(
        items=[LearningPlanSummary.model_validate(plan) for plan in plans],
        total=total,
        page=paginator.page,
        pages=(total + paginator.limit - 1) // paginator.limit,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_learning_plan(data: LearningPlanCreate, auth: CurrentAuth) -> LearningPlanResponse:
    """Create a learning plan, optionally with topics and their resources."""
    service = LearningPlanService(auth.session)
    return await service.create_learning_plan(auth.user_id, data)


# Fixed paths first so they are not captured by /{plan_id}


@router.get("/public", summary="List public learning plans by other users")
async def list_public_learning_plans(
    auth: CurrentAuth,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> LearningPlanListResponse:
    service = LearningPlanService(auth.session)
    plans, total = await service.get_public_learning_plans(auth.user_id, page=page, limit=limit)
    return _page(plans, total, page, limit)


@router.get("/search", summary="Search learning plans")
async def search_learning_plans(
    keyword: Annotated[str, Query(min_length=1, description="Matched against title and description")],
    auth: CurrentAuth,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> LearningPlanListResponse:
    """Search public plans and the caller's own plans."""
    service = LearningPlanService(auth.session)
    plans, total = await service.search_learning_plans(keyword, auth.user_id, page=page, limit=limit)
    return _page(plans, total, page, limit)


@router.get("/user/{user_id}", summary="List a user's learning plans")
async def list_user_learning_plans(
    user_id: UUID,
    auth: CurrentAuth,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> LearningPlanListResponse:
    """All plans when asking about yourself, public ones otherwise."""
    service = LearningPlanService(auth.session)
    plans, total = await service.get_user_learning_plans(user_id, auth.user_id, page=page, limit=limit)
    return _page(plans, total, page, limit)


@router.get(
    "/{plan_id}",
    responses={404: {"description": "Learning plan not found"}, 403: {"description": "Private learning plan"}},
)
async def get_learning_plan(plan_id: UUID, auth: CurrentAuth) -> LearningPlanResponse:
    """Get a learning plan merged with the caller's own progress."""
    service = LearningPlanService(auth.session)
    return await service.get_learning_plan(plan_id, auth.user_id)


@router.put("/{plan_id}")
async def update_learning_plan(plan_id: UUID, data: LearningPlanUpdate, auth: CurrentAuth) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.update_learning_plan(plan_id, auth.user_id, data)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_learning_plan(plan_id: UUID, auth: CurrentAuth) -> None:
    """Delete a learning plan with its topics, resources and everyone's progress on it."""
    service = LearningPlanService(auth.session)
    await service.delete_learning_plan(plan_id, auth.user_id)


# Topics


@router.post("/{plan_id}/topics", status_code=status.HTTP_201_CREATED)
async def add_topic(plan_id: UUID, data: TopicCreate, auth: CurrentAuth) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.add_topic(plan_id, auth.user_id, data)


@router.put("/{plan_id}/topics/{topic_id}")
async def update_topic(plan_id: UUID, topic_id: UUID, data: TopicUpdate, auth: CurrentAuth) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.update_topic(plan_id, topic_id, auth.user_id, data)


@router.delete("/{plan_id}/topics/{topic_id}")
async def delete_topic(plan_id: UUID, topic_id: UUID, auth: CurrentAuth) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.delete_topic(plan_id, topic_id, auth.user_id)


@router.patch("/{plan_id}/topics/{topic_id}/status")
async def update_topic_status(
    plan_id: UUID,
    topic_id: UUID,
    status: Annotated[CompletionStatus, Query()],
    auth: CurrentAuth,
) -> LearningPlanResponse:
    """Set the creator's own status on a topic."""
    service = LearningPlanService(auth.session)
    return await service.update_topic_status(plan_id, topic_id, status, auth.user_id)


# Resources


@router.post("/{plan_id}/topics/{topic_id}/resources", status_code=status.HTTP_201_CREATED)
async def add_resource(plan_id: UUID, topic_id: UUID, data: ResourceCreate, auth: CurrentAuth) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.add_resource(plan_id, topic_id, auth.user_id, data)


@router.put("/{plan_id}/topics/{topic_id}/resources/{resource_id}")
async def update_resource(
    plan_id: UUID,
    topic_id: UUID,
    resource_id: UUID,
    data: ResourceUpdate,
    auth: CurrentAuth,
) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.update_resource(plan_id, topic_id, resource_id, auth.user_id, data)


@router.delete("/{plan_id}/topics/{topic_id}/resources/{resource_id}")
async def delete_resource(plan_id: UUID, topic_id: UUID, resource_id: UUID, auth: CurrentAuth) -> LearningPlanResponse:
    service = LearningPlanService(auth.session)
    return await service.delete_resource(plan_id, topic_id, resource_id, auth.user_id)


@router.patch("/{plan_id}/topics/{topic_id}/resources/{resource_id}/status")
async def update_resource_status(
    plan_id: UUID,
    topic_id: UUID,
    resource_id: UUID,
    is_completed: Annotated[bool, Query()],
    auth: CurrentAuth,
) -> LearningPlanResponse:
    """Set the creator's own completion flag on a resource."""
    service = LearningPlanService(auth.session)
    return await service.update_resource_status(plan_id, topic_id, resource_id, is_completed, auth.user_id)
