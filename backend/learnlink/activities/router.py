from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from learnlink.activities.schemas import ActivityKind, ActivityListResponse, ActivityResponse
from learnlink.activities.service import ActivityService
from learnlink.auth import UserId
from learnlink.database.pagination import Paginator
from learnlink.database.session import DbSession
from learnlink.dependencies import LimitParam, PageParam


router = APIRouter(prefix="/api/v1/users", tags=["activities"])


@router.get("/{user_id}/activities")
async def list_user_activities(
    user_id: UUID,
    session: DbSession,
    _current_user: UserId,
    kind: Annotated[ActivityKind, Query(description="all, learning or social")] = ActivityKind.ALL,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> ActivityListResponse:
    """Get a user's activity timeline, newest first."""
    service = ActivityService(session)
    activities, total = await service.list_activities(user_id, kind=kind, page=page, limit=limit)

    paginator = Paginator(page=page, limit=limit)
    return ActivityListResponse(
        items=[ActivityResponse.model_validate(activity) for activity in activities],
        total=total,
        page=paginator.page,
        pages=(total + paginator.limit - 1) // paginator.limit,
    )
