from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from learnlink.auth import CurrentAuth
from learnlink.database.pagination import Paginator
from learnlink.dependencies import LimitParam, PageParam
from learnlink.middleware.security import notifications_rate_limit
from learnlink.notifications.schemas import MarkAllReadResponse, NotificationListResponse, NotificationResponse
from learnlink.notifications.service import NotificationService


router = APIRouter(
    prefix="/api/v1/notifications",
    tags=["notifications"],
    dependencies=[Depends(notifications_rate_limit)],
)


@router.get("")
async def list_notifications(
    auth: CurrentAuth,
    unread_only: Annotated[bool, Query(description="Only notifications not read yet")] = False,
    page: PageParam = 1,
    limit: LimitParam = 10,
) -> NotificationListResponse:
    """Get the current user's notifications, newest first."""
    service = NotificationService(auth.session)
    notifications, total = await service.list_notifications(
        auth.user_id, unread_only=unread_only, page=page, limit=limit
    )

    paginator = Paginator(page=page, limit=limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(notification) for notification in notifications],
        total=total,
        unread=await service.count_unread(auth.user_id),
        page=paginator.page,
        pages=(total + paginator.limit - 1) // paginator.limit,
    )


@router.put("/read-all")
async def mark_all_notifications_read(auth: CurrentAuth) -> MarkAllReadResponse:
    updated = await NotificationService(auth.session).mark_all_as_read(auth.user_id)
    return MarkAllReadResponse(updated=updated)


@router.put("/{notification_id}/read", responses={404: {"description": "Notification not found"}})
async def mark_notification_read(notification_id: UUID, auth: CurrentAuth) -> NotificationResponse:
    """Mark one of the current user's notifications read."""
    notification = await NotificationService(auth.session).mark_as_read(notification_id, auth.user_id)
    return NotificationResponse.model_validate(notification)
