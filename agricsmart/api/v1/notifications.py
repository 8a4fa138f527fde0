# ==============================================================================
# NOTIFICATION ENDPOINTS - In-App Notifications
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter, Query

from agricsmart.api.dependencies import CurrentUser, NotificationServiceDep
from agricsmart.core.constants import SuccessMessages
from agricsmart.schemas.base import APIResponse, MessageResponse
from agricsmart.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/notification", tags=["Notifications"])


@router.get(
    "",
    response_model=APIResponse[NotificationListResponse],
    summary="List notifications",
    description="Current user's notifications, newest first, with the unread count.",
)
async def list_notifications(
    user: CurrentUser,
    service: NotificationServiceDep,
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    unread_only: bool = Query(False),
) -> APIResponse[NotificationListResponse]:
    result = await service.get_notifications(user["id"], limit=limit, skip=skip, unread_only=unread_only)
    return APIResponse.ok(data=result)


@router.patch(
    "/read-all",
    response_model=APIResponse[MarkAllReadResponse],
    summary="Mark all as read",
)
async def mark_all_read(
    user: CurrentUser,
    service: NotificationServiceDep,
) -> APIResponse[MarkAllReadResponse]:
    updated = await service.mark_all_as_read(user["id"])
    return APIResponse.ok(data=MarkAllReadResponse(updated=updated))


@router.patch(
    "/{notification_id}/read",
    response_model=APIResponse[NotificationResponse],
    summary="Mark as read",
)
async def mark_read(
    notification_id: str,
    user: CurrentUser,
    service: NotificationServiceDep,
) -> APIResponse[NotificationResponse]:
    notification = await service.mark_as_read(notification_id, user["id"])
    return APIResponse.ok(data=notification)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: str,
    user: CurrentUser,
    service: NotificationServiceDep,
) -> MessageResponse:
    await service.delete_notification(notification_id, user["id"])
    return MessageResponse(message=SuccessMessages.DELETED)
