"""
Notification inbox routes
"""
from fastapi import APIRouter, Depends, Query

from freight_auction.core.dependencies import get_current_user_id, get_dispatcher
from freight_auction.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from freight_auction.services import NotificationDispatcher

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    notifications = dispatcher.list_notifications(user_id, unread_only=unread_only, limit=limit, offset=offset)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=len(notifications),
    )


# Declared before "/{notification_id}/read" so "read-all" is not taken as an id
@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return MarkAllReadResponse(updated=dispatcher.mark_all_read(user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return NotificationResponse.model_validate(dispatcher.mark_read(notification_id, user_id))
