"""
TrabajaTecnico Backend — Notification Route Handlers
=====================================================

What:  The signed-in user's notification inbox.
How:   Every query is scoped to the caller; another user's notification
       id answers 404.
"""

import logging

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser, get_current_user
from trabajatecnico.database import get_db_session
from trabajatecnico.schemas.common import ErrorResponse, MessageResponse
from trabajatecnico.schemas.notification import NotificationListResponse, UnreadCountResponse
from trabajatecnico.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

_NOT_FOUND = {404: {"description": "Notification not found", "model": ErrorResponse}}


@router.get("", response_model=NotificationListResponse, summary="List my notifications")
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    return await notification_service.list_for_user(
        db, user.user_id, page=page, limit=limit, unread_only=unread_only
    )


@router.get("/unread/count", response_model=UnreadCountResponse, summary="Unread count")
async def unread_count(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    count = await notification_service.unread_count(db, user.user_id)
    return UnreadCountResponse(unread_count=count)


@router.put("/read-all", response_model=MessageResponse, summary="Mark all as read")
async def mark_all_read(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    updated = await notification_service.mark_all_read(db, user.user_id)
    logger.info("User %d marked %d notifications as read", user.user_id, updated)
    return MessageResponse(message="All notifications marked as read")


@router.put(
    "/{notification_id}/read",
    response_model=MessageResponse,
    responses=_NOT_FOUND,
    summary="Mark one notification as read",
)
async def mark_read(
    notification_id: int = Path(gt=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.mark_read(db, user.user_id, notification_id)
    return MessageResponse(message="Notification marked as read")


# Declared before DELETE /{notification_id} so "read" is not parsed as an id
@router.delete("/read", response_model=MessageResponse, summary="Delete read notifications")
async def delete_read(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    deleted = await notification_service.delete_read(db, user.user_id)
    return MessageResponse(message=f"{deleted} read notifications deleted")


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses=_NOT_FOUND,
    summary="Delete one notification",
)
async def delete_notification(
    notification_id: int = Path(gt=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete(db, user.user_id, notification_id)
    return MessageResponse(message="Notification deleted")
