"""Notification routes: the current user's inbox."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.api.deps import get_current_active_user, get_db
from photobooking.models.user import User
from photobooking.schemas.auth import MessageResponse
from photobooking.schemas.notification import NotificationListResponse, NotificationResponse
from photobooking.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationListResponse:
    """Unexpired notifications, newest first."""
    items, total, unread = await notification_service.list_notifications(
        db, current_user.id, unread_only=unread_only, skip=skip, limit=limit
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread=unread,
    )


@router.patch("/read-all", response_model=MessageResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    updated = await notification_service.mark_all_read(db, current_user.id)
    return MessageResponse(message=f"{updated} notification(s) marked as read")


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationResponse:
    notification = await notification_service.mark_read(db, current_user.id, notification_id)
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    await notification_service.delete_notification(db, current_user.id, notification_id)
    return MessageResponse(message="Notification deleted")
