"""Pydantic v2 schemas for user notifications."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID | None = None
    kind: str
    title: str
    message: str
    data: dict | None = None
    read: bool
    read_at: datetime | None = None
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    """Paginated notifications plus the caller's unread count."""

    items: list[NotificationResponse]
    total: int
    unread: int
