"""Schemas for /api/notifications."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from trabajatecnico.schemas.common import CamelModel, Pagination


class NotificationItem(CamelModel):
    id: int
    type: str
    title: str
    message: str
    related_id: Optional[int] = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: List[NotificationItem]
    pagination: Pagination


class UnreadCountResponse(CamelModel):
    unread_count: int = Field(ge=0)
