"""Notification request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from bpm.db.enums import NotificationPriority, NotificationType


class NotificationRead(BaseModel):
    """Notification shape stored, returned by the API, and pushed in real time."""
    id: UUID
    user_id: UUID
    type: str
    title: str
    message: str
    read: bool
    priority: str
    data: dict
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread_count: int
    total: int


class UnreadCountResponse(BaseModel):
    count: int


class NotificationCreate(BaseModel):
    """Ad-hoc notification sent by an admin."""
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.MEDIUM
    data: dict = Field(default_factory=dict)
