"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bpm.db.base import Base
from bpm.db.enums import NotificationPriority, NotificationType
from bpm.db.types import JsonType, utcnow

if TYPE_CHECKING:
    from bpm.db.models import User


class Notification(Base):
    """
    In-app notification for one user.

    Only the read flag changes after creation.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_user_unread", "user_id", "read", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # info | success | warning | error
    type: Mapped[str] = mapped_column(
        String(20), default=NotificationType.INFO.value, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(10), default=NotificationPriority.MEDIUM.value, nullable=False
    )
    # Click-through payload (application id, status, amounts, ...)
    data: Mapped[dict] = mapped_column(JsonType, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    user: Mapped["User"] = relationship()
