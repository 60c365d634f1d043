"""
Module: staff_portal.models.notification
Responsibility: Notification outbox rows.

The kernel only inserts here; delivery, read/unread handling and cleanup
belong to the notification collaborator.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from staff_portal.db.base import Base, UUIDString
from staff_portal.domain.dtos import NotificationInfo


class Notification(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    related_resource_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_resource_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Notification {self.type} to={self.user_id}>"

    def to_dto(self) -> NotificationInfo:
        return NotificationInfo(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            message=self.message,
            type=self.type,
            related_resource_type=self.related_resource_type,
            related_resource_id=self.related_resource_id,
            is_read=self.is_read,
            created_at=self.created_at,
        )
