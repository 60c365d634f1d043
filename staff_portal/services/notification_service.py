"""
Notification sink -- insert-only outbox.

Responsibility:
    Durably records "tell user X about Y".  Delivery (toast, e-mail, push)
    is a separate collaborator that reads the outbox.

Also holds the message templates used by the workflows, so wording lives
in one place.
"""

from __future__ import annotations

from typing import Iterable, Protocol
from uuid import UUID

from staff_portal.domain.clock import Clock, SystemClock
from staff_portal.domain.dtos import NotificationInfo
from staff_portal.logging_config import get_logger
from staff_portal.models.notification import Notification
from staff_portal.services.storage_gateway import StorageGateway

logger = get_logger("services.notification")


class NotificationType:
    DOCUMENT_ASSIGNMENT = "document_assignment"
    DOCUMENT_SUBMISSION = "document_submission"
    DOCUMENT_APPROVAL = "document_approval"
    HR_RECORD = "hr_record"
    HR_ACKNOWLEDGMENT = "hr_acknowledgment"
    TRAINING_ASSIGNMENT = "training_assignment"


class NotificationSink(Protocol):
    def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: str,
        related_resource_type: str | None = None,
        related_resource_id: UUID | None = None,
    ) -> None: ...

    def notify_many(
        self,
        user_ids: Iterable[UUID],
        title: str,
        message: str,
        type: str,
        related_resource_type: str | None = None,
        related_resource_id: UUID | None = None,
    ) -> int: ...


class OutboxNotificationSink:
    """Writes notifications as rows in the ``notifications`` table."""

    def __init__(self, gateway: StorageGateway, clock: Clock | None = None):
        self._gateway = gateway
        self._clock = clock or SystemClock()

    def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: str,
        related_resource_type: str | None = None,
        related_resource_id: UUID | None = None,
    ) -> None:
        self._gateway.insert(
            Notification,
            {
                "user_id": user_id,
                "title": title,
                "message": message,
                "type": type,
                "related_resource_type": related_resource_type,
                "related_resource_id": related_resource_id,
                "is_read": False,
                "created_at": self._clock.now(),
            },
        )
        logger.info(
            "notification_enqueued",
            extra={"recipient_id": str(user_id), "notification_type": type},
        )

    def notify_many(
        self,
        user_ids: Iterable[UUID],
        title: str,
        message: str,
        type: str,
        related_resource_type: str | None = None,
        related_resource_id: UUID | None = None,
    ) -> int:
        sent = 0
        for user_id in user_ids:
            self.notify(
                user_id, title, message, type,
                related_resource_type, related_resource_id,
            )
            sent += 1
        return sent

    def inbox(self, user_id: UUID, limit: int = 50) -> list[NotificationInfo]:
        rows = self._gateway.find(
            Notification, {"user_id": user_id}, order_by=["-created_at"], limit=limit,
        )
        return [row.to_dto() for row in rows]


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

STAFF_FALLBACK_NAME = "A staff member"
NO_COMMENTS_PLACEHOLDER = "No comments provided."


def document_assigned() -> tuple[str, str]:
    return (
        "New Document Assigned",
        "A new document has been assigned to you for review.",
    )


def document_submitted(staff_name: str | None, document_title: str | None) -> tuple[str, str]:
    return (
        "New Document Submission",
        f'{staff_name or STAFF_FALLBACK_NAME} has submitted '
        f'"{document_title or "a document"}" for review.',
    )


def document_reviewed(
    approved: bool,
    document_title: str | None,
    admin_comments: str | None,
) -> tuple[str, str]:
    title = document_title or "Unknown"
    if approved:
        return ("Document Approved", f'Your document "{title}" has been approved.')
    comments = (admin_comments or "").strip() or NO_COMMENTS_PLACEHOLDER
    return (
        "Document Rejected",
        f'Your document "{title}" was rejected. Admin comments: {comments}',
    )


def hr_record_added(label: str) -> tuple[str, str]:
    return ("New HR Record Added", f"A new {label} has been added to your records.")


def hr_record_acknowledged(staff_name: str | None, record_type_display: str) -> tuple[str, str]:
    return (
        "HR Record Acknowledged",
        f"{staff_name or STAFF_FALLBACK_NAME} has acknowledged and submitted "
        f"their {record_type_display}.",
    )


def training_assigned(module_title: str) -> tuple[str, str]:
    return (
        "New Training Assigned",
        f'You have been assigned the training module "{module_title}".',
    )
