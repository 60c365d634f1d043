"""
AssignmentService -- puts documents on staff members' to-do lists.

An assignment is a ``not_started`` SubmissionProgress row.  Rows are created
with INSERT ... ON CONFLICT DO NOTHING on UNIQUE(document_id, user_id), so
assigning is idempotent and two concurrent calls for the same pair produce
exactly one row.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock
from staff_portal.domain.dtos import AssignmentOutcome, DocumentInfo, SubmissionRecord
from staff_portal.domain.submission import DocumentKind, SubmissionStatus
from staff_portal.exceptions import NotFoundError
from staff_portal.logging_config import get_logger
from staff_portal.models.document import Document, SubmissionProgress
from staff_portal.services import notification_service as templates
from staff_portal.services.base import BaseService
from staff_portal.services.notification_service import NotificationSink, NotificationType
from staff_portal.services.revalidation import Revalidator, ViewPath
from staff_portal.services.storage_gateway import StorageGateway
from staff_portal.services.user_directory import UserDirectory

logger = get_logger("services.assignment")


class AssignmentService(BaseService):
    """Assignment manager for onboarding and other assignable documents."""

    def __init__(
        self,
        session: Session,
        notifications: NotificationSink,
        revalidator: Revalidator,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._gateway = StorageGateway(session)
        self._directory = UserDirectory(self._gateway)
        self._notifications = notifications
        self._revalidator = revalidator

    def assign_to_user(self, document_id: UUID, user_id: UUID) -> AssignmentOutcome:
        """Assign one document to one user.  An existing assignment is not an error."""
        self._require_document(document_id)
        self._directory.require(user_id)

        inserted = self._insert_assignment(document_id, user_id)
        if inserted:
            self._notify_assigned([user_id], document_id)
            self._revalidate()
        else:
            logger.info(
                "document_already_assigned",
                extra={"document_id": str(document_id), "user_id": str(user_id)},
            )
        return AssignmentOutcome(
            document_id=document_id, user_id=user_id, already_assigned=not inserted,
        )

    def assign_to_all_active_staff(self, document_id: UUID) -> int:
        """
        Assign a document to every active non-admin user who lacks it.

        Returns:
            Number of newly assigned users; 0 when everyone already has it.
        """
        self._require_document(document_id)
        assigned = {
            row.user_id
            for row in self._gateway.find(SubmissionProgress, {"document_id": document_id})
        }
        candidates = [uid for uid in self._directory.active_staff_ids() if uid not in assigned]
        if not candidates:
            logger.info(
                "bulk_assignment_noop", extra={"document_id": str(document_id)},
            )
            return 0

        newly_assigned = [
            uid for uid in candidates if self._insert_assignment(document_id, uid)
        ]
        logger.info(
            "bulk_assignment_completed",
            extra={
                "document_id": str(document_id),
                "assigned_count": len(newly_assigned),
            },
        )
        if newly_assigned:
            self._notify_assigned(newly_assigned, document_id)
            self._revalidate()
        return len(newly_assigned)

    def assign_all_onboarding_documents(self, user_id: UUID) -> int:
        """Assign every onboarding document to ``user_id``; returns the number added."""
        self._directory.require(user_id)
        documents = self._gateway.find(
            Document, {"kind": DocumentKind.ONBOARDING.value}, order_by=["order_index"],
        )
        added = 0
        for document in documents:
            if self._insert_assignment(document.id, user_id):
                added += 1
                self._notify_assigned([user_id], document.id)
        if added:
            self._revalidate()
        return added

    def list_assignments(self, document_id: UUID) -> list[SubmissionRecord]:
        rows = self._gateway.find(
            SubmissionProgress, {"document_id": document_id}, order_by=["created_at"],
        )
        return [row.to_dto() for row in rows]

    def list_assigned_documents(self, user_id: UUID) -> list[DocumentInfo]:
        rows = self._gateway.find(SubmissionProgress, {"user_id": user_id})
        documents = sorted(
            (row.document for row in rows),
            key=lambda doc: (doc.order_index, doc.title),
        )
        return [doc.to_dto() for doc in documents]

    def _insert_assignment(self, document_id: UUID, user_id: UUID) -> bool:
        inserted = self._gateway.insert_ignore(
            SubmissionProgress,
            [{
                "id": uuid4(),
                "document_id": document_id,
                "user_id": user_id,
                "status": SubmissionStatus.NOT_STARTED.value,
                "created_at": self._clock.now(),
            }],
            conflict_columns=("document_id", "user_id"),
        )
        if inserted:
            logger.info(
                "document_assigned",
                extra={"document_id": str(document_id), "user_id": str(user_id)},
            )
        return inserted == 1

    def _require_document(self, document_id: UUID) -> Document:
        document = self._gateway.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document", str(document_id))
        return document

    def _notify_assigned(self, user_ids: list[UUID], document_id: UUID) -> None:
        title, message = templates.document_assigned()
        self.best_effort(
            "notify_assignees",
            lambda: self._notifications.notify_many(
                user_ids, title, message, NotificationType.DOCUMENT_ASSIGNMENT,
                "document", document_id,
            ),
        )

    def _revalidate(self) -> None:
        self.best_effort(
            "revalidate",
            lambda: self._revalidator.revalidate(
                ViewPath.ADMIN_DOCUMENTS, ViewPath.STAFF_ONBOARDING,
            ),
        )
