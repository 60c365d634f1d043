"""
ReviewService -- admin decisions on submitted onboarding documents.

Responsibility:
    Approves or rejects a submission, then notifies the submitter and
    appends an audit entry.  Also serves the review queue.

Architecture position:
    Kernel > Services.  Delegates the status transition to
    SubmissionService.apply_review so the lifecycle table has one owner.

Invariants enforced:
    - Only a caller holding ``review_submissions`` may review.
    - Rejection requires non-blank comments; nothing is written otherwise.
    - The submitter notification and the audit entry are independent best
      effort side effects: each runs in its own savepoint and a failure in
      one never undoes the review.

Failure modes:
    - ForbiddenError: reviewer lacks the capability.
    - ValidationError, NotFoundError, AlreadyApprovedError,
      InvalidStateError: propagated from the transition.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock
from staff_portal.domain.dtos import SubmissionDetail, SubmissionRecord
from staff_portal.domain.identity import Capability, CapabilityPolicy, CurrentUser
from staff_portal.domain.submission import SubmissionStatus
from staff_portal.exceptions import NotFoundError
from staff_portal.logging_config import get_logger
from staff_portal.models.audit_log import AuditAction
from staff_portal.models.document import Document, SubmissionProgress
from staff_portal.services import notification_service as templates
from staff_portal.services.auditor_service import AuditRecorder
from staff_portal.services.base import BaseService
from staff_portal.services.notification_service import NotificationSink, NotificationType
from staff_portal.services.revalidation import Revalidator, ViewPath
from staff_portal.services.storage_gateway import StorageGateway
from staff_portal.services.submission_service import SubmissionService
from staff_portal.services.user_directory import UserDirectory

logger = get_logger("services.review")


class ReviewService(BaseService):
    """Review coordinator for onboarding submissions."""

    def __init__(
        self,
        session: Session,
        submissions: SubmissionService,
        notifications: NotificationSink,
        auditor: AuditRecorder,
        revalidator: Revalidator,
        policy: CapabilityPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._gateway = StorageGateway(session)
        self._directory = UserDirectory(self._gateway)
        self._submissions = submissions
        self._notifications = notifications
        self._auditor = auditor
        self._revalidator = revalidator
        self._policy = policy or CapabilityPolicy()

    def review(
        self,
        reviewer: CurrentUser,
        submission_id: UUID,
        approved: bool,
        admin_comments: str | None = None,
    ) -> SubmissionRecord:
        self._policy.require(reviewer, Capability.REVIEW_SUBMISSIONS)

        record = self._submissions.apply_review(
            submission_id, approved, reviewer.id, admin_comments,
        )
        document = self._gateway.get(Document, record.document_id)
        document_title = document.title if document is not None else None

        self.best_effort(
            "notify_submitter",
            lambda: self._notify_submitter(record, approved, document_title),
        )
        self.best_effort(
            "record_review_audit",
            lambda: self._auditor.record(
                reviewer.id,
                AuditAction.APPROVE_DOCUMENT if approved else AuditAction.REJECT_DOCUMENT,
                "document",
                record.id,
                {
                    "outcome": "approved" if approved else "rejected",
                    "admin_comments": record.admin_comments,
                    "document_title": document_title,
                },
            ),
        )
        self.best_effort(
            "revalidate",
            lambda: self._revalidator.revalidate(
                ViewPath.ADMIN_SUBMISSIONS, ViewPath.STAFF_ONBOARDING,
            ),
        )

        logger.info(
            "review_completed",
            extra={
                "submission_id": str(submission_id),
                "outcome": record.status.value,
            },
        )
        return record

    def list_pending(self) -> list[SubmissionRecord]:
        """Submissions awaiting review, oldest first."""
        rows = self._gateway.find(
            SubmissionProgress,
            {"status": SubmissionStatus.SUBMITTED.value},
            order_by=["completed_at", "created_at"],
        )
        return [row.to_dto() for row in rows]

    def get_submission(self, submission_id: UUID) -> SubmissionDetail:
        row = self._gateway.get(SubmissionProgress, submission_id)
        if row is None:
            raise NotFoundError("Submission", str(submission_id))
        return SubmissionDetail(
            submission=row.to_dto(),
            document=row.document.to_dto(),
            submitter=self._directory.get(row.user_id),
        )

    def _notify_submitter(
        self,
        record: SubmissionRecord,
        approved: bool,
        document_title: str | None,
    ) -> None:
        title, message = templates.document_reviewed(
            approved, document_title, record.admin_comments,
        )
        self._notifications.notify(
            record.user_id,
            title,
            message,
            NotificationType.DOCUMENT_APPROVAL,
            "document",
            record.id,
        )
