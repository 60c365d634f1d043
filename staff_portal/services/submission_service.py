"""
SubmissionService -- the onboarding document submission state machine.

Responsibility:
    Drives a (document, staff member) progress row through
    SUBMISSION_LIFECYCLE: draft autosave, submission of a completed upload
    or filled form, self-acknowledgment of read-and-sign documents, and the
    approve/reject transition the ReviewService requests.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - One row per (document, user): every staff write goes through a single
      INSERT ... ON CONFLICT (document_id, user_id) DO UPDATE statement whose
      WHERE clause admits only the lifecycle's source states for the action.
      A rejected WHERE leaves the row untouched and is reported as
      AlreadyApprovedError / InvalidStateError.
    - ``approved`` is terminal.
    - Review is a compare-and-set on ``status = 'submitted'``.
    - Notifications and revalidation are best effort and never undo the
      transition.

Failure modes:
    - NotFoundError: document or submission does not exist.
    - ValidationError: missing upload reference, signature or rejection
      comments.
    - AlreadyApprovedError: staff write against an approved row.
    - InvalidStateError: draft save over a submitted row; review of a row
      that is not awaiting review.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock
from staff_portal.domain.dtos import SubmissionRecord
from staff_portal.domain.form_data import (
    DEFAULT_ORIGINAL_FILENAME,
    OnboardingFormData,
    legacy_from_values,
)
from staff_portal.domain.submission import (
    SUBMISSION_LIFECYCLE,
    DocumentKind,
    SubmissionAction,
    SubmissionStatus,
)
from staff_portal.exceptions import (
    AlreadyApprovedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from staff_portal.logging_config import get_logger
from staff_portal.models.document import Document, SubmissionProgress
from staff_portal.services import notification_service as templates
from staff_portal.services.base import BaseService
from staff_portal.services.notification_service import NotificationSink, NotificationType
from staff_portal.services.revalidation import Revalidator, ViewPath
from staff_portal.services.storage_gateway import StorageGateway
from staff_portal.services.user_directory import UserDirectory

logger = get_logger("services.submission")

_PAIR = ("document_id", "user_id")


class SubmissionService(BaseService):
    """Staff-side transitions of the document submission lifecycle."""

    lifecycle = SUBMISSION_LIFECYCLE

    def __init__(
        self,
        session: Session,
        notifications: NotificationSink,
        revalidator: Revalidator,
        clock: Clock | None = None,
        default_filename: str = DEFAULT_ORIGINAL_FILENAME,
    ) -> None:
        super().__init__(session, clock)
        self._gateway = StorageGateway(session)
        self._directory = UserDirectory(self._gateway)
        self._notifications = notifications
        self._revalidator = revalidator
        self._default_filename = default_filename

    # ------------------------------------------------------------------
    # Staff transitions
    # ------------------------------------------------------------------

    def save_draft(
        self,
        document_id: UUID,
        user_id: UUID,
        payload: Mapping[str, Any] | None,
    ) -> SubmissionRecord:
        """Silent autosave.  Allowed from not_started, draft and rejected."""
        self._load_document(document_id)
        now = self._clock.now()

        record = self._transition(
            SubmissionAction.SAVE_DRAFT,
            document_id,
            user_id,
            {
                "form_data": legacy_from_values(payload).to_json(),
                "last_saved_at": now,
            },
        )

        logger.info(
            "draft_saved",
            extra={"document_id": str(document_id), "user_id": str(user_id)},
        )
        self._revalidate(ViewPath.STAFF_ONBOARDING)
        return record

    def submit(
        self,
        document_id: UUID,
        user_id: UUID,
        uploaded_file_ref: str,
        notes: str | None = None,
        original_filename: str | None = None,
    ) -> SubmissionRecord:
        """Submit a completed upload for review."""
        if not uploaded_file_ref or not uploaded_file_ref.strip():
            raise ValidationError(
                "uploaded_file_ref", "Please upload the completed document",
            )
        document = self._load_document(document_id)
        now = self._clock.now()

        form_data = OnboardingFormData(
            uploaded_file_ref=uploaded_file_ref,
            uploaded_at=now,
            original_filename=original_filename or self._default_filename,
        )
        record = self._transition(
            SubmissionAction.SUBMIT,
            document_id,
            user_id,
            {
                "form_data": form_data.to_json(),
                "notes": notes,
                "completed_at": now,
                "last_saved_at": now,
            },
        )

        logger.info(
            "document_submitted",
            extra={
                "document_id": str(document_id),
                "user_id": str(user_id),
                "submission_id": str(record.id),
            },
        )
        self._notify_admins_of_submission(document, user_id)
        self._revalidate(ViewPath.STAFF_ONBOARDING, ViewPath.ADMIN_SUBMISSIONS)
        return record

    def submit_form(
        self,
        document_id: UUID,
        user_id: UUID,
        form_values: Mapping[str, Any],
        signature_ref: str | None = None,
    ) -> SubmissionRecord:
        """Submit a filled-in form (legacy flow) for review."""
        document = self._load_document(document_id)
        if document.requires_signature and not signature_ref:
            raise ValidationError("signature_ref", "This document requires a signature")
        now = self._clock.now()

        record = self._transition(
            SubmissionAction.SUBMIT,
            document_id,
            user_id,
            {
                "form_data": legacy_from_values(form_values).to_json(),
                "signature_ref": signature_ref,
                "completed_at": now,
                "last_saved_at": now,
            },
        )

        logger.info(
            "form_submitted",
            extra={"document_id": str(document_id), "submission_id": str(record.id)},
        )
        self._notify_admins_of_submission(document, user_id)
        self._revalidate(ViewPath.STAFF_ONBOARDING, ViewPath.ADMIN_SUBMISSIONS)
        return record

    def acknowledge_document(
        self,
        document_id: UUID,
        user_id: UUID,
        signature_ref: str | None = None,
        form_values: Mapping[str, Any] | None = None,
    ) -> SubmissionRecord:
        """Read-and-sign acknowledgment; recorded as approved, no review step."""
        document = self._load_document(document_id)
        if document.requires_signature and not signature_ref:
            raise ValidationError("signature_ref", "This document requires a signature")
        now = self._clock.now()

        record = self._transition(
            SubmissionAction.ACKNOWLEDGE,
            document_id,
            user_id,
            {
                "form_data": legacy_from_values(form_values).to_json() if form_values else None,
                "signature_ref": signature_ref,
                "completed_at": now,
                "last_saved_at": now,
            },
        )

        logger.info(
            "document_acknowledged",
            extra={"document_id": str(document_id), "user_id": str(user_id)},
        )
        self.refresh_onboarding_completion(user_id)
        self._revalidate(ViewPath.STAFF_ONBOARDING, ViewPath.STAFF_DASHBOARD)
        return record

    # ------------------------------------------------------------------
    # Review transition (driven by ReviewService)
    # ------------------------------------------------------------------

    def apply_review(
        self,
        submission_id: UUID,
        approved: bool,
        reviewer_id: UUID,
        admin_comments: str | None,
    ) -> SubmissionRecord:
        """Move a submitted row to approved or rejected."""
        comments = (admin_comments or "").strip()
        if not approved and not comments:
            raise ValidationError(
                "admin_comments",
                "Admin comments are required when rejecting a submission",
            )

        row = self._gateway.get(SubmissionProgress, submission_id)
        if row is None:
            raise NotFoundError("Submission", str(submission_id))

        action = SubmissionAction.APPROVE if approved else SubmissionAction.REJECT
        current = SubmissionStatus(row.status)
        if not self.lifecycle.can(current, action.value):
            self._raise_blocked(row.id, current, action)
        target = self.lifecycle.fire(current, action.value)

        changed = self._gateway.update_where(
            SubmissionProgress,
            {"id": submission_id, "status": current.value},
            {
                "status": target.value,
                "reviewed_by": reviewer_id,
                "reviewed_at": self._clock.now(),
                "admin_comments": comments or None,
            },
        )
        row = self._gateway.reload(SubmissionProgress, {"id": submission_id})
        if changed == 0:
            # Another reviewer got there first.
            self._raise_blocked(row.id, SubmissionStatus(row.status), action)

        logger.info(
            "submission_reviewed",
            extra={
                "submission_id": str(submission_id),
                "reviewer_id": str(reviewer_id),
                "from_status": current.value,
                "new_status": target.value,
            },
        )
        if target == SubmissionStatus.APPROVED:
            self.refresh_onboarding_completion(row.user_id)
        return row.to_dto()

    # ------------------------------------------------------------------
    # Queries used by the facade and other services
    # ------------------------------------------------------------------

    def get_progress(self, document_id: UUID, user_id: UUID) -> SubmissionRecord | None:
        row = self._gateway.find_one(
            SubmissionProgress, {"document_id": document_id, "user_id": user_id},
        )
        return row.to_dto() if row is not None else None

    def get_submission(self, submission_id: UUID) -> SubmissionRecord:
        row = self._gateway.get(SubmissionProgress, submission_id)
        if row is None:
            raise NotFoundError("Submission", str(submission_id))
        return row.to_dto()

    def refresh_onboarding_completion(self, user_id: UUID) -> bool:
        """
        Recompute the user's onboarding_completed flag.

        True once every required onboarding document is approved.  With no
        required onboarding documents the flag is left as it is.
        """
        required = self._gateway.find(
            Document,
            {"kind": DocumentKind.ONBOARDING.value, "is_required": True},
        )
        if not required:
            user = self._directory.get(user_id)
            return bool(user and user.onboarding_completed)

        approved_ids = {
            row.document_id
            for row in self._gateway.find(
                SubmissionProgress,
                {
                    "user_id": user_id,
                    "status": SubmissionStatus.APPROVED.value,
                    "document_id": [doc.id for doc in required],
                },
            )
        }
        completed = all(doc.id in approved_ids for doc in required)
        self._directory.set_onboarding_completed(user_id, completed)
        return completed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_document(self, document_id: UUID) -> Document:
        document = self._gateway.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document", str(document_id))
        return document

    def _transition(
        self,
        action: SubmissionAction,
        document_id: UUID,
        user_id: UUID,
        fields: Mapping[str, Any],
    ) -> SubmissionRecord:
        """Atomic upsert admitting only the lifecycle's source states for ``action``."""
        sources = self.lifecycle.sources_for(action.value)
        target = self.lifecycle.fire(self.lifecycle.initial_state, action.value)
        now = self._clock.now()

        values = {
            "id": uuid4(),
            "document_id": document_id,
            "user_id": user_id,
            "status": target.value,
            "created_at": now,
            **fields,
        }
        written = self._gateway.upsert(
            SubmissionProgress,
            values,
            conflict_columns=_PAIR,
            update_columns=["status", *fields.keys()],
            only_if={"status": sorted(s.value for s in sources)},
        )
        row = self._gateway.reload(
            SubmissionProgress, {"document_id": document_id, "user_id": user_id},
        )
        if written == 0:
            self._raise_blocked(row.id, SubmissionStatus(row.status), action)
        return row.to_dto()

    def _raise_blocked(
        self,
        submission_id: UUID,
        status: SubmissionStatus,
        action: SubmissionAction,
    ) -> None:
        logger.warning(
            "submission_transition_blocked",
            extra={
                "submission_id": str(submission_id),
                "status": status.value,
                "requested_action": action.value,
            },
        )
        if self.lifecycle.is_terminal(status):
            raise AlreadyApprovedError(str(submission_id))
        if status == SubmissionStatus.SUBMITTED and action in (
            SubmissionAction.SAVE_DRAFT,
            SubmissionAction.ACKNOWLEDGE,
        ):
            raise InvalidStateError(
                str(submission_id), status.value, "cannot modify a submitted document",
            )
        if action in (SubmissionAction.APPROVE, SubmissionAction.REJECT):
            raise InvalidStateError(
                str(submission_id),
                status.value,
                f"Only submitted documents can be reviewed (status is '{status.value}')",
            )
        raise InvalidStateError(str(submission_id), status.value)

    def _notify_admins_of_submission(self, document: Document, user_id: UUID) -> None:
        title, message = templates.document_submitted(
            self._directory.display_name(user_id), document.title,
        )
        document_id = document.id

        def _send() -> int:
            return self._notifications.notify_many(
                self._directory.active_admin_ids(),
                title,
                message,
                NotificationType.DOCUMENT_SUBMISSION,
                "document",
                document_id,
            )

        self.best_effort("notify_admins_of_submission", _send)

    def _revalidate(self, *paths: str) -> None:
        self.best_effort("revalidate", lambda: self._revalidator.revalidate(*paths))
