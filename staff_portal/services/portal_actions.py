"""
PortalActions -- the boundary between the web layer and the kernel.

Responsibility:
    One method per user-facing action.  Each method:
      1. Resolves the caller through the IdentityProvider.
      2. Checks the action's capability once, through CapabilityPolicy.
      3. Runs the kernel service inside ``LogContext.bind(...)``.
      4. Commits on success, rolls back on failure.
      5. Returns an ``ActionResult``; kernel errors never cross this line.

Architecture position:
    Kernel > Services (outermost).  The only service that commits.

Failure modes:
    - StaffPortalError subclasses: rolled back, logged at WARNING and
      mapped to a failed ActionResult.
    - Any other exception: rolled back, logged at ERROR with the traceback,
      and re-raised.  These are programming errors, not outcomes.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Callable, Mapping, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock, SystemClock
from staff_portal.domain.form_data import DEFAULT_ORIGINAL_FILENAME
from staff_portal.domain.identity import (
    Capability,
    CapabilityPolicy,
    CurrentUser,
    IdentityProvider,
)
from staff_portal.domain.results import ActionResult
from staff_portal.domain.submission import DocumentKind, HRRecordType, SubmissionStatus
from staff_portal.domain.training import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_WATCH_THRESHOLD,
    AssignmentType,
)
from staff_portal.exceptions import StaffPortalError, ValidationError
from staff_portal.logging_config import LogContext, get_logger
from staff_portal.selectors.onboarding_selector import OnboardingSelector
from staff_portal.selectors.submission_selector import SubmissionSelector
from staff_portal.selectors.training_selector import TrainingSelector
from staff_portal.services.assignment_service import AssignmentService
from staff_portal.services.auditor_service import AuditorService, AuditRecorder
from staff_portal.services.document_service import DocumentService
from staff_portal.services.hr_service import HRRecordService
from staff_portal.services.notification_service import NotificationSink, OutboxNotificationSink
from staff_portal.services.revalidation import RecordingRevalidator, Revalidator
from staff_portal.services.review_service import ReviewService
from staff_portal.services.storage_gateway import StorageGateway
from staff_portal.services.submission_service import SubmissionService
from staff_portal.services.training_service import TrainingService

logger = get_logger("services.portal_actions")

T = TypeVar("T")


class PortalActions:
    """
    Facade over the kernel services for one request.

    Contract:
        Construct one instance per request with that request's session and
        identity provider.  Collaborators default to the outbox sink, the
        database audit recorder and a recording revalidator.
    """

    def __init__(
        self,
        session: Session,
        identity: IdentityProvider,
        policy: CapabilityPolicy | None = None,
        clock: Clock | None = None,
        notifications: NotificationSink | None = None,
        auditor: AuditRecorder | None = None,
        revalidator: Revalidator | None = None,
        watch_threshold: float = DEFAULT_WATCH_THRESHOLD,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        default_filename: str = DEFAULT_ORIGINAL_FILENAME,
        auto_commit: bool = True,
    ) -> None:
        self._session = session
        self._identity = identity
        self._policy = policy or CapabilityPolicy()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        gateway = StorageGateway(session)
        self.notifications = notifications or OutboxNotificationSink(gateway, self._clock)
        self.auditor = auditor or AuditorService(gateway, self._clock)
        self.revalidator = revalidator or RecordingRevalidator()

        self.submissions = SubmissionService(
            session, self.notifications, self.revalidator, self._clock,
            default_filename=default_filename,
        )
        self.reviews = ReviewService(
            session, self.submissions, self.notifications, self.auditor,
            self.revalidator, self._policy, self._clock,
        )
        self.hr_records = HRRecordService(
            session, self.notifications, self.revalidator, self._clock,
        )
        self.training = TrainingService(
            session, self.notifications, self.revalidator, self.auditor, self._clock,
            watch_threshold=watch_threshold,
            debounce_seconds=debounce_seconds,
        )
        self.assignments = AssignmentService(
            session, self.notifications, self.revalidator, self._clock,
        )
        self.documents = DocumentService(
            session, self.auditor, self.revalidator, self._clock,
        )

    # ------------------------------------------------------------------
    # Staff: onboarding documents
    # ------------------------------------------------------------------

    def save_draft(self, document_id: UUID, payload: Mapping[str, Any] | None) -> ActionResult:
        return self._run(
            "save_draft",
            Capability.COMPLETE_DOCUMENTS,
            lambda user: self.submissions.save_draft(document_id, user.id, payload),
            "Draft saved",
            document_id=document_id,
        )

    def submit_document(
        self,
        document_id: UUID,
        uploaded_file_ref: str,
        notes: str | None = None,
        original_filename: str | None = None,
    ) -> ActionResult:
        return self._run(
            "submit_document",
            Capability.COMPLETE_DOCUMENTS,
            lambda user: self.submissions.submit(
                document_id, user.id, uploaded_file_ref, notes, original_filename,
            ),
            "Document submitted for review",
            document_id=document_id,
        )

    def submit_form(
        self,
        document_id: UUID,
        form_values: Mapping[str, Any],
        signature_ref: str | None = None,
    ) -> ActionResult:
        return self._run(
            "submit_form",
            Capability.COMPLETE_DOCUMENTS,
            lambda user: self.submissions.submit_form(
                document_id, user.id, form_values, signature_ref,
            ),
            "Form submitted for review",
            document_id=document_id,
        )

    def acknowledge_document(
        self,
        document_id: UUID,
        signature_ref: str | None = None,
        form_values: Mapping[str, Any] | None = None,
    ) -> ActionResult:
        return self._run(
            "acknowledge_document",
            Capability.COMPLETE_DOCUMENTS,
            lambda user: self.submissions.acknowledge_document(
                document_id, user.id, signature_ref, form_values,
            ),
            "Document acknowledged",
            document_id=document_id,
        )

    def my_onboarding(self) -> ActionResult:
        def _read(user: CurrentUser) -> dict[str, Any]:
            selector = OnboardingSelector(self._session)
            return {
                "documents": selector.documents_with_status(user.id),
                "progress": selector.progress(user.id),
            }

        return self._run("my_onboarding", Capability.COMPLETE_DOCUMENTS, _read, "OK")

    # ------------------------------------------------------------------
    # Staff: HR records
    # ------------------------------------------------------------------

    def acknowledge_hr_record(
        self,
        record_id: UUID,
        uploaded_file_ref: str | None,
        signature_ref: str | None,
        notes: str | None = None,
    ) -> ActionResult:
        return self._run(
            "acknowledge_hr_record",
            Capability.ACKNOWLEDGE_HR_RECORDS,
            lambda user: self.hr_records.acknowledge(
                record_id, user.id, uploaded_file_ref, signature_ref, notes,
            ),
            "HR record acknowledged",
        )

    def my_hr_records(self) -> ActionResult:
        return self._run(
            "my_hr_records",
            Capability.ACKNOWLEDGE_HR_RECORDS,
            lambda user: self.hr_records.list_for_staff(user.id),
            "OK",
        )

    # ------------------------------------------------------------------
    # Staff: training
    # ------------------------------------------------------------------

    def start_training(self, module_id: UUID) -> ActionResult:
        return self._run(
            "start_training",
            Capability.TAKE_TRAINING,
            lambda user: self.training.start(user.id, module_id),
            "Training started",
        )

    def record_video_progress(
        self,
        module_id: UUID,
        current_time_seconds: float,
        duration_seconds: float,
    ) -> ActionResult:
        return self._run(
            "record_video_progress",
            Capability.TAKE_TRAINING,
            lambda user: self.training.record_video_progress(
                user.id, module_id, current_time_seconds, duration_seconds,
            ),
            "Progress recorded",
        )

    def complete_training(
        self,
        module_id: UUID,
        score: int | None = None,
        video_completed: bool = False,
        certificate_ref: str | None = None,
    ) -> ActionResult:
        return self._run(
            "complete_training",
            Capability.TAKE_TRAINING,
            lambda user: self.training.complete(
                user.id, module_id, score, video_completed, certificate_ref,
            ),
            "Training completed",
        )

    def my_training(self) -> ActionResult:
        return self._run(
            "my_training",
            Capability.TAKE_TRAINING,
            lambda user: TrainingSelector(self._session).progress_for_user(user.id),
            "OK",
        )

    # ------------------------------------------------------------------
    # Admin: review
    # ------------------------------------------------------------------

    def review_submission(
        self,
        submission_id: UUID,
        approved: bool,
        admin_comments: str | None = None,
    ) -> ActionResult:
        return self._run(
            "review_submission",
            Capability.REVIEW_SUBMISSIONS,
            lambda user: self.reviews.review(user, submission_id, approved, admin_comments),
            "Document approved" if approved else "Document rejected",
            submission_id=submission_id,
        )

    def list_pending_submissions(self) -> ActionResult:
        return self._run(
            "list_pending_submissions",
            Capability.REVIEW_SUBMISSIONS,
            lambda user: self.reviews.list_pending(),
            "OK",
        )

    def get_submission(self, submission_id: UUID) -> ActionResult:
        return self._run(
            "get_submission",
            Capability.REVIEW_SUBMISSIONS,
            lambda user: self.reviews.get_submission(submission_id),
            "OK",
            submission_id=submission_id,
        )

    def submission_feed(
        self,
        status: SubmissionStatus | str | None = None,
        limit: int | None = None,
    ) -> ActionResult:
        def _feed(user: CurrentUser):
            wanted = None
            if status is not None:
                try:
                    wanted = SubmissionStatus(status)
                except ValueError:
                    raise ValidationError("status", f"Unknown status '{status}'") from None
            return SubmissionSelector(self._session).merged_feed(wanted, limit)

        return self._run(
            "submission_feed",
            Capability.REVIEW_SUBMISSIONS,
            _feed,
            "OK",
        )

    # ------------------------------------------------------------------
    # Admin: documents and assignment
    # ------------------------------------------------------------------

    def create_document(
        self,
        kind: DocumentKind | str,
        title: str,
        description: str,
        content: str | None = None,
        file_ref: str | None = None,
        is_required: bool = False,
        requires_signature: bool = False,
        metadata: Mapping[str, Any] | None = None,
    ) -> ActionResult:
        return self._run(
            "create_document",
            Capability.MANAGE_DOCUMENTS,
            lambda user: self.documents.create(
                user.id, kind, title, description, content, file_ref,
                is_required, requires_signature, metadata,
            ),
            "Document created",
        )

    def update_document(self, document_id: UUID, **changes: Any) -> ActionResult:
        return self._run(
            "update_document",
            Capability.MANAGE_DOCUMENTS,
            lambda user: self.documents.update(user.id, document_id, **changes),
            "Document updated",
            document_id=document_id,
        )

    def update_document_metadata(
        self,
        document_id: UUID,
        metadata: Mapping[str, Any],
    ) -> ActionResult:
        return self._run(
            "update_document_metadata",
            Capability.MANAGE_DOCUMENTS,
            lambda user: self.documents.update_metadata(user.id, document_id, metadata),
            "Document updated",
            document_id=document_id,
        )

    def delete_document(self, document_id: UUID) -> ActionResult:
        return self._run(
            "delete_document",
            Capability.MANAGE_DOCUMENTS,
            lambda user: self.documents.delete(user.id, document_id),
            "Document deleted",
            document_id=document_id,
        )

    def list_documents(self, kind: DocumentKind | str | None = None) -> ActionResult:
        return self._run(
            "list_documents",
            Capability.MANAGE_DOCUMENTS,
            lambda user: self.documents.list_documents(kind),
            "OK",
        )

    def assign_document(self, document_id: UUID, user_id: UUID) -> ActionResult:
        def _assign(user: CurrentUser):
            return self.assignments.assign_to_user(document_id, user_id)

        result = self._run(
            "assign_document",
            Capability.ASSIGN_DOCUMENTS,
            _assign,
            "Document assigned",
            document_id=document_id,
        )
        if result.is_success and result.data.already_assigned:
            return ActionResult.ok("Document already assigned to this user", result.data)
        return result

    def assign_document_to_all_staff(self, document_id: UUID) -> ActionResult:
        result = self._run(
            "assign_document_to_all_staff",
            Capability.ASSIGN_DOCUMENTS,
            lambda user: self.assignments.assign_to_all_active_staff(document_id),
            "Document assigned",
            document_id=document_id,
        )
        if result.is_success:
            return ActionResult.ok(f"Assigned to {result.data} staff member(s)", result.data)
        return result

    def assign_onboarding_documents(self, user_id: UUID) -> ActionResult:
        return self._run(
            "assign_onboarding_documents",
            Capability.ASSIGN_DOCUMENTS,
            lambda user: self.assignments.assign_all_onboarding_documents(user_id),
            "Onboarding documents assigned",
        )

    def list_assignments(self, document_id: UUID) -> ActionResult:
        return self._run(
            "list_assignments",
            Capability.ASSIGN_DOCUMENTS,
            lambda user: self.assignments.list_assignments(document_id),
            "OK",
            document_id=document_id,
        )

    # ------------------------------------------------------------------
    # Admin: HR records
    # ------------------------------------------------------------------

    def create_hr_record(
        self,
        staff_id: UUID,
        hr_subtype: HRRecordType | str,
        title: str | None = None,
        description: str | None = None,
        content: str | None = None,
        file_ref: str | None = None,
    ) -> ActionResult:
        return self._run(
            "create_hr_record",
            Capability.MANAGE_HR_RECORDS,
            lambda user: self.hr_records.create_record(
                staff_id, hr_subtype, title, description, content, file_ref, user.id,
            ),
            "HR record created",
        )

    def list_hr_records(self) -> ActionResult:
        return self._run(
            "list_hr_records",
            Capability.MANAGE_HR_RECORDS,
            lambda user: self.hr_records.list_all(),
            "OK",
        )

    # ------------------------------------------------------------------
    # Admin: training
    # ------------------------------------------------------------------

    def create_training_module(self, title: str, **fields: Any) -> ActionResult:
        return self._run(
            "create_training_module",
            Capability.MANAGE_TRAINING,
            lambda user: self.training.create_module(title, created_by=user.id, **fields),
            "Training module created",
        )

    def update_training_module(self, module_id: UUID, **changes: Any) -> ActionResult:
        return self._run(
            "update_training_module",
            Capability.MANAGE_TRAINING,
            lambda user: self.training.update_module(module_id, **changes),
            "Training module updated",
        )

    def delete_training_module(self, module_id: UUID) -> ActionResult:
        return self._run(
            "delete_training_module",
            Capability.MANAGE_TRAINING,
            lambda user: self.training.delete_module(module_id),
            "Training module deleted",
        )

    def assign_training(
        self,
        module_id: UUID,
        assignment_type: AssignmentType | str,
        user_ids: list[UUID] | None = None,
        department: str | None = None,
        deadline: datetime | None = None,
        is_mandatory: bool = False,
        notes: str | None = None,
    ) -> ActionResult:
        result = self._run(
            "assign_training",
            Capability.MANAGE_TRAINING,
            lambda user: self.training.assign(
                module_id, assignment_type, user_ids, department, deadline,
                is_mandatory, notes, assigned_by=user.id,
            ),
            "Training assigned",
        )
        if result.is_success:
            return ActionResult.ok(f"Training assigned to {result.data} user(s)", result.data)
        return result

    def remove_training_assignment(self, assignment_id: UUID) -> ActionResult:
        return self._run(
            "remove_training_assignment",
            Capability.MANAGE_TRAINING,
            lambda user: self.training.remove_assignment(assignment_id),
            "Assignment removed",
        )

    def expire_overdue_training(self, as_of: datetime | None = None) -> ActionResult:
        return self._run(
            "expire_overdue_training",
            Capability.MANAGE_TRAINING,
            lambda user: self.training.expire_overdue(as_of),
            "Expired training updated",
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def training_analytics(self) -> ActionResult:
        return self._run(
            "training_analytics",
            Capability.VIEW_REPORTS,
            lambda user: TrainingSelector(self._session).analytics(),
            "OK",
        )

    def recent_audit_entries(self, limit: int = 100) -> ActionResult:
        return self._run(
            "recent_audit_entries",
            Capability.VIEW_REPORTS,
            lambda user: self.auditor.recent(limit),
            "OK",
        )

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _run(
        self,
        action: str,
        capability: Capability,
        operation: Callable[[CurrentUser], T],
        success_message: str,
        document_id: UUID | None = None,
        submission_id: UUID | None = None,
    ) -> ActionResult:
        user = self._identity.current_user()
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(user.id) if user is not None else None,
            action=action,
            document_id=str(document_id) if document_id is not None else None,
            submission_id=str(submission_id) if submission_id is not None else None,
        ):
            logger.debug("portal_action_started")
            t0 = time.monotonic()
            try:
                caller = self._policy.require(user, capability)
                data = operation(caller)
                if self._auto_commit:
                    self._session.commit()
            except StaffPortalError as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "portal_action_rejected",
                    extra={
                        "error_code": exc.code,
                        "reason": str(exc),
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                return ActionResult.from_error(exc)
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "portal_action_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            logger.info(
                "portal_action_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )
            return ActionResult.ok(success_message, data)
