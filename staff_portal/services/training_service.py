"""
TrainingService -- training modules, assignments and per-user completion.

Responsibility:
    Module administration, assigning modules to users or departments, and
    the staff-side progress workflow: start, video progress samples,
    completion behind the video gate, and the expiry sweep.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - One progress row and one video watch row per (user, module); writes go
      through INSERT ... ON CONFLICT on those unique constraints.
    - Status changes follow TRAINING_LIFECYCLE.
    - A module with a video cannot be completed below the watch threshold
      unless the caller reports the video as completed.
    - Video samples are written at most once per debounce window per
      (user, module).
    - ``expires_at`` uses calendar month arithmetic.

Failure modes:
    - NotFoundError: unknown module or assignment.
    - ValidationError: bad score, blank title, empty assignee set.
    - VideoNotWatchedError: the video gate did not pass.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from staff_portal.db.types import as_utc
from staff_portal.domain.clock import Clock
from staff_portal.domain.dtos import (
    TrainingAssignmentInfo,
    TrainingModuleInfo,
    TrainingProgressInfo,
    VideoProgressInfo,
    VideoSampleOutcome,
)
from staff_portal.domain.training import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_WATCH_THRESHOLD,
    TRAINING_LIFECYCLE,
    AssignmentType,
    Difficulty,
    TrainingStatus,
    compute_expiry,
    passes_video_gate,
    should_persist_sample,
    watch_percentage,
)
from staff_portal.exceptions import NotFoundError, ValidationError, VideoNotWatchedError
from staff_portal.logging_config import get_logger
from staff_portal.models.audit_log import AuditAction
from staff_portal.models.training import (
    TrainingAssignment,
    TrainingModule,
    TrainingProgress,
    VideoWatchProgress,
)
from staff_portal.services import notification_service as templates
from staff_portal.services.auditor_service import AuditRecorder
from staff_portal.services.base import BaseService
from staff_portal.services.notification_service import NotificationSink, NotificationType
from staff_portal.services.revalidation import Revalidator, ViewPath
from staff_portal.services.storage_gateway import NOT_NULL, StorageGateway
from staff_portal.services.user_directory import UserDirectory

logger = get_logger("services.training")

_USER_MODULE = ("user_id", "module_id")

_EDITABLE_MODULE_FIELDS = frozenset({
    "title",
    "description",
    "content",
    "category",
    "difficulty",
    "is_mandatory",
    "duration_minutes",
    "expiry_months",
    "video_ref",
    "file_ref",
})


class TrainingService(BaseService):
    """Training administration and the training completion workflow."""

    lifecycle = TRAINING_LIFECYCLE

    def __init__(
        self,
        session: Session,
        notifications: NotificationSink,
        revalidator: Revalidator,
        auditor: AuditRecorder | None = None,
        clock: Clock | None = None,
        watch_threshold: float = DEFAULT_WATCH_THRESHOLD,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        super().__init__(session, clock)
        self._gateway = StorageGateway(session)
        self._directory = UserDirectory(self._gateway)
        self._notifications = notifications
        self._revalidator = revalidator
        self._auditor = auditor
        self._watch_threshold = watch_threshold
        self._debounce_seconds = debounce_seconds

    # ------------------------------------------------------------------
    # Module administration
    # ------------------------------------------------------------------

    def create_module(
        self,
        title: str,
        description: str | None = None,
        content: str | None = None,
        category: str | None = None,
        difficulty: Difficulty | str | None = None,
        is_mandatory: bool = False,
        duration_minutes: int | None = None,
        expiry_months: int | None = None,
        video_ref: str | None = None,
        file_ref: str | None = None,
        created_by: UUID | None = None,
    ) -> TrainingModuleInfo:
        values = self._validated_module_fields({
            "title": title,
            "description": description,
            "content": content,
            "category": category,
            "difficulty": difficulty,
            "is_mandatory": is_mandatory,
            "duration_minutes": duration_minutes,
            "expiry_months": expiry_months,
            "video_ref": video_ref,
            "file_ref": file_ref,
        })
        row = self._gateway.insert(
            TrainingModule,
            {**values, "created_by": created_by, "created_at": self._clock.now()},
        )
        logger.info(
            "training_module_created",
            extra={"module_id": str(row.id), "has_video": bool(row.video_ref)},
        )
        self._revalidate(ViewPath.ADMIN_TRAINING)
        return row.to_dto()

    def update_module(self, module_id: UUID, **changes: Any) -> TrainingModuleInfo:
        unknown = set(changes) - _EDITABLE_MODULE_FIELDS
        if unknown:
            raise ValidationError(
                sorted(unknown)[0], f"Field(s) not editable: {', '.join(sorted(unknown))}",
            )
        row = self._require_module(module_id)
        patch = self._validated_module_fields(changes)
        self._gateway.update(row, patch)
        logger.info(
            "training_module_updated",
            extra={"module_id": str(module_id), "fields": sorted(patch)},
        )
        self._revalidate(ViewPath.ADMIN_TRAINING, ViewPath.STAFF_TRAINING)
        return row.to_dto()

    def delete_module(self, module_id: UUID) -> None:
        """Delete a module; progress, assignments and video rows cascade."""
        row = self._require_module(module_id)
        for model in (VideoWatchProgress, TrainingProgress, TrainingAssignment):
            self._gateway.delete(model, {"module_id": module_id})
        self._gateway.delete_row(row)
        logger.info("training_module_deleted", extra={"module_id": str(module_id)})
        self._revalidate(ViewPath.ADMIN_TRAINING, ViewPath.STAFF_TRAINING)

    def get_module(self, module_id: UUID) -> TrainingModuleInfo:
        return self._require_module(module_id).to_dto()

    def list_modules(self) -> list[TrainingModuleInfo]:
        rows = self._gateway.find(TrainingModule, order_by=["title"])
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def assign(
        self,
        module_id: UUID,
        assignment_type: AssignmentType | str,
        user_ids: Iterable[UUID] | None = None,
        department: str | None = None,
        deadline: datetime | None = None,
        is_mandatory: bool = False,
        notes: str | None = None,
        assigned_by: UUID | None = None,
    ) -> int:
        """
        Assign a module to individual users or to a whole department.

        Re-assigning an existing (module, user) pair refreshes that
        assignment's details.  Returns the number of users assigned.
        """
        module = self._require_module(module_id)
        try:
            kind = AssignmentType(assignment_type)
        except ValueError:
            raise ValidationError(
                "assignment_type", f"Unknown assignment type '{assignment_type}'",
            ) from None

        if kind == AssignmentType.DEPARTMENT:
            if not department:
                raise ValidationError("department", "Please choose a department")
            targets = self._directory.active_ids_in_department(department)
        else:
            targets = list(dict.fromkeys(user_ids or ()))
        if not targets:
            raise ValidationError("user_ids", "No users to assign")

        now = self._clock.now()
        for user_id in targets:
            self._gateway.upsert(
                TrainingAssignment,
                {
                    "id": uuid4(),
                    "module_id": module_id,
                    "user_id": user_id,
                    "assignment_type": kind.value,
                    "department": department if kind == AssignmentType.DEPARTMENT else None,
                    "assigned_by": assigned_by,
                    "assigned_at": now,
                    "is_mandatory": is_mandatory,
                    "deadline": deadline,
                    "notes": notes,
                },
                conflict_columns=("module_id", "user_id"),
                update_columns=[
                    "assignment_type", "department", "assigned_by", "assigned_at",
                    "is_mandatory", "deadline", "notes",
                ],
            )

        logger.info(
            "training_assigned",
            extra={
                "module_id": str(module_id),
                "assignment_type": kind.value,
                "assigned_count": len(targets),
            },
        )

        title, message = templates.training_assigned(module.title)
        self.best_effort(
            "notify_training_assignees",
            lambda: self._notifications.notify_many(
                targets, title, message, NotificationType.TRAINING_ASSIGNMENT,
                "training_module", module_id,
            ),
        )
        if self._auditor is not None and assigned_by is not None:
            self.best_effort(
                "record_training_assignment_audit",
                lambda: self._auditor.record(
                    assigned_by,
                    AuditAction.ASSIGN_TRAINING,
                    "training_module",
                    module_id,
                    {
                        "assignment_type": kind.value,
                        "department": department,
                        "assigned_count": len(targets),
                    },
                ),
            )
        self._revalidate(ViewPath.ADMIN_TRAINING_ASSIGNMENTS, ViewPath.STAFF_TRAINING)
        return len(targets)

    def remove_assignment(self, assignment_id: UUID) -> None:
        row = self._gateway.get(TrainingAssignment, assignment_id)
        if row is None:
            raise NotFoundError("TrainingAssignment", str(assignment_id))
        self._gateway.delete_row(row)
        logger.info("training_assignment_removed", extra={"assignment_id": str(assignment_id)})
        self._revalidate(ViewPath.ADMIN_TRAINING_ASSIGNMENTS, ViewPath.STAFF_TRAINING)

    def list_assignments(self, module_id: UUID | None = None) -> list[TrainingAssignmentInfo]:
        filters = {"module_id": module_id} if module_id is not None else None
        rows = self._gateway.find(TrainingAssignment, filters, order_by=["-assigned_at"])
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Staff progress
    # ------------------------------------------------------------------

    def start(self, user_id: UUID, module_id: UUID) -> TrainingProgressInfo:
        """Mark the module in progress.  Starting a completed module changes nothing."""
        self._require_module(module_id)
        now = self._clock.now()
        sources = self.lifecycle.sources_for("start")

        written = self._gateway.upsert(
            TrainingProgress,
            {
                "id": uuid4(),
                "user_id": user_id,
                "module_id": module_id,
                "status": TrainingStatus.IN_PROGRESS.value,
                "started_at": now,
            },
            conflict_columns=_USER_MODULE,
            update_columns=["status", "started_at"],
            only_if={"status": sorted(s.value for s in sources)},
        )
        row = self._gateway.reload(
            TrainingProgress, {"user_id": user_id, "module_id": module_id},
        )
        if written:
            logger.info(
                "training_started",
                extra={"module_id": str(module_id), "user_id": str(user_id)},
            )
            self._revalidate(ViewPath.STAFF_TRAINING)
        else:
            logger.debug(
                "training_start_skipped",
                extra={"module_id": str(module_id), "status": row.status},
            )
        return row.to_dto()

    def record_video_progress(
        self,
        user_id: UUID,
        module_id: UUID,
        current_time_seconds: float,
        duration_seconds: float,
    ) -> VideoSampleOutcome:
        """
        Store a playback sample unless one was stored within the debounce window.

        Samples that end the video or first reach the watch threshold are
        always stored.
        """
        self._require_module(module_id)
        pct = watch_percentage(current_time_seconds, duration_seconds)
        now = self._clock.now()

        existing = self._gateway.find_one(
            VideoWatchProgress, {"user_id": user_id, "module_id": module_id},
        )
        last_written = existing.last_watched_at if existing is not None else None
        stored_pct = existing.watched_percentage if existing is not None else None
        if not should_persist_sample(
            last_written,
            now,
            self._debounce_seconds,
            new_percentage=pct,
            stored_percentage=stored_pct,
            threshold=self._watch_threshold,
        ):
            return VideoSampleOutcome(
                watched_percentage=pct, persisted=False, progress=existing.to_dto(),
            )

        self._gateway.upsert(
            VideoWatchProgress,
            {
                "id": uuid4(),
                "user_id": user_id,
                "module_id": module_id,
                "current_time_seconds": float(current_time_seconds),
                "duration_seconds": float(duration_seconds),
                "watched_percentage": pct,
                "last_watched_at": now,
            },
            conflict_columns=_USER_MODULE,
            update_columns=[
                "current_time_seconds", "duration_seconds",
                "watched_percentage", "last_watched_at",
            ],
        )
        row = self._gateway.reload(
            VideoWatchProgress, {"user_id": user_id, "module_id": module_id},
        )
        logger.debug(
            "video_progress_recorded",
            extra={"module_id": str(module_id), "watched_percentage": round(pct, 2)},
        )
        return VideoSampleOutcome(watched_percentage=pct, persisted=True, progress=row.to_dto())

    def get_video_progress(self, user_id: UUID, module_id: UUID) -> VideoProgressInfo | None:
        row = self._gateway.find_one(
            VideoWatchProgress, {"user_id": user_id, "module_id": module_id},
        )
        return row.to_dto() if row is not None else None

    def get_progress(self, user_id: UUID, module_id: UUID) -> TrainingProgressInfo | None:
        row = self._gateway.find_one(
            TrainingProgress, {"user_id": user_id, "module_id": module_id},
        )
        return row.to_dto() if row is not None else None

    def complete(
        self,
        user_id: UUID,
        module_id: UUID,
        score: int | None = None,
        video_completed: bool = False,
        certificate_ref: str | None = None,
    ) -> TrainingProgressInfo:
        module = self._require_module(module_id)
        if score is not None and not 0 <= score <= 100:
            raise ValidationError("score", "Score must be between 0 and 100")

        watched = self.get_video_progress(user_id, module_id)
        watched_pct = watched.watched_percentage if watched is not None else 0.0
        if not passes_video_gate(
            bool(module.video_ref), watched_pct, video_completed, self._watch_threshold,
        ):
            logger.warning(
                "training_video_gate_blocked",
                extra={
                    "module_id": str(module_id),
                    "user_id": str(user_id),
                    "watched_percentage": round(watched_pct, 2),
                },
            )
            raise VideoNotWatchedError(str(module_id), watched_pct, self._watch_threshold)

        now = self._clock.now()
        self._gateway.upsert(
            TrainingProgress,
            {
                "id": uuid4(),
                "user_id": user_id,
                "module_id": module_id,
                "status": TrainingStatus.COMPLETED.value,
                "started_at": now,
                "completed_at": now,
                "score": score,
                "certificate_ref": certificate_ref,
                "expires_at": compute_expiry(now, module.expiry_months),
            },
            conflict_columns=_USER_MODULE,
            update_columns=["status", "completed_at", "score", "certificate_ref", "expires_at"],
            only_if={
                "status": sorted(s.value for s in self.lifecycle.sources_for("complete")),
            },
        )
        row = self._gateway.reload(
            TrainingProgress, {"user_id": user_id, "module_id": module_id},
        )

        logger.info(
            "training_completed",
            extra={
                "module_id": str(module_id),
                "user_id": str(user_id),
                "score": score,
                "expires_at": row.expires_at,
            },
        )
        self._revalidate(ViewPath.STAFF_TRAINING, ViewPath.ADMIN_TRAINING)
        return row.to_dto()

    def expire_overdue(self, as_of: datetime | None = None) -> int:
        """
        Flip completed progress rows whose ``expires_at`` has passed to expired.

        A naive ``as_of`` is read as UTC.
        """
        cutoff = as_utc(as_of) if as_of is not None else self._clock.now()
        target = self.lifecycle.fire(TrainingStatus.COMPLETED, "expire")

        candidates = self._gateway.find(
            TrainingProgress,
            {"status": TrainingStatus.COMPLETED.value, "expires_at": NOT_NULL},
        )
        expired = 0
        for row in candidates:
            if row.expires_at > cutoff:
                continue
            expired += self._gateway.update_where(
                TrainingProgress,
                {"id": row.id, "status": TrainingStatus.COMPLETED.value},
                {"status": target.value},
            )

        logger.info(
            "training_expiry_sweep_completed",
            extra={"as_of": cutoff, "expired_count": expired},
        )
        if expired:
            self._revalidate(ViewPath.STAFF_TRAINING, ViewPath.ADMIN_TRAINING)
        return expired

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_module(self, module_id: UUID) -> TrainingModule:
        row = self._gateway.get(TrainingModule, module_id)
        if row is None:
            raise NotFoundError("TrainingModule", str(module_id))
        return row

    @staticmethod
    def _validated_module_fields(fields: dict[str, Any]) -> dict[str, Any]:
        values = dict(fields)
        if "title" in values and not (values["title"] or "").strip():
            raise ValidationError("title", "Title is required")
        if values.get("difficulty") is not None:
            try:
                values["difficulty"] = Difficulty(values["difficulty"]).value
            except ValueError:
                raise ValidationError(
                    "difficulty", f"Unknown difficulty '{values['difficulty']}'",
                ) from None
        months = values.get("expiry_months")
        if months is not None and months <= 0:
            raise ValidationError("expiry_months", "Expiry must be a positive number of months")
        return values

    def _revalidate(self, *paths: str) -> None:
        self.best_effort("revalidate", lambda: self._revalidator.revalidate(*paths))
