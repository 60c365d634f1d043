"""
Module: staff_portal.models.training
Responsibility: ORM persistence for training modules, per-user progress,
    assignments and video watch progress.

Invariants enforced:
    - UNIQUE(user_id, module_id) on progress and on video watch progress.
    - UNIQUE(module_id, user_id) on assignments; re-assigning updates the
      existing row.
    - Progress status values limited by a check constraint; transition
      rules live in domain.training.TRAINING_LIFECYCLE.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from staff_portal.db.base import Base, UUIDString
from staff_portal.domain.dtos import (
    TrainingAssignmentInfo,
    TrainingModuleInfo,
    TrainingProgressInfo,
    VideoProgressInfo,
)
from staff_portal.domain.training import AssignmentType, TrainingStatus


class TrainingModule(Base):
    __tablename__ = "training_modules"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expiry_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    video_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    file_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<TrainingModule {self.title!r}>"

    def to_dto(self) -> TrainingModuleInfo:
        return TrainingModuleInfo(
            id=self.id,
            title=self.title,
            description=self.description,
            content=self.content,
            category=self.category,
            difficulty=self.difficulty,
            is_mandatory=self.is_mandatory,
            duration_minutes=self.duration_minutes,
            expiry_months=self.expiry_months,
            video_ref=self.video_ref,
            file_ref=self.file_ref,
            created_by=self.created_by,
            created_at=self.created_at,
        )


class TrainingProgress(Base):
    __tablename__ = "training_progress"

    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_training_progress_user_module"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed', 'expired')",
            name="ck_training_progress_valid_status",
        ),
        Index("ix_training_progress_status_expires", "status", "expires_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    module_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TrainingStatus.NOT_STARTED.value,
    )
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    certificate_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> TrainingProgressInfo:
        return TrainingProgressInfo(
            id=self.id,
            user_id=self.user_id,
            module_id=self.module_id,
            status=TrainingStatus(self.status),
            started_at=self.started_at,
            completed_at=self.completed_at,
            score=self.score,
            certificate_ref=self.certificate_ref,
            expires_at=self.expires_at,
        )


class TrainingAssignment(Base):
    __tablename__ = "training_assignments"

    __table_args__ = (
        UniqueConstraint("module_id", "user_id", name="uq_training_assignments_module_user"),
        CheckConstraint(
            "assignment_type IN ('individual', 'department')",
            name="ck_training_assignments_valid_type",
        ),
    )

    module_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    assignment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assigned_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(nullable=False)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> TrainingAssignmentInfo:
        return TrainingAssignmentInfo(
            id=self.id,
            module_id=self.module_id,
            user_id=self.user_id,
            assignment_type=AssignmentType(self.assignment_type),
            department=self.department,
            assigned_by=self.assigned_by,
            assigned_at=self.assigned_at,
            is_mandatory=self.is_mandatory,
            deadline=self.deadline,
            notes=self.notes,
        )


class VideoWatchProgress(Base):
    __tablename__ = "video_watch_progress"

    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_video_watch_progress_user_module"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    module_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False,
    )
    current_time_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    watched_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_watched_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> VideoProgressInfo:
        return VideoProgressInfo(
            user_id=self.user_id,
            module_id=self.module_id,
            current_time_seconds=self.current_time_seconds,
            duration_seconds=self.duration_seconds,
            watched_percentage=self.watched_percentage,
            last_watched_at=self.last_watched_at,
        )
