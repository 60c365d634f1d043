"""
Frozen data transfer objects returned by services and selectors.

ORM rows never leave the kernel; every read path converts through the
model's ``to_dto()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from staff_portal.domain.form_data import FormData
from staff_portal.domain.identity import Role
from staff_portal.domain.submission import DocumentKind, HRRecordStatus, SubmissionStatus
from staff_portal.domain.training import AssignmentType, TrainingStatus


@dataclass(frozen=True)
class UserInfo:
    id: UUID
    email: str
    first_name: str | None
    last_name: str | None
    role: Role
    department: str | None
    is_active: bool
    onboarding_completed: bool

    @property
    def display_name(self) -> str | None:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or None


@dataclass(frozen=True)
class DocumentInfo:
    id: UUID
    kind: DocumentKind
    title: str
    description: str
    content: str | None
    file_ref: str | None
    is_required: bool
    requires_signature: bool
    order_index: int
    metadata: Mapping[str, Any]
    created_by: UUID | None
    created_at: datetime


@dataclass(frozen=True)
class SubmissionRecord:
    id: UUID
    document_id: UUID
    user_id: UUID
    status: SubmissionStatus
    form_data: FormData | None
    notes: str | None
    signature_ref: str | None
    admin_comments: str | None
    reviewed_by: UUID | None
    completed_at: datetime | None
    last_saved_at: datetime | None
    reviewed_at: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class SubmissionDetail:
    submission: SubmissionRecord
    document: DocumentInfo
    submitter: UserInfo | None


@dataclass(frozen=True)
class DocumentWithStatus:
    """A document as seen by one staff member."""

    document: DocumentInfo
    status: SubmissionStatus
    submission: SubmissionRecord | None


@dataclass(frozen=True)
class AssignmentOutcome:
    document_id: UUID
    user_id: UUID
    already_assigned: bool


@dataclass(frozen=True)
class HRRecordInfo:
    id: UUID
    user_id: UUID
    record_type: str
    title: str | None
    description: str | None
    content: str | None
    file_ref: str | None
    visibility: str
    created_by: UUID | None
    created_at: datetime
    acknowledged_at: datetime | None
    acknowledgment_file_ref: str | None
    signature_ref: str | None
    acknowledgment_notes: str | None
    updated_at: datetime | None

    @property
    def status(self) -> HRRecordStatus:
        if self.acknowledged_at is None:
            return HRRecordStatus.PENDING
        return HRRecordStatus.ACKNOWLEDGED


@dataclass(frozen=True)
class TrainingModuleInfo:
    id: UUID
    title: str
    description: str | None
    content: str | None
    category: str | None
    difficulty: str | None
    is_mandatory: bool
    duration_minutes: int | None
    expiry_months: int | None
    video_ref: str | None
    file_ref: str | None
    created_by: UUID | None
    created_at: datetime

    @property
    def has_video(self) -> bool:
        return bool(self.video_ref)


@dataclass(frozen=True)
class TrainingProgressInfo:
    id: UUID
    user_id: UUID
    module_id: UUID
    status: TrainingStatus
    started_at: datetime | None
    completed_at: datetime | None
    score: int | None
    certificate_ref: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class TrainingAssignmentInfo:
    id: UUID
    module_id: UUID
    user_id: UUID
    assignment_type: AssignmentType
    department: str | None
    assigned_by: UUID | None
    assigned_at: datetime
    is_mandatory: bool
    deadline: datetime | None
    notes: str | None


@dataclass(frozen=True)
class VideoProgressInfo:
    user_id: UUID
    module_id: UUID
    current_time_seconds: float
    duration_seconds: float
    watched_percentage: float
    last_watched_at: datetime


@dataclass(frozen=True)
class VideoSampleOutcome:
    """Result of one player progress tick."""

    watched_percentage: float
    persisted: bool
    progress: VideoProgressInfo | None = None


@dataclass(frozen=True)
class NotificationInfo:
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    related_resource_type: str | None
    related_resource_id: UUID | None
    is_read: bool
    created_at: datetime


@dataclass(frozen=True)
class AuditEntry:
    id: UUID
    actor_id: UUID
    action: str
    subject_type: str
    subject_id: UUID | None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    payload_hash: str = ""
    created_at: datetime | None = None
