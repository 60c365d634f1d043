"""
Module: staff_portal.models.document
Responsibility: ORM persistence for assignable documents and the per-user
    submission progress rows that track their completion.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - UNIQUE(document_id, user_id): at most one progress row per pair.  The
      submission service writes through INSERT ... ON CONFLICT on this
      constraint, so concurrent autosaves cannot create duplicates.
    - Progress status values are limited by a check constraint; transition
      rules live in domain.submission.SUBMISSION_LIFECYCLE.
    - Progress rows are never deleted.  A document referenced by progress
      rows cannot be deleted either (DocumentService.delete_document).

Failure modes:
    - IntegrityError on a duplicate (document_id, user_id) written outside
      the upsert primitive.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staff_portal.db.base import Base, UUIDString
from staff_portal.domain.dtos import DocumentInfo, SubmissionRecord
from staff_portal.domain.form_data import decode_form_data
from staff_portal.domain.submission import DocumentKind, SubmissionStatus


class Document(Base):
    """Admin-authored content a staff member must act on."""

    __tablename__ = "documents"

    __table_args__ = (
        CheckConstraint(
            "kind IN ('onboarding', 'handbook', 'training', 'policy', "
            "'hr_record', 'other')",
            name="ck_documents_valid_kind",
        ),
        Index("ix_documents_kind_order", "kind", "order_index"),
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_signature: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # "metadata" is reserved on declarative classes
    doc_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )
    created_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Document {self.kind}:{self.title!r}>"

    def to_dto(self) -> DocumentInfo:
        return DocumentInfo(
            id=self.id,
            kind=DocumentKind(self.kind),
            title=self.title,
            description=self.description,
            content=self.content,
            file_ref=self.file_ref,
            is_required=self.is_required,
            requires_signature=self.requires_signature,
            order_index=self.order_index,
            metadata=dict(self.doc_metadata or {}),
            created_by=self.created_by,
            created_at=self.created_at,
        )


class SubmissionProgress(Base):
    """One staff member's progress on one document."""

    __tablename__ = "submission_progress"

    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_submission_progress_doc_user"),
        CheckConstraint(
            "status IN ('not_started', 'draft', 'submitted', 'approved', 'rejected')",
            name="ck_submission_progress_valid_status",
        ),
        Index("ix_submission_progress_user", "user_id"),
        Index("ix_submission_progress_status_completed", "status", "completed_at"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("documents.id"), nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubmissionStatus.NOT_STARTED.value,
    )
    form_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    admin_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_saved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    document: Mapped[Document] = relationship(Document, lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<SubmissionProgress doc={self.document_id} "
            f"user={self.user_id} status={self.status}>"
        )

    def to_dto(self) -> SubmissionRecord:
        return SubmissionRecord(
            id=self.id,
            document_id=self.document_id,
            user_id=self.user_id,
            status=SubmissionStatus(self.status),
            form_data=decode_form_data(self.form_data),
            notes=self.notes,
            signature_ref=self.signature_ref,
            admin_comments=self.admin_comments,
            reviewed_by=self.reviewed_by,
            completed_at=self.completed_at,
            last_saved_at=self.last_saved_at,
            reviewed_at=self.reviewed_at,
            created_at=self.created_at,
        )
