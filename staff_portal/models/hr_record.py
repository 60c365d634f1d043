"""
Module: staff_portal.models.hr_record
Responsibility: ORM persistence for staff-scoped HR records and their
    acknowledgment fields.

Invariants enforced:
    - A record belongs to exactly one user; there is no assignment step.
    - ``acknowledged_at`` is write-once.  The HR service refuses a second
      acknowledgment; the status is derived from this column.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from staff_portal.db.base import Base, UUIDString
from staff_portal.domain.dtos import HRRecordInfo


class HRRecord(Base):
    """An HR letter or report issued to one staff member."""

    __tablename__ = "hr_records"

    __table_args__ = (
        Index("ix_hr_records_user_created", "user_id", "created_at"),
        Index("ix_hr_records_acknowledged", "acknowledged_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    record_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="private")
    created_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    acknowledged_at: Mapped[datetime | None] = mapped_column(nullable=True)
    acknowledgment_file_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    signature_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    acknowledgment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<HRRecord {self.record_type} user={self.user_id}>"

    def to_dto(self) -> HRRecordInfo:
        return HRRecordInfo(
            id=self.id,
            user_id=self.user_id,
            record_type=self.record_type,
            title=self.title,
            description=self.description,
            content=self.content,
            file_ref=self.file_ref,
            visibility=self.visibility,
            created_by=self.created_by,
            created_at=self.created_at,
            acknowledged_at=self.acknowledged_at,
            acknowledgment_file_ref=self.acknowledgment_file_ref,
            signature_ref=self.signature_ref,
            acknowledgment_notes=self.acknowledgment_notes,
            updated_at=self.updated_at,
        )
