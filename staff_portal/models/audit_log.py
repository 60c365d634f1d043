"""
Module: staff_portal.models.audit_log
Responsibility: Append-only audit log of admin decisions and document
    administration.

Invariants enforced:
    - Append-only: ORM before_update / before_delete listeners raise
      ImmutabilityViolationError.
    - ``payload_hash`` is the SHA-256 of the canonical metadata JSON taken
      at insert time, so later tampering through raw SQL is detectable.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from staff_portal.db.base import Base, UUIDString
from staff_portal.domain.dtos import AuditEntry
from staff_portal.exceptions import ImmutabilityViolationError
from staff_portal.logging_config import get_logger

logger = get_logger("models.audit_log")


class AuditAction(str, Enum):
    APPROVE_DOCUMENT = "approve_document"
    REJECT_DOCUMENT = "reject_document"
    CREATE_DOCUMENT = "create_document"
    UPDATE_DOCUMENT = "update_document"
    DELETE_DOCUMENT = "delete_document"
    ASSIGN_TRAINING = "assign_training"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("ix_audit_logs_subject", "subject_type", "subject_id"),
        Index("ix_audit_logs_created", "created_at"),
    )

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_type: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    audit_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} on {self.subject_type}:{self.subject_id}>"

    def to_dto(self) -> AuditEntry:
        return AuditEntry(
            id=self.id,
            actor_id=self.actor_id,
            action=self.action,
            subject_type=self.subject_type,
            subject_id=self.subject_id,
            metadata=dict(self.audit_metadata or {}),
            payload_hash=self.payload_hash,
            created_at=self.created_at,
        )


@event.listens_for(AuditLog, "before_update")
def prevent_audit_log_update(mapper, connection, target):
    """Audit entries cannot be modified."""
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "AuditLog", "entity_id": str(target.id), "operation": "UPDATE"},
    )
    raise ImmutabilityViolationError(
        entity_type="AuditLog",
        entity_id=str(target.id),
        reason="Audit entries are append-only -- cannot modify",
    )


@event.listens_for(AuditLog, "before_delete")
def prevent_audit_log_delete(mapper, connection, target):
    """Audit entries cannot be deleted."""
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "AuditLog", "entity_id": str(target.id), "operation": "DELETE"},
    )
    raise ImmutabilityViolationError(
        entity_type="AuditLog",
        entity_id=str(target.id),
        reason="Audit entries are append-only -- cannot delete",
    )
