"""
AuditorService -- append-only audit trail.

Responsibility:
    Records (actor, action, subject, metadata) for admin decisions and
    document administration, and verifies stored entries against their
    payload hash.

Invariants enforced:
    - Append-only: the AuditLog model rejects UPDATE and DELETE through ORM
      listeners.
    - Every entry carries ``payload_hash`` computed from its fields at
      insert time.

Non-goals:
    - Does NOT commit.  Does NOT replay or roll back from the log.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from staff_portal.domain.clock import Clock, SystemClock
from staff_portal.domain.dtos import AuditEntry
from staff_portal.exceptions import NotFoundError
from staff_portal.logging_config import get_logger
from staff_portal.models.audit_log import AuditAction, AuditLog
from staff_portal.services.storage_gateway import StorageGateway
from staff_portal.utils.hashing import hash_audit_entry, to_json_safe

logger = get_logger("services.auditor")


class AuditRecorder(Protocol):
    def record(
        self,
        actor_id: UUID,
        action: AuditAction | str,
        subject_type: str,
        subject_id: UUID | None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry: ...


class AuditorService:
    """Writes and verifies audit log entries."""

    def __init__(self, gateway: StorageGateway, clock: Clock | None = None):
        self._gateway = gateway
        self._clock = clock or SystemClock()

    def record(
        self,
        actor_id: UUID,
        action: AuditAction | str,
        subject_type: str,
        subject_id: UUID | None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        action_value = action.value if isinstance(action, AuditAction) else action
        payload = to_json_safe(metadata or {})
        payload_hash = hash_audit_entry(
            actor_id=str(actor_id),
            action=action_value,
            subject_type=subject_type,
            subject_id=str(subject_id) if subject_id is not None else None,
            metadata=payload,
        )
        row = self._gateway.insert(
            AuditLog,
            {
                "actor_id": actor_id,
                "action": action_value,
                "subject_type": subject_type,
                "subject_id": subject_id,
                "audit_metadata": payload,
                "payload_hash": payload_hash,
                "created_at": self._clock.now(),
            },
        )
        logger.info(
            "audit_entry_created",
            extra={
                "audit_action": action_value,
                "subject_type": subject_type,
                "subject_id": str(subject_id) if subject_id else None,
            },
        )
        return row.to_dto()

    def recent(self, limit: int = 100) -> list[AuditEntry]:
        rows = self._gateway.find(AuditLog, order_by=["-created_at"], limit=limit)
        return [row.to_dto() for row in rows]

    def for_subject(self, subject_type: str, subject_id: UUID) -> list[AuditEntry]:
        rows = self._gateway.find(
            AuditLog,
            {"subject_type": subject_type, "subject_id": subject_id},
            order_by=["created_at"],
        )
        return [row.to_dto() for row in rows]

    def verify(self, entry_id: UUID) -> bool:
        """Recompute the entry's hash and compare with the stored value."""
        row = self._gateway.get(AuditLog, entry_id)
        if row is None:
            raise NotFoundError("AuditLog", str(entry_id))
        expected = hash_audit_entry(
            actor_id=str(row.actor_id),
            action=row.action,
            subject_type=row.subject_type,
            subject_id=str(row.subject_id) if row.subject_id is not None else None,
            metadata=row.audit_metadata or {},
        )
        if expected != row.payload_hash:
            logger.critical(
                "audit_entry_tampered",
                extra={"entry_id": str(entry_id)},
            )
            return False
        return True
