"""
DocumentService -- admin authoring of assignable documents.

Responsibility:
    Create, edit and delete documents and their subtype metadata.  New
    documents are appended to the end of their kind's ordering.

Invariants enforced:
    - Title and description are required.
    - ``order_index`` of a new document is the current maximum + 1.
    - A document referenced by any SubmissionProgress row cannot be deleted
      (DocumentInUseError).  Progress rows are never deleted.
    - Every change is audited (best effort).
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock
from staff_portal.domain.dtos import DocumentInfo
from staff_portal.domain.submission import DocumentKind, HRRecordType, OnboardingSubtype
from staff_portal.exceptions import DocumentInUseError, NotFoundError, ValidationError
from staff_portal.logging_config import get_logger
from staff_portal.models.audit_log import AuditAction
from staff_portal.models.document import Document, SubmissionProgress
from staff_portal.services.auditor_service import AuditRecorder
from staff_portal.services.base import BaseService
from staff_portal.services.revalidation import Revalidator, ViewPath
from staff_portal.services.storage_gateway import StorageGateway

logger = get_logger("services.document")

_EDITABLE_FIELDS = frozenset({
    "title", "description", "content", "file_ref", "is_required", "requires_signature",
})

_SUBTYPE_KEYS = {
    "onboarding_subtype": OnboardingSubtype,
    "hr_subtype": HRRecordType,
}


def _validate_metadata(metadata: Mapping[str, Any]) -> dict[str, Any]:
    cleaned = dict(metadata)
    for key, enum_type in _SUBTYPE_KEYS.items():
        value = cleaned.get(key)
        if value is None:
            continue
        try:
            cleaned[key] = enum_type(value).value
        except ValueError:
            raise ValidationError(f"metadata.{key}", f"Unknown {key} '{value}'") from None
    return cleaned


def _require_text(field: str, value: str | None, label: str) -> None:
    if not (value or "").strip():
        raise ValidationError(field, f"{label} is required")


class DocumentService(BaseService):
    def __init__(
        self,
        session: Session,
        auditor: AuditRecorder,
        revalidator: Revalidator,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._gateway = StorageGateway(session)
        self._auditor = auditor
        self._revalidator = revalidator

    def create(
        self,
        created_by: UUID,
        kind: DocumentKind | str,
        title: str,
        description: str,
        content: str | None = None,
        file_ref: str | None = None,
        is_required: bool = False,
        requires_signature: bool = False,
        metadata: Mapping[str, Any] | None = None,
    ) -> DocumentInfo:
        _require_text("title", title, "Title")
        _require_text("description", description, "Description")
        try:
            kind = DocumentKind(kind)
        except ValueError:
            raise ValidationError("kind", f"Unknown document kind '{kind}'") from None

        highest = self._gateway.max_value(Document, "order_index", {"kind": kind.value})
        row = self._gateway.insert(
            Document,
            {
                "kind": kind.value,
                "title": title.strip(),
                "description": description.strip(),
                "content": content,
                "file_ref": file_ref,
                "is_required": is_required,
                "requires_signature": requires_signature,
                "order_index": (highest if highest is not None else -1) + 1,
                "doc_metadata": _validate_metadata(metadata or {}),
                "created_by": created_by,
                "created_at": self._clock.now(),
            },
        )
        logger.info(
            "document_created",
            extra={"document_id": str(row.id), "kind": kind.value, "order_index": row.order_index},
        )
        self._audit(created_by, AuditAction.CREATE_DOCUMENT, row, {"kind": kind.value})
        self._revalidate()
        return row.to_dto()

    def update(self, actor_id: UUID, document_id: UUID, **changes: Any) -> DocumentInfo:
        """Partial update of the editable fields."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                sorted(unknown)[0], f"Field(s) not editable: {', '.join(sorted(unknown))}",
            )
        if "title" in changes:
            _require_text("title", changes["title"], "Title")
        if "description" in changes:
            _require_text("description", changes["description"], "Description")

        row = self._require(document_id)
        self._gateway.update(row, changes)
        logger.info(
            "document_updated",
            extra={"document_id": str(document_id), "fields": sorted(changes)},
        )
        self._audit(actor_id, AuditAction.UPDATE_DOCUMENT, row, {"fields": sorted(changes)})
        self._revalidate()
        return row.to_dto()

    def update_metadata(
        self,
        actor_id: UUID,
        document_id: UUID,
        metadata: Mapping[str, Any],
    ) -> DocumentInfo:
        """Merge ``metadata`` into the document's metadata; ``None`` values remove keys."""
        row = self._require(document_id)
        merged = dict(row.doc_metadata or {})
        for key, value in metadata.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        self._gateway.update(row, {"doc_metadata": _validate_metadata(merged)})
        logger.info("document_metadata_updated", extra={"document_id": str(document_id)})
        self._audit(actor_id, AuditAction.UPDATE_DOCUMENT, row, {"metadata": merged})
        self._revalidate()
        return row.to_dto()

    def delete(self, actor_id: UUID, document_id: UUID) -> None:
        row = self._require(document_id)
        in_use = self._gateway.count(SubmissionProgress, {"document_id": document_id})
        if in_use:
            logger.warning(
                "document_delete_blocked",
                extra={"document_id": str(document_id), "progress_count": in_use},
            )
            raise DocumentInUseError(str(document_id), in_use)

        title = row.title
        self._gateway.delete_row(row)
        logger.info("document_deleted", extra={"document_id": str(document_id)})
        self.best_effort(
            "record_document_audit",
            lambda: self._auditor.record(
                actor_id, AuditAction.DELETE_DOCUMENT, "document", document_id,
                {"document_title": title},
            ),
        )
        self._revalidate()

    def get(self, document_id: UUID) -> DocumentInfo:
        return self._require(document_id).to_dto()

    def list_documents(self, kind: DocumentKind | str | None = None) -> list[DocumentInfo]:
        filters = None
        if kind is not None:
            try:
                filters = {"kind": DocumentKind(kind).value}
            except ValueError:
                raise ValidationError("kind", f"Unknown document kind '{kind}'") from None
        rows = self._gateway.find(Document, filters, order_by=["order_index", "title"])
        return [row.to_dto() for row in rows]

    def _require(self, document_id: UUID) -> Document:
        row = self._gateway.get(Document, document_id)
        if row is None:
            raise NotFoundError("Document", str(document_id))
        return row

    def _audit(
        self,
        actor_id: UUID,
        action: AuditAction,
        row: Document,
        metadata: dict[str, Any],
    ) -> None:
        document_id = row.id
        payload = {"document_title": row.title, **metadata}
        self.best_effort(
            "record_document_audit",
            lambda: self._auditor.record(actor_id, action, "document", document_id, payload),
        )

    def _revalidate(self) -> None:
        self.best_effort(
            "revalidate",
            lambda: self._revalidator.revalidate(
                ViewPath.ADMIN_DOCUMENTS, ViewPath.STAFF_ONBOARDING,
            ),
        )
