"""
Module: staff_portal.selectors.onboarding_selector
Responsibility: A staff member's view of onboarding documents and their
    progress through them.
Architecture position: Kernel > Selectors.

Completion counts only approved progress rows on required onboarding
documents.  With no required documents the user is reported as 0% and not
complete.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select

from staff_portal.domain.dtos import DocumentWithStatus
from staff_portal.domain.submission import DocumentKind, SubmissionStatus
from staff_portal.models.document import Document, SubmissionProgress
from staff_portal.selectors.base import BaseSelector


@dataclass(frozen=True)
class OnboardingProgress:
    total_required: int
    completed: int
    percentage: int
    is_complete: bool


def percent(part: int | float, whole: int | float) -> int:
    """Whole-number percentage, halves rounded up; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return math.floor(part * 100 / whole + 0.5)


class OnboardingSelector(BaseSelector[Document]):
    def documents_with_status(
        self,
        user_id: UUID,
        kind: DocumentKind = DocumentKind.ONBOARDING,
    ) -> list[DocumentWithStatus]:
        """Every document of ``kind`` with this user's status (not_started when absent)."""
        documents = self._all(
            select(Document)
            .where(Document.kind == kind.value)
            .order_by(Document.order_index, Document.title)
        )
        progress = {
            row.document_id: row
            for row in self._all(
                select(SubmissionProgress).where(
                    SubmissionProgress.user_id == user_id,
                    SubmissionProgress.document_id.in_([d.id for d in documents]),
                )
            )
        }

        result = []
        for document in documents:
            row = progress.get(document.id)
            result.append(
                DocumentWithStatus(
                    document=document.to_dto(),
                    status=SubmissionStatus(row.status) if row else SubmissionStatus.NOT_STARTED,
                    submission=row.to_dto() if row else None,
                )
            )
        return result

    def progress(self, user_id: UUID) -> OnboardingProgress:
        required = select(Document.id).where(
            Document.kind == DocumentKind.ONBOARDING.value,
            Document.is_required.is_(True),
        )
        total = self._count(select(func.count()).select_from(required.subquery()))
        completed = self._count(
            select(func.count(SubmissionProgress.id)).where(
                SubmissionProgress.user_id == user_id,
                SubmissionProgress.status == SubmissionStatus.APPROVED.value,
                SubmissionProgress.document_id.in_(required),
            )
        )
        return OnboardingProgress(
            total_required=total,
            completed=completed,
            percentage=percent(completed, total),
            is_complete=total > 0 and completed >= total,
        )
