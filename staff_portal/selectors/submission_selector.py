"""
Module: staff_portal.selectors.submission_selector
Responsibility: The admin submission feed -- onboarding submissions and HR
    record acknowledgments merged into one list, newest first.
Architecture position: Kernel > Selectors.

Ordering:
    Onboarding entries are timestamped by ``completed_at`` and HR entries by
    ``acknowledged_at``.  Entries without a timestamp sort as the epoch,
    after everything else.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from staff_portal.domain.feed import HR_FEED_ID_PREFIX, FeedEntry, FeedSource, order_feed
from staff_portal.domain.submission import (
    HR_RECORD_LABELS,
    HRRecordType,
    SubmissionStatus,
    humanize_token,
)
from staff_portal.models.document import SubmissionProgress
from staff_portal.models.hr_record import HRRecord
from staff_portal.models.user import User
from staff_portal.selectors.base import BaseSelector

# Statuses that have been through the staff "submit" step.
_FEED_STATUSES = (
    SubmissionStatus.SUBMITTED.value,
    SubmissionStatus.APPROVED.value,
    SubmissionStatus.REJECTED.value,
)


def _hr_title(record: HRRecord) -> str:
    if record.title:
        return record.title
    try:
        return HR_RECORD_LABELS[HRRecordType(record.record_type)]
    except ValueError:
        return humanize_token(record.record_type).title()


class SubmissionSelector(BaseSelector[SubmissionProgress]):
    """Read-only queries over submissions and acknowledgments."""

    def merged_feed(
        self,
        status: SubmissionStatus | None = None,
        limit: int | None = None,
    ) -> list[FeedEntry]:
        """
        Onboarding submissions plus acknowledged HR records, newest first.

        Args:
            status: Restrict onboarding entries to one status.  HR entries
                are always reported as approved and are dropped when a
                status other than approved is requested.
            limit: Truncate the ordered feed.
        """
        names = self._display_names()
        entries: list[FeedEntry] = []

        statuses = (status.value,) if status is not None else _FEED_STATUSES
        rows = self._all(
            select(SubmissionProgress).where(SubmissionProgress.status.in_(statuses))
        )
        for row in rows:
            entries.append(
                FeedEntry(
                    id=str(row.id),
                    source=FeedSource.ONBOARDING,
                    user_id=row.user_id,
                    title=row.document.title,
                    status=row.status,
                    timestamp=row.completed_at,
                    submitter_name=names.get(row.user_id),
                    document_id=row.document_id,
                )
            )

        if status in (None, SubmissionStatus.APPROVED):
            records = self._all(
                select(HRRecord).where(HRRecord.acknowledged_at.is_not(None))
            )
            for record in records:
                entries.append(
                    FeedEntry(
                        id=f"{HR_FEED_ID_PREFIX}{record.id}",
                        source=FeedSource.HR_RECORD,
                        user_id=record.user_id,
                        title=_hr_title(record),
                        status=SubmissionStatus.APPROVED.value,
                        timestamp=record.acknowledged_at,
                        submitter_name=names.get(record.user_id),
                    )
                )

        ordered = order_feed(entries)
        return ordered[:limit] if limit is not None else ordered

    def _display_names(self) -> dict[UUID, str | None]:
        users = self._all(select(User))
        return {user.id: user.to_dto().display_name for user in users}
