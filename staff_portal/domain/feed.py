"""
Merged submission feed ordering (``staff_portal.domain.feed``).

Onboarding submissions and HR acknowledgments are shown to admins as one
list, newest first.  Entries without a timestamp sort as the epoch, i.e.
after everything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable
from uuid import UUID

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

HR_FEED_ID_PREFIX = "hr-"


class FeedSource(str, Enum):
    ONBOARDING = "onboarding"
    HR_RECORD = "hr_record"


@dataclass(frozen=True)
class FeedEntry:
    id: str
    source: FeedSource
    user_id: UUID
    title: str
    status: str
    timestamp: datetime | None
    submitter_name: str | None = None
    document_id: UUID | None = None


def feed_sort_key(entry: FeedEntry) -> datetime:
    return entry.timestamp or EPOCH


def order_feed(entries: Iterable[FeedEntry]) -> list[FeedEntry]:
    """Timestamp descending; stable for equal timestamps."""
    return sorted(entries, key=feed_sort_key, reverse=True)
