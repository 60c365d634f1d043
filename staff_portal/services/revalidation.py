"""
Cache revalidation hook.

After every mutating operation the workflow services name the views whose
cached data is now stale.  The web layer plugs in whatever invalidation it
uses; the default implementation only records and logs the paths.
"""

from __future__ import annotations

from typing import Callable, Protocol

from staff_portal.logging_config import get_logger

logger = get_logger("services.revalidation")


class ViewPath:
    STAFF_DASHBOARD = "/dashboard"
    STAFF_ONBOARDING = "/dashboard/onboarding"
    STAFF_HR_RECORDS = "/dashboard/hr-records"
    STAFF_TRAINING = "/dashboard/training"
    ADMIN_DOCUMENTS = "/admin/documents"
    ADMIN_SUBMISSIONS = "/admin/submissions"
    ADMIN_TRAINING = "/admin/training"
    ADMIN_TRAINING_ASSIGNMENTS = "/admin/training/assignments"


class Revalidator(Protocol):
    def revalidate(self, *paths: str) -> None: ...


class RecordingRevalidator:
    """Keeps every invalidated path and forwards it to an optional callback."""

    def __init__(self, callback: Callable[[str], None] | None = None):
        self._callback = callback
        self.paths: list[str] = []

    def revalidate(self, *paths: str) -> None:
        for path in paths:
            self.paths.append(path)
            if self._callback is not None:
                self._callback(path)
        logger.debug("views_revalidated", extra={"paths": list(paths)})
