"""ORM models.  Importing this package registers every table on Base.metadata."""

from staff_portal.models.audit_log import AuditAction, AuditLog
from staff_portal.models.document import Document, SubmissionProgress
from staff_portal.models.hr_record import HRRecord
from staff_portal.models.notification import Notification
from staff_portal.models.training import (
    TrainingAssignment,
    TrainingModule,
    TrainingProgress,
    VideoWatchProgress,
)
from staff_portal.models.user import User

__all__ = [
    "User",
    "Document",
    "SubmissionProgress",
    "HRRecord",
    "TrainingModule",
    "TrainingProgress",
    "TrainingAssignment",
    "VideoWatchProgress",
    "Notification",
    "AuditLog",
    "AuditAction",
]
