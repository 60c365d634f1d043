"""Services for the staff portal kernel (write side)."""

from staff_portal.services.storage_gateway import NOT_NULL, StorageGateway
from staff_portal.services.notification_service import (
    NotificationSink,
    NotificationType,
    OutboxNotificationSink,
)
from staff_portal.services.auditor_service import AuditorService, AuditRecorder
from staff_portal.services.revalidation import RecordingRevalidator, Revalidator, ViewPath
from staff_portal.services.submission_service import SubmissionService
from staff_portal.services.review_service import ReviewService
from staff_portal.services.hr_service import HRRecordService
from staff_portal.services.training_service import TrainingService
from staff_portal.services.assignment_service import AssignmentService
from staff_portal.services.document_service import DocumentService
from staff_portal.services.portal_actions import PortalActions

__all__ = [
    "AssignmentService",
    "AuditRecorder",
    "AuditorService",
    "DocumentService",
    "HRRecordService",
    "NOT_NULL",
    "NotificationSink",
    "NotificationType",
    "OutboxNotificationSink",
    "PortalActions",
    "RecordingRevalidator",
    "Revalidator",
    "ReviewService",
    "StorageGateway",
    "SubmissionService",
    "TrainingService",
    "ViewPath",
]
