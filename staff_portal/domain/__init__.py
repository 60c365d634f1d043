"""Pure domain layer: lifecycles, rules, identity and DTOs.  Zero I/O."""

from staff_portal.domain.clock import Clock, DeterministicClock, SystemClock
from staff_portal.domain.lifecycle import Guard, Lifecycle, Transition
from staff_portal.domain.submission import (
    HR_ACKNOWLEDGMENT_LIFECYCLE,
    SUBMISSION_LIFECYCLE,
    DocumentKind,
    HRRecordStatus,
    HRRecordType,
    SubmissionAction,
    SubmissionStatus,
)
from staff_portal.domain.training import TRAINING_LIFECYCLE, TrainingStatus

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "Guard",
    "Transition",
    "Lifecycle",
    "SUBMISSION_LIFECYCLE",
    "HR_ACKNOWLEDGMENT_LIFECYCLE",
    "TRAINING_LIFECYCLE",
    "DocumentKind",
    "HRRecordType",
    "HRRecordStatus",
    "SubmissionAction",
    "SubmissionStatus",
    "TrainingStatus",
]
