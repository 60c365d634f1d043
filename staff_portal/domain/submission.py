"""
Submission domain types (``staff_portal.domain.submission``).

Responsibility
--------------
Status enums and lifecycle tables for the onboarding document submission
and HR acknowledgment workflows, plus the document/record kind tokens and
their display labels.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``approved`` is terminal for document submissions.
* Resubmission is permitted from ``rejected``, never from ``approved``.
* Approve and reject edges exist only from ``submitted``.
* HR acknowledgment is terminal once recorded.
"""

from __future__ import annotations

from enum import Enum

from staff_portal.domain.lifecycle import Guard, Lifecycle, Transition


class DocumentKind(str, Enum):
    """Kind of assignable document."""

    ONBOARDING = "onboarding"
    HANDBOOK = "handbook"
    TRAINING = "training"
    POLICY = "policy"
    HR_RECORD = "hr_record"
    OTHER = "other"


class OnboardingSubtype(str, Enum):
    NDA = "nda"
    GUARANTOR_FORM = "guarantor_form"
    BIODATA = "biodata"
    CONTRACT_LETTER = "contract_letter"
    OFFER_LETTER = "offer_letter"


class HRRecordType(str, Enum):
    PROMOTION_LETTER = "promotion_letter"
    QUERY_LETTER = "query_letter"
    WARNING_LETTER = "warning_letter"
    APPRAISAL_REPORT = "appraisal_report"
    LEAVE_RECORD = "leave_record"
    SALARY_INFORMATION = "salary_information"


HR_RECORD_LABELS: dict[HRRecordType, str] = {
    HRRecordType.PROMOTION_LETTER: "Promotion Letter",
    HRRecordType.QUERY_LETTER: "Query Letter",
    HRRecordType.WARNING_LETTER: "Warning Letter",
    HRRecordType.APPRAISAL_REPORT: "Appraisal Report",
    HRRecordType.LEAVE_RECORD: "Leave Record",
    HRRecordType.SALARY_INFORMATION: "Salary Information",
}


def humanize_token(token: str) -> str:
    """``warning_letter`` -> ``warning letter``."""
    return token.replace("_", " ")


# =========================================================================
# Onboarding document submission
# =========================================================================


class SubmissionStatus(str, Enum):
    """Per (document, user) progress status."""

    NOT_STARTED = "not_started"
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmissionAction(str, Enum):
    SAVE_DRAFT = "save_draft"
    SUBMIT = "submit"
    ACKNOWLEDGE = "acknowledge"
    APPROVE = "approve"
    REJECT = "reject"


SIGNATURE_REQUIRED = Guard(
    name="signature_required",
    description="Documents flagged requires_signature need a signature reference",
)

REJECTION_REASON = Guard(
    name="rejection_reason",
    description="A rejection must carry non-empty admin comments",
)


def _edges(
    sources: tuple[SubmissionStatus, ...],
    target: SubmissionStatus,
    action: SubmissionAction,
    guard: Guard | None = None,
) -> tuple[Transition[SubmissionStatus], ...]:
    return tuple(Transition(src, target, action.value, guard) for src in sources)


_OPEN = (
    SubmissionStatus.NOT_STARTED,
    SubmissionStatus.DRAFT,
    SubmissionStatus.REJECTED,
)

SUBMISSION_LIFECYCLE: Lifecycle[SubmissionStatus] = Lifecycle(
    name="document_submission",
    description="Onboarding document completion and admin review",
    initial_state=SubmissionStatus.NOT_STARTED,
    states=tuple(SubmissionStatus),
    transitions=(
        *_edges(_OPEN, SubmissionStatus.DRAFT, SubmissionAction.SAVE_DRAFT),
        *_edges(
            _OPEN + (SubmissionStatus.SUBMITTED,),
            SubmissionStatus.SUBMITTED,
            SubmissionAction.SUBMIT,
        ),
        *_edges(
            _OPEN,
            SubmissionStatus.APPROVED,
            SubmissionAction.ACKNOWLEDGE,
            SIGNATURE_REQUIRED,
        ),
        Transition(
            SubmissionStatus.SUBMITTED,
            SubmissionStatus.APPROVED,
            SubmissionAction.APPROVE.value,
        ),
        Transition(
            SubmissionStatus.SUBMITTED,
            SubmissionStatus.REJECTED,
            SubmissionAction.REJECT.value,
            REJECTION_REASON,
        ),
    ),
    terminal_states=frozenset({SubmissionStatus.APPROVED}),
)


# =========================================================================
# HR record acknowledgment
# =========================================================================


class HRRecordStatus(str, Enum):
    """Derived from ``acknowledged_at``: set means acknowledged."""

    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"


HR_ACKNOWLEDGMENT_LIFECYCLE: Lifecycle[HRRecordStatus] = Lifecycle(
    name="hr_acknowledgment",
    description="Staff acknowledgment of an HR record; no review step",
    initial_state=HRRecordStatus.PENDING,
    states=tuple(HRRecordStatus),
    transitions=(
        Transition(
            HRRecordStatus.PENDING,
            HRRecordStatus.ACKNOWLEDGED,
            "acknowledge",
            Guard("upload_and_signature", "Both a file and a signature are required"),
        ),
    ),
    terminal_states=frozenset({HRRecordStatus.ACKNOWLEDGED}),
)
