"""
Boundary result type (``staff_portal.domain.results``).

Every ``PortalActions`` operation returns an ``ActionResult``: a status
drawn from ``ActionStatus``, a human-readable message and an optional
payload.  Kernel exceptions are mapped to statuses here so the web layer
never has to catch them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from staff_portal.exceptions import (
    AlreadyApprovedError,
    DocumentInUseError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    NotFoundOrForbiddenError,
    StaffPortalError,
    UnauthorizedError,
    ValidationError,
    VideoNotWatchedError,
)


class ActionStatus(str, Enum):
    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    NOT_FOUND_OR_FORBIDDEN = "not_found_or_forbidden"
    INVALID_STATE = "invalid_state"
    ALREADY_APPROVED = "already_approved"
    VALIDATION_FAILED = "validation_failed"
    VIDEO_NOT_WATCHED = "video_not_watched"
    DOCUMENT_IN_USE = "document_in_use"
    FAILED = "failed"


# Most specific class first; AlreadyApprovedError is an InvalidStateError.
_ERROR_STATUS: tuple[tuple[type[StaffPortalError], ActionStatus], ...] = (
    (UnauthorizedError, ActionStatus.UNAUTHORIZED),
    (ForbiddenError, ActionStatus.FORBIDDEN),
    (NotFoundOrForbiddenError, ActionStatus.NOT_FOUND_OR_FORBIDDEN),
    (NotFoundError, ActionStatus.NOT_FOUND),
    (AlreadyApprovedError, ActionStatus.ALREADY_APPROVED),
    (InvalidStateError, ActionStatus.INVALID_STATE),
    (InvalidTransitionError, ActionStatus.INVALID_STATE),
    (ValidationError, ActionStatus.VALIDATION_FAILED),
    (VideoNotWatchedError, ActionStatus.VIDEO_NOT_WATCHED),
    (DocumentInUseError, ActionStatus.DOCUMENT_IN_USE),
)


def status_for_error(exc: StaffPortalError) -> ActionStatus:
    for error_type, status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return ActionStatus.FAILED


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one portal action."""

    status: ActionStatus
    message: str
    data: Any = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == ActionStatus.SUCCESS

    @classmethod
    def ok(cls, message: str, data: Any = None) -> ActionResult:
        return cls(ActionStatus.SUCCESS, message, data)

    @classmethod
    def from_error(cls, exc: StaffPortalError) -> ActionResult:
        return cls(status_for_error(exc), str(exc), None, exc.code)
