"""
Typed exception hierarchy for the staff portal kernel.

Every error raised by a kernel service is a subclass of ``StaffPortalError``
and carries a class-level ``code`` attribute (machine-readable, API-safe)
plus the structured fields needed to act on it.  Callers catch by type,
never by parsing messages.

    StaffPortalError (base)
    |
    +-- AccessError
    |   +-- UnauthorizedError          no session present
    |   +-- ForbiddenError             session present, capability missing
    |
    +-- LookupFailure
    |   +-- NotFoundError              referenced row does not exist
    |   +-- NotFoundOrForbiddenError   missing OR owned by someone else
    |
    +-- LifecycleError
    |   +-- InvalidStateError          operation not allowed from status
    |   |   +-- AlreadyApprovedError   approved is terminal
    |   +-- InvalidTransitionError     no edge in the lifecycle table
    |
    +-- ValidationError                missing / malformed input
    +-- VideoNotWatchedError           training video gate not satisfied
    +-- DocumentInUseError             delete blocked by progress rows
    +-- ImmutabilityViolationError     UPDATE/DELETE on append-only rows

Codes
-----
UNAUTHORIZED, FORBIDDEN, NOT_FOUND, NOT_FOUND_OR_FORBIDDEN, INVALID_STATE,
ALREADY_APPROVED, INVALID_TRANSITION, VALIDATION_ERROR, VIDEO_NOT_WATCHED,
DOCUMENT_IN_USE, IMMUTABILITY_VIOLATION.

The ``PortalActions`` facade converts these into ``ActionResult`` values;
nothing in this hierarchy crosses the boundary to the web layer.
"""


class StaffPortalError(Exception):
    """
    Base exception for all staff portal kernel errors.

    All subclasses define a ``code`` class attribute.
    """

    code: str = "STAFF_PORTAL_ERROR"


# Access


class AccessError(StaffPortalError):
    """Base exception for identity and permission failures."""

    code: str = "ACCESS_ERROR"


class UnauthorizedError(AccessError):
    """No authenticated session is present."""

    code: str = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(AccessError):
    """Session present but the actor lacks the required capability."""

    code: str = "FORBIDDEN"

    def __init__(self, actor_id: str, capability: str):
        self.actor_id = actor_id
        self.capability = capability
        super().__init__(
            f"Actor {actor_id} lacks capability '{capability}'"
        )


# Lookups


class LookupFailure(StaffPortalError):
    """Base exception for missing rows."""

    code: str = "LOOKUP_FAILURE"


class NotFoundError(LookupFailure):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class NotFoundOrForbiddenError(LookupFailure):
    """
    Entity is missing or belongs to another user.

    The two cases share one error so that existence is not leaked.
    """

    code: str = "NOT_FOUND_OR_FORBIDDEN"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found or access denied")


# Lifecycle


class LifecycleError(StaffPortalError):
    """Base exception for submission lifecycle violations."""

    code: str = "LIFECYCLE_ERROR"


class InvalidStateError(LifecycleError):
    """Operation attempted from a status that disallows it."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_id: str, status: str, message: str | None = None):
        self.entity_id = entity_id
        self.status = status
        super().__init__(
            message or f"Operation not allowed while {entity_id} is '{status}'"
        )


class AlreadyApprovedError(InvalidStateError):
    """The submission is approved and can no longer change."""

    code: str = "ALREADY_APPROVED"

    def __init__(self, entity_id: str):
        super().__init__(
            entity_id,
            "approved",
            "This document has already been approved",
        )


class InvalidTransitionError(LifecycleError):
    """The lifecycle table has no edge for (status, action)."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, lifecycle: str, from_status: str, action: str):
        self.lifecycle = lifecycle
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"{lifecycle}: action '{action}' not allowed from '{from_status}'"
        )


# Input and domain rules


class ValidationError(StaffPortalError):
    """A required field is missing or malformed."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class VideoNotWatchedError(StaffPortalError):
    """Training completion attempted before enough of the video was watched."""

    code: str = "VIDEO_NOT_WATCHED"

    def __init__(self, module_id: str, watched_percentage: float, required: float):
        self.module_id = module_id
        self.watched_percentage = watched_percentage
        self.required = required
        super().__init__(
            f"Please watch at least {required:g}% of the video before "
            f"completing the training (watched {watched_percentage:.0f}%)"
        )


class DocumentInUseError(StaffPortalError):
    """Document deletion blocked because progress rows reference it."""

    code: str = "DOCUMENT_IN_USE"

    def __init__(self, document_id: str, progress_count: int):
        self.document_id = document_id
        self.progress_count = progress_count
        super().__init__(
            f"Document {document_id} has {progress_count} progress record(s) "
            "and cannot be deleted"
        )


class ImmutabilityViolationError(StaffPortalError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
