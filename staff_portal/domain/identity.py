"""
Identity and capabilities (``staff_portal.domain.identity``).

Responsibility
--------------
The narrow interface to the session collaborator and the role ->
capability policy.  Role strings are resolved to capabilities once, at the
``PortalActions`` boundary; kernel services never compare role literals.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects plus a Protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Protocol
from uuid import UUID

from staff_portal.exceptions import ForbiddenError, UnauthorizedError


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class Capability(str, Enum):
    # Staff self-service
    COMPLETE_DOCUMENTS = "complete_documents"
    ACKNOWLEDGE_HR_RECORDS = "acknowledge_hr_records"
    TAKE_TRAINING = "take_training"
    # Administration
    REVIEW_SUBMISSIONS = "review_submissions"
    MANAGE_DOCUMENTS = "manage_documents"
    ASSIGN_DOCUMENTS = "assign_documents"
    MANAGE_HR_RECORDS = "manage_hr_records"
    MANAGE_TRAINING = "manage_training"
    VIEW_REPORTS = "view_reports"


_STAFF_CAPABILITIES = frozenset({
    Capability.COMPLETE_DOCUMENTS,
    Capability.ACKNOWLEDGE_HR_RECORDS,
    Capability.TAKE_TRAINING,
})

DEFAULT_ROLE_CAPABILITIES: Mapping[Role, frozenset[Capability]] = {
    Role.STAFF: _STAFF_CAPABILITIES,
    Role.MANAGER: _STAFF_CAPABILITIES | {Capability.VIEW_REPORTS},
    Role.ADMIN: frozenset(Capability),
}


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated caller as reported by the session collaborator."""

    id: UUID
    role: Role


class IdentityProvider(Protocol):
    """Session lookup.  ``None`` means no authenticated session."""

    def current_user(self) -> CurrentUser | None: ...


@dataclass
class StaticIdentityProvider:
    """Identity provider holding a fixed user; used by scripts and tests."""

    user: CurrentUser | None = None

    def current_user(self) -> CurrentUser | None:
        return self.user


class CapabilityPolicy:
    """Maps roles to capabilities and checks them."""

    def __init__(
        self,
        role_capabilities: Mapping[Role, frozenset[Capability]] | None = None,
    ) -> None:
        self._role_capabilities = role_capabilities or DEFAULT_ROLE_CAPABILITIES

    def capabilities_of(self, user: CurrentUser) -> frozenset[Capability]:
        return self._role_capabilities.get(user.role, frozenset())

    def has(self, user: CurrentUser, capability: Capability) -> bool:
        return capability in self.capabilities_of(user)

    def require(
        self,
        user: CurrentUser | None,
        capability: Capability,
    ) -> CurrentUser:
        """Return ``user`` or raise UnauthorizedError / ForbiddenError."""
        if user is None:
            raise UnauthorizedError()
        if not self.has(user, capability):
            raise ForbiddenError(str(user.id), capability.value)
        return user
