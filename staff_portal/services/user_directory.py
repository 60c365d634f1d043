"""
Read helpers over the users table needed by the workflow services.
"""

from __future__ import annotations

from uuid import UUID

from staff_portal.domain.dtos import UserInfo
from staff_portal.domain.identity import Role
from staff_portal.exceptions import NotFoundError
from staff_portal.models.user import User
from staff_portal.services.storage_gateway import StorageGateway

_NON_ADMIN_ROLES = [Role.STAFF.value, Role.MANAGER.value]


class UserDirectory:
    def __init__(self, gateway: StorageGateway):
        self._gateway = gateway

    def get(self, user_id: UUID) -> UserInfo | None:
        row = self._gateway.get(User, user_id)
        return row.to_dto() if row is not None else None

    def require(self, user_id: UUID) -> UserInfo:
        user = self.get(user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user

    def display_name(self, user_id: UUID) -> str | None:
        user = self.get(user_id)
        return user.display_name if user is not None else None

    def active_admin_ids(self) -> list[UUID]:
        rows = self._gateway.find(
            User, {"role": Role.ADMIN.value, "is_active": True}, order_by=["email"],
        )
        return [row.id for row in rows]

    def active_staff_ids(self) -> list[UUID]:
        """Active users who are not admins."""
        rows = self._gateway.find(
            User, {"role": _NON_ADMIN_ROLES, "is_active": True}, order_by=["email"],
        )
        return [row.id for row in rows]

    def active_ids_in_department(self, department: str) -> list[UUID]:
        rows = self._gateway.find(
            User, {"department": department, "is_active": True}, order_by=["email"],
        )
        return [row.id for row in rows]

    def set_onboarding_completed(self, user_id: UUID, completed: bool) -> None:
        row = self._gateway.get(User, user_id)
        if row is not None and row.onboarding_completed != completed:
            self._gateway.update(row, {"onboarding_completed": completed})
