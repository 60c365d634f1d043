"""
Module: staff_portal.models.user
Responsibility: ORM persistence for portal users.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Account management (sign-up, password, profile edits) belongs to the
identity collaborator.  The kernel reads users to find admins, enumerate
active staff and build display names, and writes only
``onboarding_completed``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from staff_portal.db.base import Base
from staff_portal.domain.dtos import UserInfo
from staff_portal.domain.identity import Role


class User(Base):
    """A staff member, manager or admin."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'manager', 'staff')",
            name="ck_users_valid_role",
        ),
        Index("ix_users_role_active", "role", "is_active"),
        Index("ix_users_department", "department"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.STAFF.value)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    onboarding_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"

    def to_dto(self) -> UserInfo:
        return UserInfo(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            role=Role(self.role),
            department=self.department,
            is_active=self.is_active,
            onboarding_completed=self.onboarding_completed,
        )
