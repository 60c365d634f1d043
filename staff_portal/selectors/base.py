"""
Module: staff_portal.selectors.base
Responsibility: Shared plumbing for the read side -- admin dashboards, staff
    progress views and reports.
Architecture position: Kernel > Selectors.  May import from db/, domain/
    and models/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - Selectors return DTOs or frozen report rows, not ORM instances.
    - The caller owns the session and its transaction scope.
"""

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select
from sqlalchemy.orm import Session

from staff_portal.db.base import Base

RowModel = TypeVar("RowModel", bound=Base)


class BaseSelector(Generic[RowModel]):
    def __init__(self, session: Session):
        self.session = session

    def _all(self, stmt: Select) -> Sequence[Any]:
        """ORM entities for a single-entity select."""
        return self.session.execute(stmt).scalars().unique().all()

    def _scalar(self, stmt: Select) -> Any:
        return self.session.execute(stmt).scalar_one()

    def _count(self, stmt: Select) -> int:
        return int(self._scalar(stmt) or 0)
