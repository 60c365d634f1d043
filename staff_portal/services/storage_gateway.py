"""
StorageGateway -- generic record store over the ORM session.

Responsibility:
    The one place services turn a filter description into a query.
    Filters are plain mappings of column name to predicate value:

        value          -> column == value
        None           -> column IS NULL
        NOT_NULL       -> column IS NOT NULL
        list/tuple/set -> column IN (...)

    Ordering is a sequence of column names; a leading ``-`` means
    descending (``"-completed_at"``).

Architecture position:
    Kernel > Services.  Used by every workflow service and selector.

Invariants enforced:
    - Flush-only: insert/update/delete flush within the caller's
      transaction and never commit.
    - Unknown column names raise ``AttributeError`` at query build time;
      nothing is interpolated into SQL text.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence, TypeVar

from sqlalchemy import and_, delete as sa_delete, func, select, update as sa_update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from staff_portal.db.base import Base
from staff_portal.db.upsert import insert_ignore, upsert

M = TypeVar("M", bound=Base)


class _NotNull:
    def __repr__(self) -> str:
        return "NOT_NULL"


NOT_NULL = _NotNull()

Filters = Mapping[str, Any]


def _column(model: type[Base], name: str):
    column = getattr(model, name, None)
    if column is None:
        raise AttributeError(f"{model.__name__} has no column '{name}'")
    return column


def build_predicates(model: type[Base], filters: Filters | None) -> list[ColumnElement[bool]]:
    predicates: list[ColumnElement[bool]] = []
    for name, value in (filters or {}).items():
        column = _column(model, name)
        if value is NOT_NULL:
            predicates.append(column.is_not(None))
        elif value is None:
            predicates.append(column.is_(None))
        elif isinstance(value, (list, tuple, set, frozenset)):
            predicates.append(column.in_(list(value)))
        else:
            predicates.append(column == value)
    return predicates


def _ordering(model: type[Base], order_by: Sequence[str] | None) -> list[Any]:
    clauses = []
    for key in order_by or ():
        if key.startswith("-"):
            clauses.append(_column(model, key[1:]).desc())
        else:
            clauses.append(_column(model, key).asc())
    return clauses


class StorageGateway:
    """Filter-driven CRUD over one session."""

    def __init__(self, session: Session):
        self.session = session

    # -- reads ---------------------------------------------------------

    def find(
        self,
        model: type[M],
        filters: Filters | None = None,
        order_by: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[M]:
        stmt = select(model).where(*build_predicates(model, filters))
        ordering = _ordering(model, order_by)
        if ordering:
            stmt = stmt.order_by(*ordering)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().unique())

    def find_one(self, model: type[M], filters: Filters) -> M | None:
        rows = self.find(model, filters, limit=2)
        if len(rows) > 1:
            raise ValueError(f"{model.__name__}: more than one row matches {dict(filters)!r}")
        return rows[0] if rows else None

    def get(self, model: type[M], entity_id: Any) -> M | None:
        return self.session.get(model, entity_id)

    def reload(self, model: type[M], filters: Filters) -> M | None:
        """Like find_one, but overwrites any stale identity-map state."""
        stmt = (
            select(model)
            .where(*build_predicates(model, filters))
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().unique().one_or_none()

    def count(self, model: type[M], filters: Filters | None = None) -> int:
        stmt = select(func.count()).select_from(model).where(
            *build_predicates(model, filters)
        )
        return int(self.session.execute(stmt).scalar_one())

    def max_value(self, model: type[M], column: str, filters: Filters | None = None) -> Any:
        stmt = select(func.max(_column(model, column))).where(
            *build_predicates(model, filters)
        )
        return self.session.execute(stmt).scalar_one()

    # -- writes --------------------------------------------------------

    def insert(self, model: type[M], values: Mapping[str, Any]) -> M:
        row = model(**values)
        self.session.add(row)
        self.session.flush()
        return row

    def update(self, row: M, patch: Mapping[str, Any]) -> M:
        for name, value in patch.items():
            _column(type(row), name)
            setattr(row, name, value)
        self.session.flush()
        return row

    def update_where(self, model: type[M], filters: Filters, patch: Mapping[str, Any]) -> int:
        """
        Compare-and-set: update rows matching ``filters`` in one statement.

        Returns the number of rows changed; 0 means the guard did not hold.
        """
        predicates = build_predicates(model, filters)
        if not predicates:
            raise ValueError("Refusing unfiltered update")
        for name in patch:
            _column(model, name)
        result = self.session.execute(
            sa_update(model)
            .where(*predicates)
            .values(**patch)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def delete(self, model: type[M], filters: Filters) -> int:
        """Bulk delete rows matching ``filters``; returns the row count."""
        predicates = build_predicates(model, filters)
        if not predicates:
            raise ValueError("Refusing unfiltered delete")
        result = self.session.execute(
            sa_delete(model).where(*predicates).execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def delete_row(self, row: M) -> None:
        """Delete one loaded row through the ORM so mapper events fire."""
        self.session.delete(row)
        self.session.flush()

    def upsert(
        self,
        model: type[M],
        values: Mapping[str, Any],
        conflict_columns: Sequence[str],
        update_columns: Sequence[str],
        only_if: Filters | None = None,
    ) -> int:
        """
        Atomic insert-or-update on a unique constraint.

        ``only_if`` filters the existing row; when it does not match, the row
        is left unchanged and 0 is returned.
        """
        predicates = build_predicates(model, only_if)
        where = and_(*predicates) if predicates else None
        return upsert(
            self.session,
            model.__table__,
            values,
            conflict_columns,
            update_columns,
            where=where,
        )

    def insert_ignore(
        self,
        model: type[M],
        rows: Sequence[Mapping[str, Any]],
        conflict_columns: Sequence[str],
    ) -> int:
        return insert_ignore(self.session, model.__table__, rows, conflict_columns)
