"""
Module: staff_portal.db.upsert
Responsibility: Dialect-aware INSERT ... ON CONFLICT builder.  This is the
    only write primitive the submission lifecycle uses for draft and submit,
    and the one the assignment manager uses for idempotent inserts.
Architecture position: Kernel > DB.

Invariants enforced:
    - At most one row per unique key: the conflict target is always a
      storage-level unique constraint, so concurrent writers cannot produce
      duplicates.
    - Conditional update: ``where`` restricts which existing rows may be
      overwritten.  A conflicting row that fails the predicate is left
      untouched and the statement reports zero affected rows.
"""

from typing import Any, Mapping, Sequence

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement


def _dialect_insert(session: Session, table: Table):
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"ON CONFLICT upsert not supported for dialect '{name}'")


def upsert(
    session: Session,
    table: Table,
    values: Mapping[str, Any],
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
    where: ColumnElement[bool] | None = None,
) -> int:
    """
    Insert ``values`` or update ``update_columns`` on the existing row.

    Args:
        session: Active session; the statement runs in its transaction.
        table: Target table.
        values: Full row for the insert branch.
        conflict_columns: Columns of the unique constraint to conflict on.
        update_columns: Columns copied from the proposed row on conflict.
        where: Optional predicate over the existing row gating the update.

    Returns:
        Number of rows inserted or updated (0 when ``where`` rejected the
        existing row).
    """
    stmt = _dialect_insert(session, table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={col: stmt.excluded[col] for col in update_columns},
        where=where,
    )
    return session.execute(stmt).rowcount


def insert_ignore(
    session: Session,
    table: Table,
    rows: Sequence[Mapping[str, Any]],
    conflict_columns: Sequence[str],
) -> int:
    """
    Insert ``rows``, silently skipping any that hit the unique constraint.

    Returns:
        Number of rows actually inserted.
    """
    if not rows:
        return 0
    inserted = 0
    for row in rows:
        stmt = (
            _dialect_insert(session, table)
            .values(**row)
            .on_conflict_do_nothing(index_elements=list(conflict_columns))
        )
        inserted += session.execute(stmt).rowcount
    return inserted
