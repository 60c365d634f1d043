"""
Module: staff_portal.db.types
Responsibility: Column types shared by every model.
Architecture position: Kernel > DB.  May be imported by models/, services/
    and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Timestamps are timezone-aware UTC on the Python side.  SQLite stores
      naive values, so UTCDateTime re-attaches UTC on load and normalises
      on bind.
    - Identifiers are ``uuid.UUID`` on the Python side and 36-character
      strings in storage, so the same schema works on SQLite and PostgreSQL.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator


def as_utc(value: datetime) -> datetime:
    # Naive values are taken to be UTC already.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime that always comes back timezone-aware UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value) if value is not None else None

    def process_result_value(self, value, dialect):
        return as_utc(value) if value is not None else None


class UUIDString(TypeDecorator):
    """UUID stored as String(36).  Accepts UUID or its string form on bind."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return str(value) if value is not None else None

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, UUID):
            return value
        return UUID(value)
