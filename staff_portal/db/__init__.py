"""Database layer - engine, base classes, types and the upsert primitive."""

from staff_portal.db.base import Base
from staff_portal.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from staff_portal.db.types import UTCDateTime, UUIDString, as_utc
from staff_portal.db.upsert import insert_ignore, upsert

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UTCDateTime",
    "as_utc",
    "upsert",
    "insert_ignore",
]
