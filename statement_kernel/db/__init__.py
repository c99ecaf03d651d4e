"""Database layer - engine, base classes, types, and immutability."""

from statement_kernel.db.base import Base, TenantScoped, UTCDateTime, UUIDString
from statement_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from statement_kernel.db.types import Money

__all__ = [
    "Base",
    "TenantScoped",
    "UTCDateTime",
    "UUIDString",
    "Money",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]
