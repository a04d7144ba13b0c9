"""Database layer - engine, base classes, types, and immutability listeners."""

from payroll_kernel.db.base import UUID, Base, TrackedBase, UUIDString, as_utc
from payroll_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from payroll_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "as_utc",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
]
