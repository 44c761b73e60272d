"""Database layer - engine, base classes, and immutability listeners."""

from storefront_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from storefront_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from storefront_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
