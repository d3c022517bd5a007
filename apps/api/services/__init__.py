"""Service layer exports."""

from .database import create_engine, create_session_factory, ensure_schema, ping, to_async_dsn

__all__ = [
    "create_engine",
    "create_session_factory",
    "ensure_schema",
    "ping",
    "to_async_dsn",
]
