"""Database utilities for the Godsaeng backend."""

from .session import (
    DatabaseNotConfiguredError,
    dispose_engine,
    get_engine,
    get_session_factory,
    session_scope,
)

__all__ = [
    "DatabaseNotConfiguredError",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
