"""Engine and unit-of-work helpers for the persistence layer."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from .monitoring import instrument_engine


class DatabaseNotConfiguredError(RuntimeError):
    """Raised when no database URL is available to build the engine."""


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write; take the write lock up front
    # so read-modify-write units serialize instead of racing.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:  # type: ignore[no-untyped-def]
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(settings: Settings) -> Engine:
    database_url = settings.database_url
    if not database_url:
        raise DatabaseNotConfiguredError("GODSAENG_DATABASE_URL must be configured before using the database.")

    kwargs: dict[str, object] = {
        "echo": settings.database_echo,
        "future": True,
        "pool_pre_ping": True,
    }

    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.lock_timeout_ms / 1000,
        }
    else:
        kwargs["pool_size"] = settings.database_pool_size
        kwargs["max_overflow"] = settings.database_max_overflow
        kwargs["isolation_level"] = "READ COMMITTED"

    engine = create_engine(database_url, **kwargs)
    if is_sqlite:
        _enable_sqlite_immediate_transactions(engine)
    return engine


def get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is None:
        settings = get_settings()
        _engine = _build_engine(settings)
        instrument_engine(_engine)
        _session_factory = sessionmaker(
            bind=_engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


def _apply_lock_timeout(session: Session) -> None:
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    timeout_ms = int(get_settings().lock_timeout_ms)
    session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))


@contextmanager
def session_scope(*, commit: bool = True) -> Generator[Session, None, None]:
    """Run one transaction; commit on success, roll back on any error.

    Closing the session in ``finally`` also rolls back whatever is still
    uncommitted, so an interrupted caller never leaves partial writes behind.
    """
    session = get_session_factory()()
    try:
        _apply_lock_timeout(session)
        yield session
        if commit:
            session.commit()
    except Exception:  # noqa: BLE001
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "DatabaseNotConfiguredError",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
