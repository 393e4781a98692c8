"""Process-wide SQLAlchemy engine used by the app lifespan and health check.

Service functions take a ``Session`` from their caller; this module only owns
the engine built from ``Settings.database_url``.
"""
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from transaction_service.config import get_settings
from transaction_service.models.base import Base

_engine: Engine | None = None


def _connect_args(database_url: str) -> dict[str, object]:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    if not type(dbapi_connection).__module__.startswith("sqlite3"):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine() -> Engine:
    """Build the engine from settings on first use and return it."""

    global _engine
    if _engine is None:
        url = get_settings().database_url
        _engine = create_engine(url, future=True, connect_args=_connect_args(url))
    return _engine


def get_engine() -> Engine:
    return init_engine()


def create_all() -> None:
    """Create every table registered on ``Base.metadata``."""

    import transaction_service.models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def close_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


__all__ = ["init_engine", "get_engine", "create_all", "close_engine"]
