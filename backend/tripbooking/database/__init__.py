"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import DeclarativeMeta, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from ..core.config import settings

logger = logging.getLogger(__name__)

_POOL_KWARGS: dict[str, Any] = {
    "pool_pre_ping": True,
    # Reuse the most recently returned connection; it is the most likely to be healthy
    "pool_use_lifo": True,
    "pool_recycle": 300,
}


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(db_url: str) -> Engine:
    """Create an engine for ``db_url`` with pool logging attached."""
    if _is_sqlite(db_url):
        new_engine = create_engine(
            db_url, future=True, connect_args={"check_same_thread": False}
        )
    else:
        new_engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            future=True,
            connect_args={
                "connect_timeout": 5,
                "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
            },
            **_POOL_KWARGS,
        )
    _add_pool_events(new_engine)
    return new_engine


def _add_pool_events(target: Engine) -> None:
    @event.listens_for(target, "connect")
    def _on_connect(_dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    @event.listens_for(target, "checkout")
    def _on_checkout(_dbapi_connection: Any, _record: Any, _proxy: Any) -> None:
        logger.debug("Connection checked out from pool")

    @event.listens_for(target, "checkin")
    def _on_checkin(_dbapi_connection: Any, _record: Any) -> None:
        logger.debug("Connection returned to pool")

    @event.listens_for(target, "invalidate")
    def _on_invalidate(_dbapi_connection: Any, _record: Any, exception: Any) -> None:
        logger.warning(
            "Connection invalidated",
            extra={
                "event": "db_connection_invalidated",
                "exception": str(exception) if exception else "unknown",
            },
        )


engine: Engine = build_engine(settings.get_database_url())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


# Text fragments drivers emit when the server side of a connection has gone away.
_DISCONNECT_SNIPPETS = (
    "server closed the connection",
    "ssl connection has been closed unexpectedly",
    "connection refused",
    "could not connect to server",
    "terminating connection",
    "connection reset by peer",
    "connection already closed",
)


def is_disconnect_error(exc: BaseException) -> bool:
    """True when ``exc`` indicates the underlying connection was lost."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    message = str(exc).lower()
    return any(snippet in message for snippet in _DISCONNECT_SNIPPETS)


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "is_disconnect_error",
]
