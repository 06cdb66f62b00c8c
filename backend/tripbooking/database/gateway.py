"""
Persistence gateway: the single owner of the connection pool.

All statement execution and transactional grouping goes through
``PersistenceGateway``. It binds one session (and therefore one connection)
for the lifetime of a unit of work, commits or rolls back deterministically,
and performs the one reconnect-and-retry cycle allowed after a dropped
connection. No other component disposes or replaces the pool.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.elements import TextClause

from ..core.config import settings
from ..core.exceptions import StorageUnavailableError
from . import is_disconnect_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

Statement = Union[str, TextClause]


class PersistenceGateway:
    """Executes statements and transactions with retry-on-disconnect."""

    def __init__(
        self,
        engine: Engine,
        session_factory: Optional[sessionmaker] = None,
        *,
        max_connect_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        backoff_cap_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory or sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        self.max_connect_attempts = max_connect_attempts or settings.db_connect_max_attempts
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.db_connect_backoff_seconds
        )
        self.backoff_cap_seconds = (
            backoff_cap_seconds
            if backoff_cap_seconds is not None
            else settings.db_connect_backoff_cap_seconds
        )
        self._sleep = sleep
        self.degraded = False

    @property
    def engine(self) -> Engine:
        return self._engine

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def reset_pool(self) -> None:
        """Drop every pooled connection so the next checkout reconnects."""
        logger.warning("Resetting database connection pool", extra={"event": "db_pool_reset"})
        self._engine.dispose()

    def backoff_delay(self, attempt: int) -> float:
        return min(self.backoff_seconds * (2 ** (attempt - 1)), self.backoff_cap_seconds)

    def ping(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except DBAPIError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    def connect_with_backoff(self) -> bool:
        """
        Establish the initial connection, retrying with exponential backoff.

        Returns False (and marks the gateway degraded) once attempts are exhausted;
        callers keep serving rather than refusing to start.
        """
        for attempt in range(1, self.max_connect_attempts + 1):
            if self.ping():
                if attempt > 1:
                    logger.info("Database connected after %d attempts", attempt)
                self.degraded = False
                return True

            if attempt < self.max_connect_attempts:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Database connection attempt failed, retrying",
                    extra={"event": "db_connect_retry", "attempt": attempt, "delay": delay},
                )
                self._sleep(delay)

        logger.error(
            "Database unreachable after %d attempts; starting in degraded mode",
            self.max_connect_attempts,
        )
        self.degraded = True
        return False

    # ------------------------------------------------------------------
    # Statements and units of work
    # ------------------------------------------------------------------

    def execute(
        self, statement: Statement, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run one parameterized statement in its own transaction and return its rows."""
        clause = text(statement) if isinstance(statement, str) else statement

        def _run() -> List[Dict[str, Any]]:
            with self._engine.begin() as conn:
                result = conn.execute(clause, dict(params or {}))
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings()]

        return self._run_with_reconnect("execute", _run)

    def with_transaction(self, fn: Callable[[Session], T], *, op_name: str = "transaction") -> T:
        """
        Run ``fn(session)`` as one atomic unit.

        Statements issued through the session commit together or are all
        rolled back, including when ``fn`` raises a business exception. ``fn``
        must only touch the session; it may be invoked a second time after a
        dropped connection.
        """

        def _run() -> T:
            session = self._session_factory()
            try:
                result = fn(session)
                session.commit()
                return result
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        return self._run_with_reconnect(op_name, _run)

    def _run_with_reconnect(self, op_name: str, func: Callable[[], T]) -> T:
        try:
            result = func()
            self.degraded = False
            return result
        except DBAPIError as exc:
            if not is_disconnect_error(exc):
                raise
            logger.warning(
                "Connection lost, reconnecting once",
                extra={"event": "db_retry", "op": op_name, "attempt": 1, "error": str(exc)},
            )
            self.reset_pool()

        try:
            result = func()
        except DBAPIError as exc:
            if not is_disconnect_error(exc):
                raise
            self.degraded = True
            logger.error(
                "Database unavailable after reconnect",
                extra={"event": "db_unavailable", "op": op_name, "error": str(exc)},
            )
            raise StorageUnavailableError(details={"operation": op_name}) from exc

        self.degraded = False
        return result


_default_gateway: Optional[PersistenceGateway] = None


def get_persistence_gateway() -> PersistenceGateway:
    """Process-wide gateway bound to the application engine."""
    global _default_gateway
    if _default_gateway is None:
        from . import SessionLocal, engine

        _default_gateway = PersistenceGateway(engine, SessionLocal)
    return _default_gateway
