"""Database engine with WAL mode, serialized writers and snapshot readers.

This module provides:
- Database: Connection manager with WAL mode for concurrent access
- immediate_transaction: BEGIN IMMEDIATE writer sessions with busy retry
- read_snapshot: deferred read transactions so multi-table reads agree

Writers are serialized twice: an in-process lock keeps threads in this
process from contending, and BEGIN IMMEDIATE takes SQLite's RESERVED lock
up front so a writer never upgrades mid-transaction.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

# Retry configuration for SQLite busy handling
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 0.1  # 100ms base
DEFAULT_RETRY_MAX_DELAY = 2.0  # 2s max
DEFAULT_BUSY_TIMEOUT_MS = 30000


def _is_database_locked_error(error: Exception) -> bool:
    """Check if error is a SQLite database locked error."""
    error_str = str(error).lower()
    return "database is locked" in error_str or "database is busy" in error_str


class Database:
    """SQLite connection manager with WAL mode for concurrent access.

    Includes retry logic with exponential backoff for handling
    SQLite busy timeouts when a writer cannot take the RESERVED lock.
    """

    def __init__(
        self,
        db_path: Path,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.db_path = db_path
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._busy_timeout_ms = busy_timeout_ms
        self._write_lock = threading.RLock()
        self.engine = self._create_engine()

    def _create_engine(self) -> Engine:
        engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        busy_timeout_ms = self._busy_timeout_ms

        def _on_connect(dbapi_conn: Any, connection_record: Any) -> None:
            _configure_pragmas(dbapi_conn, connection_record, busy_timeout_ms)

        event.listen(engine, "connect", _on_connect)
        return engine

    def create_all(self) -> None:
        """Create all tables from SQLModel metadata."""
        SQLModel.metadata.create_all(self.engine)

    def dispose(self) -> None:
        """Close pooled connections."""
        self.engine.dispose()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """ORM session for single-statement reads.

        Objects stay usable after the session closes.
        """
        with Session(self.engine, expire_on_commit=False) as session:
            yield session

    @contextmanager
    def read_snapshot(self) -> Generator[Session, None, None]:
        """Session inside one deferred transaction.

        Every SELECT issued through it sees the same WAL snapshot, so a
        reader never observes one table before a writer's commit and another
        after it.
        """
        with Session(self.engine, expire_on_commit=False) as session:
            session.execute(text("BEGIN"))
            try:
                yield session
            finally:
                # Detach first so the rollback does not expire loaded rows
                session.expunge_all()
                session.rollback()

    @contextmanager
    def immediate_transaction(
        self,
        max_retries: int | None = None,
    ) -> Generator[Session, None, None]:
        """
        Session with BEGIN IMMEDIATE for serializable writes.

        Acquiring the RESERVED lock is retried with exponential backoff when
        SQLite reports the database as locked. The body itself runs once:
        it auto-commits on successful exit and rolls back on exception.

        Args:
            max_retries: Override default max retries (default: 3)
        """
        retries = max_retries if max_retries is not None else self._max_retries

        with self._write_lock, Session(self.engine, expire_on_commit=False) as session:
            for attempt in range(retries + 1):
                try:
                    session.execute(text("BEGIN IMMEDIATE"))
                    break
                except OperationalError as e:
                    session.rollback()
                    if not _is_database_locked_error(e) or attempt >= retries:
                        raise
                    delay = min(
                        self._retry_base_delay * (2**attempt),
                        self._retry_max_delay,
                    )
                    logger.warning(
                        "sqlite_busy_retry",
                        attempt=attempt + 1,
                        max_retries=retries,
                        delay_sec=delay,
                    )
                    time.sleep(delay)

            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def checkpoint(self, mode: str = "PASSIVE") -> None:
        """Run WAL checkpoint.

        Args:
            mode: PASSIVE (default), FULL, RESTART, or TRUNCATE
        """
        valid_modes = {"PASSIVE", "FULL", "RESTART", "TRUNCATE"}
        if mode.upper() not in valid_modes:
            raise ValueError(f"Invalid checkpoint mode: {mode}. Must be one of {valid_modes}")

        with self.engine.connect() as conn:
            conn.execute(text(f"PRAGMA wal_checkpoint({mode.upper()})"))
            logger.debug("wal_checkpoint_completed", mode=mode)


def _configure_pragmas(
    dbapi_conn: Any, _connection_record: Any, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
) -> None:
    """Configure SQLite for concurrent access and performance."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA cache_size=-64000")  # 64MB cache
    cursor.close()
