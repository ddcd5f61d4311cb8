"""SQLite engine for the vector store.

One SQLAlchemy engine per store file. Each pooled connection is switched to
WAL with a busy timeout and, unless disabled, gets the sqlite-vec extension
loaded. Writes go through BulkWriter, which holds the write lock from its
first statement (BEGIN IMMEDIATE) so that readers never see half a batch.
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Generator, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import sqlite_vec
import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = structlog.get_logger()

DEFAULT_BUSY_TIMEOUT_MS = 30000
LOCK_RETRIES = 3
LOCK_RETRY_DELAY_SEC = 0.1
LOCK_RETRY_MAX_DELAY_SEC = 2.0

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA cache_size=-64000",
)

Params = dict[str, Any] | Sequence[dict[str, Any]] | None


def is_lock_contention(error: BaseException) -> bool:
    """True for SQLite's "database is locked" / "database is busy" failures."""
    message = str(error).lower()
    return "database is locked" in message or "database is busy" in message


def _backoff(retries: int, base: float, ceiling: float) -> Iterator[float]:
    for attempt in range(retries):
        yield min(base * (2**attempt), ceiling)


def _load_sqlite_vec(dbapi_conn: sqlite3.Connection) -> bool:
    try:
        dbapi_conn.enable_load_extension(True)
        try:
            sqlite_vec.load(dbapi_conn)
        finally:
            dbapi_conn.enable_load_extension(False)
    except (AttributeError, sqlite3.Error, OSError) as e:
        # AttributeError: interpreter built without extension loading
        logger.warning("sqlite_vec.load_failed", error=str(e))
        return False
    return True


class Database:
    """Engine, sessions and write transactions for one SQLite file.

    ``vec_loaded`` records whether sqlite-vec is usable on this engine's
    connections: None until the first connection is made, False as soon as
    any connection fails to load it.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        load_vec_extension: bool = True,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        lock_retries: int = LOCK_RETRIES,
    ) -> None:
        self.db_path = db_path
        self.vec_loaded: bool | None = None if load_vec_extension else False
        self._load_vec = load_vec_extension
        self._busy_timeout_ms = int(busy_timeout_ms)
        self._lock_retries = lock_retries
        self.engine: Engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        event.listen(self.engine, "connect", self._on_connect)

    def _on_connect(self, dbapi_conn: sqlite3.Connection, _record: Any) -> None:
        cursor = dbapi_conn.cursor()
        try:
            for pragma in _PRAGMAS:
                cursor.execute(pragma)
            cursor.execute(f"PRAGMA busy_timeout={self._busy_timeout_ms}")
        finally:
            cursor.close()
        if self._load_vec:
            loaded = _load_sqlite_vec(dbapi_conn)
            self.vec_loaded = loaded if self.vec_loaded is None else self.vec_loaded and loaded

    def create_all(self) -> None:
        SQLModel.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with Session(self.engine) as session:
            yield session

    @contextmanager
    def bulk_writer(self) -> Generator[BulkWriter, None, None]:
        """One write transaction: committed on normal exit, rolled back on error."""
        writer = self._acquire_writer()
        try:
            yield writer
        except BaseException:
            writer.conn.rollback()
            raise
        else:
            writer.conn.commit()
        finally:
            writer.conn.close()

    def _acquire_writer(self) -> BulkWriter:
        # busy_timeout covers most contention; this covers lock upgrades it cannot wait out
        delays = _backoff(self._lock_retries, LOCK_RETRY_DELAY_SEC, LOCK_RETRY_MAX_DELAY_SEC)
        attempt = 0
        while True:
            try:
                return BulkWriter(self.engine.connect())
            except OperationalError as e:
                delay = next(delays, None)
                if delay is None or not is_lock_contention(e):
                    raise
                attempt += 1
                logger.warning("sqlite_busy_retry", attempt=attempt, delay_sec=delay)
                time.sleep(delay)

    def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Run one read statement outside any write transaction."""
        with self.engine.connect() as conn:
            return list(conn.execute(text(sql), params or {}).fetchall())

    def dispose(self) -> None:
        self.engine.dispose()


class BulkWriter:
    """Core SQL statements sharing one BEGIN IMMEDIATE transaction."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn
        try:
            conn.execute(text("BEGIN IMMEDIATE"))
        except Exception:
            conn.close()
            raise

    def upsert_many(
        self,
        model_class: type[SQLModel],
        records: list[dict[str, Any]],
        conflict_columns: list[str],
        update_columns: list[str],
    ) -> int:
        """INSERT ... ON CONFLICT DO UPDATE for every record. Returns len(records)."""
        if not records:
            return 0
        table_name = model_class.__table__.name  # type: ignore[attr-defined]
        columns = list(records[0])
        assignments = ", ".join(f"{c} = excluded.{c}" for c in update_columns)
        statement = (
            f"INSERT INTO {table_name} ({', '.join(columns)}) "
            f"VALUES ({', '.join(':' + c for c in columns)}) "
            f"ON CONFLICT ({', '.join(conflict_columns)}) DO UPDATE SET {assignments}"
        )
        self.conn.execute(text(statement), records)
        return len(records)

    def execute(self, sql: str, params: Params = None) -> int:
        """Run a statement (executemany for a list of params). Returns rows affected."""
        return int(self.conn.execute(text(sql), params or {}).rowcount)

    def delete_all(self, table_name: str) -> int:
        return self.execute(f"DELETE FROM {table_name}")
