"""Project vector store: chunk rows in SQLite plus an optional KNN index.

The store lives at <project>/.ultra-mcp/vector-index-v1.sqlite3. Rows are
written to vector_chunks; when the sqlite-vec extension loads, the same
vectors are mirrored into the vec_idx virtual table (cosine metric) in the
same transaction. Which of the two search strategies a store can serve is
probed once per open and exposed as ``backend``.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import structlog
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from ultravec.config.constants import SCHEMA_VERSION, STORE_FILENAME
from ultravec.core.errors import AcceleratedIndexUnavailable, StoreError
from ultravec.core.excludes import STORE_DIRNAME
from ultravec.index._internal.db.codec import decode_vector, encode_vector
from ultravec.index._internal.db.database import BulkWriter, Database
from ultravec.index.models import SearchBackend, StoreMeta, VectorChunk

if TYPE_CHECKING:
    from ultravec.config.models import UltravecConfig

log = structlog.get_logger()

VEC_TABLE = "vec_idx"

_META_DIMENSION = "dimension"
_META_SCHEMA_VERSION = "schema_version"
_META_VEC_DIMENSION = "vec_dimension"
_META_VEC_DIRTY = "vec_dirty"
# Set once any all-zero embedding is written; reset by clear()
_META_ZERO_NORM = "zero_norm_rows"

_UPDATE_COLUMNS = ["relpath", "chunk", "hash", "mtime_ms", "embedding", "created_at"]


def store_path(project_path: Path) -> Path:
    return project_path / STORE_DIRNAME / STORE_FILENAME


def now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True, slots=True)
class Neighbor:
    """A stored chunk and its cosine distance to a query."""

    chunk_id: str
    relpath: str
    chunk: str
    distance: float


class VectorStore:
    """Persistent chunk/embedding store for one project.

    Usage::

        with VectorStore.open(project, dimension=client.dimension) as store:
            store.upsert_many(rows)
            hits = store.nearest(query_vector, 10)
    """

    def __init__(
        self,
        db_path: Path,
        *,
        dimension: int | None = None,
        accelerated: bool = True,
        busy_timeout_ms: int = 30000,
    ) -> None:
        self.db_path = db_path
        self.dimension: int | None = None
        self.backend = SearchBackend.BRUTE_FORCE_ONLY
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = Database(
                db_path,
                load_vec_extension=accelerated,
                busy_timeout_ms=busy_timeout_ms,
            )
            self._db.create_all()
            self._init_meta()
            self.dimension = self._resolve_dimension(dimension)
            self.has_zero_norm_rows = self._get_meta(_META_ZERO_NORM) == "1"
        except StoreError:
            self._dispose_quietly()
            raise
        except (OSError, SQLAlchemyError) as e:
            self._dispose_quietly()
            raise StoreError.init_failed(str(db_path), str(e)) from e

        if accelerated:
            self.backend = self._probe_accelerated()
        else:
            log.debug("vector_store.accelerated_disabled", path=str(db_path))

    @classmethod
    def open(
        cls,
        project_path: Path,
        *,
        dimension: int | None = None,
        config: UltravecConfig | None = None,
    ) -> VectorStore:
        """Open (creating if needed) the store of a project."""
        accelerated = config.vector.accelerated_index if config else True
        busy_timeout_ms = config.database.busy_timeout_ms if config else 30000
        return cls(
            store_path(project_path),
            dimension=dimension,
            accelerated=accelerated,
            busy_timeout_ms=busy_timeout_ms,
        )

    def __enter__(self) -> VectorStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._db.dispose()

    def _dispose_quietly(self) -> None:
        db = getattr(self, "_db", None)
        if db is not None:
            db.dispose()

    # =========================================================================
    # Metadata
    # =========================================================================

    def _get_meta(self, key: str) -> str | None:
        with self._db.session() as session:
            row = session.get(StoreMeta, key)
            return row.value if row else None

    def _set_meta(self, writer: BulkWriter, key: str, value: str) -> None:
        writer.upsert_many(StoreMeta, [{"key": key, "value": value}], ["key"], ["value"])

    def _init_meta(self) -> None:
        if self._get_meta(_META_SCHEMA_VERSION) is None:
            with self._db.bulk_writer() as writer:
                self._set_meta(writer, _META_SCHEMA_VERSION, str(SCHEMA_VERSION))

    def _resolve_dimension(self, requested: int | None) -> int | None:
        stored_raw = self._get_meta(_META_DIMENSION)
        stored = int(stored_raw) if stored_raw is not None else None
        if requested is None or requested == stored:
            return stored
        if stored is not None and self.count() > 0:
            raise StoreError.dimension_mismatch(
                expected=stored, actual=requested, path=str(self.db_path)
            )
        # Empty store (new or cleared): adopt the caller's dimension
        with self._db.bulk_writer() as writer:
            self._set_meta(writer, _META_DIMENSION, str(requested))
        if stored is not None:
            log.info("vector_store.dimension_changed", old=stored, new=requested)
        return requested

    # =========================================================================
    # Accelerated index
    # =========================================================================

    def _probe_accelerated(self) -> SearchBackend:
        try:
            with self._db.engine.connect() as conn:
                if not self._db.vec_loaded:
                    raise AcceleratedIndexUnavailable.unavailable()
                conn.exec_driver_sql("SELECT vec_version()")
            if self.dimension is not None:
                self._ensure_vec_table(self.dimension)
        except (AcceleratedIndexUnavailable, SQLAlchemyError) as e:
            log.warning("vector_store.accelerated_index_unavailable", error=str(e))
            return SearchBackend.BRUTE_FORCE_ONLY
        log.debug("vector_store.accelerated_index_ready", path=str(self.db_path))
        return SearchBackend.ACCELERATED

    def _ensure_vec_table(self, dimension: int) -> None:
        """Create vec_idx for the dimension and bring it in line with vector_chunks."""
        vec_dim = self._get_meta(_META_VEC_DIMENSION)
        dirty = self._get_meta(_META_VEC_DIRTY) == "1"
        with self._db.bulk_writer() as writer:
            if vec_dim is not None and int(vec_dim) != dimension:
                writer.execute(f"DROP TABLE IF EXISTS {VEC_TABLE}")
            writer.execute(
                f"CREATE VIRTUAL TABLE IF NOT EXISTS {VEC_TABLE} USING vec0("
                f"chunk_id TEXT PRIMARY KEY, "
                f"embedding float[{dimension}] distance_metric=cosine)"
            )
            self._set_meta(writer, _META_VEC_DIMENSION, str(dimension))

        vec_count = self._db.fetch_all(f"SELECT count(*) FROM {VEC_TABLE}")[0][0]
        total = self.count()
        if dirty or vec_count != total:
            self._rebuild_vec_table(total)

    def _rebuild_vec_table(self, total: int) -> None:
        with self._db.bulk_writer() as writer:
            writer.delete_all(VEC_TABLE)
            writer.execute(
                f"INSERT INTO {VEC_TABLE}(chunk_id, embedding) "
                f"SELECT id, embedding FROM {VectorChunk.__tablename__}"
            )
            self._set_meta(writer, _META_VEC_DIRTY, "0")
        log.info("vector_store.accelerated_index_rebuilt", rows=total)

    def _write_vec(self, writer: BulkWriter, records: list[dict[str, object]]) -> None:
        ids = [{"chunk_id": r["id"]} for r in records]
        writer.execute(f"DELETE FROM {VEC_TABLE} WHERE chunk_id = :chunk_id", ids)
        writer.execute(
            f"INSERT INTO {VEC_TABLE}(chunk_id, embedding) VALUES (:chunk_id, :embedding)",
            [{"chunk_id": r["id"], "embedding": r["embedding"]} for r in records],
        )

    def _degrade(self, error: Exception) -> None:
        """Stop using vec_idx for this open; the next open rebuilds it."""
        log.warning("vector_store.accelerated_index_degraded", error=str(error))
        self.backend = SearchBackend.BRUTE_FORCE_ONLY
        try:
            with self._db.bulk_writer() as writer:
                self._set_meta(writer, _META_VEC_DIRTY, "1")
        except SQLAlchemyError as e:
            log.error("vector_store.mark_dirty_failed", error=str(e))

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert(self, row: VectorChunk) -> None:
        self.upsert_many([row])

    def upsert_many(self, rows: Iterable[VectorChunk]) -> int:
        """Insert or replace rows by id in one transaction. Returns rows written."""
        rows = list(rows)
        if not rows:
            return 0

        if self.dimension is None:
            first = len(rows[0].embedding) // 4
            try:
                self.dimension = self._resolve_dimension(first)
            except SQLAlchemyError as e:
                raise StoreError.write_failed(str(e), count=len(rows)) from e
            if self.backend is SearchBackend.ACCELERATED:
                try:
                    self._ensure_vec_table(first)
                except SQLAlchemyError as e:
                    self._degrade(e)
        for row in rows:
            actual = len(row.embedding) // 4
            if actual != self.dimension:
                raise StoreError.dimension_mismatch(
                    expected=self.dimension, actual=actual, chunk_id=row.id
                )

        records = [row.model_dump() for row in rows]
        zero_norm = any(not np.any(decode_vector(row.embedding)) for row in rows)
        try:
            self._write_records(
                records,
                accelerated=self.backend is SearchBackend.ACCELERATED,
                zero_norm=zero_norm,
            )
        except SQLAlchemyError as e:
            if self.backend is not SearchBackend.ACCELERATED:
                raise StoreError.write_failed(str(e), count=len(records)) from e
            self._degrade(e)
            try:
                self._write_records(records, accelerated=False, zero_norm=zero_norm)
            except SQLAlchemyError as retry_error:
                raise StoreError.write_failed(str(retry_error), count=len(records)) from retry_error
        if zero_norm:
            self.has_zero_norm_rows = True
        return len(records)

    def _write_records(
        self, records: list[dict[str, object]], *, accelerated: bool, zero_norm: bool
    ) -> None:
        with self._db.bulk_writer() as writer:
            writer.upsert_many(VectorChunk, records, ["id"], _UPDATE_COLUMNS)
            if accelerated:
                self._write_vec(writer, records)
            else:
                # vec_idx (if any) no longer mirrors vector_chunks, even when counts agree
                self._set_meta(writer, _META_VEC_DIRTY, "1")
            if zero_norm:
                self._set_meta(writer, _META_ZERO_NORM, "1")

    def clear(self) -> int:
        """Delete every row. Returns the number of chunk rows removed."""
        try:
            with self._db.bulk_writer() as writer:
                removed = writer.delete_all(VectorChunk.__tablename__)
                if self.backend is SearchBackend.ACCELERATED:
                    writer.delete_all(VEC_TABLE)
                else:
                    self._set_meta(writer, _META_VEC_DIRTY, "1")
                self._set_meta(writer, _META_ZERO_NORM, "0")
        except SQLAlchemyError as e:
            raise StoreError.clear_failed(str(e)) from e
        self.has_zero_norm_rows = False
        log.info("vector_store.cleared", path=str(self.db_path), removed=removed)
        return removed

    # =========================================================================
    # Reads
    # =========================================================================

    def count(self) -> int:
        """Number of stored chunks. Returns 0 (and logs) if the store is unreadable."""
        try:
            with self._db.session() as session:
                return int(session.exec(select(func.count()).select_from(VectorChunk)).one())
        except SQLAlchemyError as e:
            log.error("vector_store.count_failed", path=str(self.db_path), error=str(e))
            return 0

    def get_by_id(self, chunk_id: str) -> VectorChunk | None:
        try:
            with self._db.session() as session:
                return session.get(VectorChunk, chunk_id)
        except SQLAlchemyError as e:
            raise StoreError.read_failed(str(e)) from e

    def scan_all(self, batch_size: int = 500) -> Iterator[VectorChunk]:
        """Stream every row in id order, one page per short-lived session."""
        last_id: str | None = None
        while True:
            stmt = select(VectorChunk).order_by(col(VectorChunk.id)).limit(batch_size)
            if last_id is not None:
                stmt = stmt.where(col(VectorChunk.id) > last_id)
            try:
                with self._db.session() as session:
                    page = list(session.exec(stmt))
            except SQLAlchemyError as e:
                raise StoreError.read_failed(str(e)) from e
            yield from page
            if len(page) < batch_size:
                return
            last_id = page[-1].id

    def nearest(
        self, query: Sequence[float] | npt.NDArray[np.floating], limit: int
    ) -> list[Neighbor]:
        """KNN over vec_idx, ordered by ascending cosine distance.

        sqlite-vec has no cosine distance for zero-norm vectors, so a zero
        query or a store holding any zero embedding is refused here and the
        caller ranks by brute force instead.

        Raises:
            AcceleratedIndexUnavailable: The store has no usable native index,
                or cosine distance is undefined for the query or a stored row.
        """
        if self.backend is not SearchBackend.ACCELERATED:
            raise AcceleratedIndexUnavailable.unavailable()
        if limit <= 0:
            return []
        if not np.any(np.asarray(query, dtype=np.float32)):
            raise AcceleratedIndexUnavailable.zero_norm("query")
        if self.has_zero_norm_rows:
            raise AcceleratedIndexUnavailable.zero_norm("stored")
        sql = f"""
            WITH knn AS (
                SELECT chunk_id, distance
                FROM {VEC_TABLE}
                WHERE embedding MATCH :query AND k = :k
            )
            SELECT c.id, c.relpath, c.chunk, knn.distance
            FROM knn
            JOIN {VectorChunk.__tablename__} AS c ON c.id = knn.chunk_id
            ORDER BY knn.distance, c.id
        """
        try:
            rows = self._db.fetch_all(sql, {"query": encode_vector(query), "k": limit})
        except SQLAlchemyError as e:
            raise AcceleratedIndexUnavailable.query_failed(str(e)) from e
        # Stores written before zero_norm_rows was tracked can still yield NULL
        if any(r[3] is None or np.isnan(r[3]) for r in rows):
            raise AcceleratedIndexUnavailable.zero_norm("stored")
        return [
            Neighbor(chunk_id=r[0], relpath=r[1], chunk=r[2], distance=float(r[3])) for r in rows
        ]
