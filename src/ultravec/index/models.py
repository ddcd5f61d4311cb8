"""SQLModel tables and value types for the vector index.

Tables:
- vector_chunks: one row per (file, chunk index), text plus embedding BLOB
- store_meta: key/value facts about the store (embedding dimension, schema version)

The accelerated KNN index (vec_idx, a sqlite-vec virtual table) is not an
ORM model; it is created and maintained by VectorStore when the extension
is available.
"""

from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import Column, Index, LargeBinary
from sqlmodel import Field, SQLModel

from ultravec.index._internal.db.codec import decode_vector

# ============================================================================
# ENUMS
# ============================================================================


class SearchBackend(str, Enum):
    """Nearest-neighbour strategy a store can serve, probed once per open."""

    ACCELERATED = "accelerated"  # sqlite-vec KNN over vec_idx
    BRUTE_FORCE_ONLY = "brute_force_only"  # full scan with numpy cosine


# ============================================================================
# TABLES
# ============================================================================


class VectorChunk(SQLModel, table=True):
    """A chunk of a project file with its embedding.

    id is "<relpath>#<chunk index>". hash is the SHA-256 hex of chunk and,
    together with mtime_ms, decides whether a re-index must re-embed it.
    """

    __tablename__ = "vector_chunks"
    __table_args__ = (
        Index("relpath_idx", "relpath"),
        Index("hash_idx", "hash"),
    )

    id: str = Field(primary_key=True)
    relpath: str
    chunk: str
    hash: str
    mtime_ms: int
    embedding: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    created_at: int  # epoch milliseconds

    @property
    def vector(self) -> list[float]:
        return decode_vector(self.embedding).tolist()


class StoreMeta(SQLModel, table=True):
    """Store-level facts such as the embedding dimension."""

    __tablename__ = "store_meta"

    key: str = Field(primary_key=True)
    value: str


# ============================================================================
# RESULT TYPES
# ============================================================================


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One ranked match. similarity is 1 - cosine distance."""

    relpath: str
    chunk: str
    similarity: float
    chunk_id: str


@dataclass(frozen=True, slots=True)
class IndexResult:
    files_indexed: int
    chunks_created: int
    elapsed_ms: int


# ============================================================================
# INDEXING EVENTS
# ============================================================================


@dataclass(frozen=True, slots=True)
class ScanCompleted:
    files_total: int


@dataclass(frozen=True, slots=True)
class BatchCompleted:
    batch_number: int
    files_processed: int
    files_total: int
    chunks_written: int


@dataclass(frozen=True, slots=True)
class IndexCompleted:
    result: IndexResult
    skipped_files: list[str] = field(default_factory=list)


IndexEvent = ScanCompleted | BatchCompleted | IndexCompleted
