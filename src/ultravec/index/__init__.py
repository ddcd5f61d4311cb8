"""Index module - file-based semantic indexing and retrieval.

Public API:
- Indexer / index_project: scan, chunk, embed and store a project
- SearchEngine / search_project / related_files: nearest-neighbour queries
- VectorStore: the per-project SQLite store

Internal implementations are in `ultravec.index._internal/`.
"""

from ultravec.index._internal.db.store import VectorStore, store_path
from ultravec.index.indexer import Indexer, index_project
from ultravec.index.models import (
    BatchCompleted,
    IndexCompleted,
    IndexEvent,
    IndexResult,
    ScanCompleted,
    SearchBackend,
    SearchResult,
    VectorChunk,
)
from ultravec.index.search import SearchEngine, related_files, search_project

__all__ = [
    "BatchCompleted",
    "IndexCompleted",
    "IndexEvent",
    "IndexResult",
    "Indexer",
    "ScanCompleted",
    "SearchBackend",
    "SearchEngine",
    "SearchResult",
    "VectorChunk",
    "VectorStore",
    "index_project",
    "related_files",
    "search_project",
    "store_path",
]
