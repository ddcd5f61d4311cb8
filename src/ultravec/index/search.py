"""Semantic search over a project's vector store.

The store's accelerated KNN index answers when available; otherwise (or when
the accelerated query fails) every row is streamed and ranked by cosine
similarity with numpy. Both paths rank by ascending cosine distance, break
ties by chunk id, and then apply the similarity threshold.

Brute force computes in float32, the precision sqlite-vec uses, so the two
paths agree to within float32 rounding (about 1e-6 in distance). Rows whose
distances differ by less than that may still swap places between paths.

Cosine distance is undefined for a zero-norm vector. The accelerated index
refuses such queries and stores, and brute force scores them at similarity 0.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable
from pathlib import Path

import numpy as np
import numpy.typing as npt
import structlog

from ultravec.config.models import UltravecConfig
from ultravec.core.errors import (
    AcceleratedIndexUnavailable,
    ErrorCode,
    SearchError,
    StoreError,
)
from ultravec.embeddings.base import EmbeddingClient
from ultravec.index._internal.db.codec import decode_vector
from ultravec.index._internal.db.store import Neighbor, VectorStore
from ultravec.index.models import SearchBackend, SearchResult, VectorChunk

log = structlog.get_logger()

DEFAULT_LIMIT = 10
DEFAULT_SIMILARITY_THRESHOLD = 0.7


def cosine_similarity(a: npt.NDArray[np.floating], b: npt.NDArray[np.floating]) -> float:
    """Dot product over norms; 0 when either vector has zero norm."""
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def brute_force_nearest(
    query: npt.NDArray[np.floating], rows: Iterable[VectorChunk], limit: int
) -> list[Neighbor]:
    """The limit rows closest to query by cosine distance, ascending.

    Rows arrive in id order, so equal distances keep id order.
    """
    q = np.asarray(query, dtype=np.float32)
    scored = (
        Neighbor(
            chunk_id=row.id,
            relpath=row.relpath,
            chunk=row.chunk,
            distance=1.0 - cosine_similarity(q, decode_vector(row.embedding)),
        )
        for row in rows
    )
    return heapq.nsmallest(limit, scored, key=lambda n: n.distance)


class SearchEngine:
    """Ranks a store's chunks against natural-language queries."""

    def __init__(self, store: VectorStore, client: EmbeddingClient) -> None:
        self.store = store
        self.client = client

    def _embed_query(self, query: str) -> npt.NDArray[np.float32]:
        vector = np.asarray(self.client.get_embedding(query), dtype=np.float32)
        expected = self.store.dimension
        if expected is not None and vector.shape[0] != expected:
            raise SearchError.dimension_mismatch(expected, int(vector.shape[0]))
        return vector

    def _nearest(self, query: npt.NDArray[np.float32], limit: int) -> list[Neighbor]:
        if self.store.backend is SearchBackend.ACCELERATED:
            try:
                return self.store.nearest(query, limit)
            except AcceleratedIndexUnavailable as e:
                if e.code == ErrorCode.STORE_ACCELERATED_ZERO_NORM:
                    log.debug("search.fallback", reason=e.message)
                else:
                    log.warning("search.fallback", reason=e.message)
        try:
            return brute_force_nearest(query, self.store.scan_all(), limit)
        except StoreError as e:
            raise SearchError.failed(e.message) from e

    def search(
        self,
        query: str,
        *,
        limit: int = DEFAULT_LIMIT,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> list[SearchResult]:
        """Top matches for query, most similar first, none below the threshold.

        Raises:
            SearchError: The store could not be read, or the query embedding
                does not have the store's dimension.
            EmbeddingProviderError: The query could not be embedded.
        """
        if limit <= 0:
            return []
        vector = self._embed_query(query)
        neighbors = self._nearest(vector, limit)

        results: list[SearchResult] = []
        for n in neighbors:
            similarity = 1.0 - n.distance
            if similarity < similarity_threshold:
                continue
            results.append(
                SearchResult(
                    relpath=n.relpath,
                    chunk=n.chunk,
                    similarity=similarity,
                    chunk_id=n.chunk_id,
                )
            )
        log.debug(
            "search.complete",
            backend=self.store.backend.value,
            candidates=len(neighbors),
            results=len(results),
        )
        return results

    def related_files(
        self,
        query: str,
        *,
        limit: int = DEFAULT_LIMIT,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> list[str]:
        """Distinct paths of search() results, in first-seen order."""
        seen: dict[str, None] = {}
        for result in self.search(query, limit=limit, similarity_threshold=similarity_threshold):
            seen.setdefault(result.relpath, None)
        return list(seen)


def _open_for_search(project_path: Path, config: UltravecConfig | None) -> VectorStore:
    # The recorded dimension is authoritative; the query is checked against it
    return VectorStore.open(project_path, config=config)


def search_project(
    project_path: Path,
    query: str,
    client: EmbeddingClient,
    config: UltravecConfig | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[SearchResult]:
    with _open_for_search(project_path, config) as store:
        return SearchEngine(store, client).search(
            query, limit=limit, similarity_threshold=similarity_threshold
        )


def related_files(
    project_path: Path,
    query: str,
    client: EmbeddingClient,
    config: UltravecConfig | None = None,
    *,
    limit: int = DEFAULT_LIMIT,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[str]:
    with _open_for_search(project_path, config) as store:
        return SearchEngine(store, client).related_files(
            query, limit=limit, similarity_threshold=similarity_threshold
        )
