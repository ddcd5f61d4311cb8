"""Tests for SearchEngine and brute-force ranking."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import numpy as np
import pytest

from ultravec.config.models import UltravecConfig
from ultravec.core.errors import AcceleratedIndexUnavailable, SearchError, StoreError
from ultravec.embeddings.base import EmbeddingClient
from ultravec.index import (
    SearchBackend,
    SearchEngine,
    VectorChunk,
    VectorStore,
    index_project,
    related_files,
    search_project,
)
from ultravec.index._internal.chunking import TextChunker, content_hash
from ultravec.index._internal.db.codec import encode_vector
from ultravec.index.search import brute_force_nearest, cosine_similarity

ClientFactory = Callable[..., Any]
StoreFactory = Callable[..., VectorStore]


def _row(chunk_id: str, vector: list[float], text: str | None = None) -> VectorChunk:
    text = text if text is not None else f"text of {chunk_id}"
    return VectorChunk(
        id=chunk_id,
        relpath=chunk_id.split("#", 1)[0],
        chunk=text,
        hash=content_hash(text),
        mtime_ms=1,
        embedding=encode_vector(vector),
        created_at=1,
    )


# Axis order follows keyword_client("alpha", "beta"): [alpha, beta, none]
ROWS = [
    _row("a.py#0", [2.0, 0.0, 0.0]),  # similarity to "alpha": 1.0
    _row("b.py#0", [1.0, 1.0, 0.0]),  # 0.7071
    _row("b.py#1", [3.0, 1.0, 0.0]),  # 0.9487
    _row("c.py#0", [0.0, 1.0, 0.0]),  # 0.0
    _row("d.py#0", [0.0, 0.0, 1.0]),  # 0.0
]


@pytest.fixture
def populated(open_store: StoreFactory) -> VectorStore:
    store = open_store(3)
    store.upsert_many(ROWS)
    return store


class TestCosineSimilarity:
    def test_identical_direction(self) -> None:
        assert cosine_similarity(np.array([1.0, 2.0]), np.array([2.0, 4.0])) == pytest.approx(1.0)

    def test_orthogonal(self) -> None:
        assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 3.0])) == 0.0

    def test_zero_norm_is_zero(self) -> None:
        assert cosine_similarity(np.array([0.0, 0.0]), np.array([1.0, 1.0])) == 0.0


class TestBruteForceNearest:
    def test_orders_by_distance_then_id(self) -> None:
        hits = brute_force_nearest(np.array([1.0, 0.0, 0.0]), ROWS, limit=10)

        assert [h.chunk_id for h in hits] == ["a.py#0", "b.py#1", "b.py#0", "c.py#0", "d.py#0"]
        assert hits[0].distance == pytest.approx(0.0, abs=1e-6)

    def test_limit(self) -> None:
        assert len(brute_force_nearest(np.array([1.0, 0.0, 0.0]), ROWS, limit=2)) == 2

    def test_ranks_at_stored_float32_precision(self) -> None:
        query = np.array([0.1, 0.2, 0.3])

        wide = brute_force_nearest(query, ROWS, limit=5)
        narrow = brute_force_nearest(query.astype(np.float32), ROWS, limit=5)

        assert [(n.chunk_id, n.distance) for n in wide] == [
            (n.chunk_id, n.distance) for n in narrow
        ]

    def test_zero_query_scores_every_row_at_zero(self) -> None:
        hits = brute_force_nearest(np.zeros(3), ROWS, limit=5)

        assert [h.chunk_id for h in hits] == [r.id for r in ROWS]
        assert {h.distance for h in hits} == {1.0}


class TestSearch:
    """SearchEngine.search on a brute-force store."""

    def test_results_above_threshold_in_similarity_order(
        self, populated: VectorStore, keyword_client: ClientFactory
    ) -> None:
        engine = SearchEngine(populated, keyword_client("alpha", "beta"))

        results = engine.search("alpha", limit=10, similarity_threshold=0.7)

        assert [r.chunk_id for r in results] == ["a.py#0", "b.py#1", "b.py#0"]
        assert results[0].similarity == pytest.approx(1.0, abs=1e-6)
        assert results[1].similarity == pytest.approx(3 / np.sqrt(10), abs=1e-5)
        assert results[2].similarity == pytest.approx(1 / np.sqrt(2), abs=1e-5)
        assert results[0].relpath == "a.py"
        assert results[0].chunk == "text of a.py#0"

    def test_threshold_filters(self, populated: VectorStore, keyword_client: ClientFactory) -> None:
        engine = SearchEngine(populated, keyword_client("alpha", "beta"))

        results = engine.search("alpha", similarity_threshold=0.95)

        assert [r.chunk_id for r in results] == ["a.py#0"]

    def test_zero_threshold_keeps_ties_in_id_order(
        self, populated: VectorStore, keyword_client: ClientFactory
    ) -> None:
        engine = SearchEngine(populated, keyword_client("alpha", "beta"))

        results = engine.search("alpha", limit=10, similarity_threshold=0.0)

        assert [r.chunk_id for r in results][-2:] == ["c.py#0", "d.py#0"]

    def test_limit_caps_results(self, populated: VectorStore, keyword_client: ClientFactory) -> None:
        engine = SearchEngine(populated, keyword_client("alpha", "beta"))

        assert len(engine.search("alpha", limit=1, similarity_threshold=0.0)) == 1

    def test_non_positive_limit_returns_nothing(
        self, populated: VectorStore, keyword_client: ClientFactory
    ) -> None:
        client = keyword_client("alpha", "beta")

        assert SearchEngine(populated, client).search("alpha", limit=0) == []
        assert client.calls == []

    def test_empty_store(self, open_store: StoreFactory, keyword_client: ClientFactory) -> None:
        engine = SearchEngine(open_store(3), keyword_client("alpha", "beta"))

        assert engine.search("alpha", similarity_threshold=0.0) == []

    def test_query_dimension_mismatch(
        self, populated: VectorStore, keyword_client: ClientFactory
    ) -> None:
        engine = SearchEngine(populated, keyword_client("alpha"))  # dimension 2

        with pytest.raises(SearchError) as exc_info:
            engine.search("alpha")

        assert exc_info.value.details == {"expected": 3, "actual": 2}


class TestRelatedFiles:
    def test_distinct_paths_in_rank_order(
        self, populated: VectorStore, keyword_client: ClientFactory
    ) -> None:
        engine = SearchEngine(populated, keyword_client("alpha", "beta"))

        assert engine.related_files("alpha", similarity_threshold=0.7) == ["a.py", "b.py"]

    def test_threshold_applies_before_dedupe(
        self, populated: VectorStore, keyword_client: ClientFactory
    ) -> None:
        engine = SearchEngine(populated, keyword_client("alpha", "beta"))

        assert engine.related_files("beta", similarity_threshold=0.9) == ["c.py"]


class TestBackendSelection:
    """Accelerated path and fallback."""

    def _mock_store(self) -> MagicMock:
        store = MagicMock(spec=VectorStore)
        store.dimension = 3
        store.backend = SearchBackend.ACCELERATED
        store.scan_all.return_value = iter(ROWS)
        return store

    def test_accelerated_failure_falls_back_to_scan(self, keyword_client: ClientFactory) -> None:
        store = self._mock_store()
        store.nearest.side_effect = AcceleratedIndexUnavailable.query_failed("vec0 missing")
        engine = SearchEngine(store, keyword_client("alpha", "beta"))

        results = engine.search("alpha", similarity_threshold=0.9)

        assert [r.chunk_id for r in results] == ["a.py#0", "b.py#1"]
        store.scan_all.assert_called_once()

    def test_accelerated_results_used_when_available(
        self, keyword_client: ClientFactory
    ) -> None:
        from ultravec.index._internal.db.store import Neighbor

        store = self._mock_store()
        store.nearest.return_value = [Neighbor("a.py#0", "a.py", "alpha", 0.0)]
        engine = SearchEngine(store, keyword_client("alpha", "beta"))

        results = engine.search("alpha")

        assert [r.chunk_id for r in results] == ["a.py#0"]
        store.scan_all.assert_not_called()

    def test_unreadable_store_is_search_error(self, keyword_client: ClientFactory) -> None:
        store = self._mock_store()
        store.backend = SearchBackend.BRUTE_FORCE_ONLY
        store.scan_all.side_effect = StoreError.read_failed("disk I/O error")
        engine = SearchEngine(store, keyword_client("alpha", "beta"))

        with pytest.raises(SearchError):
            engine.search("alpha")

    def test_accelerated_matches_brute_force(
        self, open_store: StoreFactory, keyword_client: ClientFactory
    ) -> None:
        store = open_store(3, accelerated=True)
        if store.backend is not SearchBackend.ACCELERATED:
            pytest.skip("sqlite-vec extension not loadable in this interpreter")
        store.upsert_many(ROWS)
        engine = SearchEngine(store, keyword_client("alpha", "beta"))

        accelerated = engine.search("alpha", limit=3, similarity_threshold=0.5)
        brute = brute_force_nearest(np.array([1.0, 0.0, 0.0]), ROWS, limit=3)

        assert [r.chunk_id for r in accelerated] == [n.chunk_id for n in brute]
        for result, neighbor in zip(accelerated, brute, strict=True):
            assert result.similarity == pytest.approx(1.0 - neighbor.distance, abs=1e-5)

    def test_zero_stored_vector_falls_back_to_brute_force(
        self, open_store: StoreFactory, keyword_client: ClientFactory
    ) -> None:
        store = open_store(3, accelerated=True)
        if store.backend is not SearchBackend.ACCELERATED:
            pytest.skip("sqlite-vec extension not loadable in this interpreter")
        rows = [*ROWS, _row("e.py#0", [0.0, 0.0, 0.0])]
        store.upsert_many(rows)
        engine = SearchEngine(store, keyword_client("alpha", "beta"))

        results = engine.search("alpha", limit=10, similarity_threshold=0.0)
        brute = brute_force_nearest(np.array([1.0, 0.0, 0.0]), rows, limit=10)

        assert [r.chunk_id for r in results] == [n.chunk_id for n in brute]
        assert results[-1].chunk_id == "e.py#0"
        assert results[-1].similarity == 0.0

    def test_zero_query_falls_back_to_brute_force(self, open_store: StoreFactory) -> None:
        store = open_store(3, accelerated=True)
        if store.backend is not SearchBackend.ACCELERATED:
            pytest.skip("sqlite-vec extension not loadable in this interpreter")
        store.upsert_many(ROWS)
        client = MagicMock(spec=EmbeddingClient)
        client.get_embedding.return_value = [0.0, 0.0, 0.0]

        results = SearchEngine(store, client).search("", limit=10, similarity_threshold=0.0)

        assert [r.chunk_id for r in results] == [r.id for r in ROWS]
        assert {r.similarity for r in results} == {0.0}


class TestProjectFunctions:
    """search_project / related_files open the store themselves."""

    def test_index_then_search(self, project: Path, keyword_client: ClientFactory) -> None:
        (project / "auth.py").write_text("def login(): check password password\n")
        (project / "math.py").write_text("def add(a, b): return a + b\n")
        config = UltravecConfig(vector={"accelerated_index": False})
        client = keyword_client("password", "add")
        index_project(project, client, config)

        results = search_project(project, "password", client, config, similarity_threshold=0.5)
        files = related_files(project, "add", client, config, similarity_threshold=0.5)

        assert [r.relpath for r in results] == ["auth.py"]
        assert files == ["math.py"]

    @pytest.mark.parametrize("accelerated", [False, True], ids=["brute_force", "accelerated"])
    def test_indexed_chunk_text_finds_itself(
        self, project: Path, one_hot_client: EmbeddingClient, accelerated: bool
    ) -> None:
        texts = {
            "auth.py": (
                "def login(user):\n    return check(user)\n"
                + " " * 70
                + "\ndef logout(user):\n    return forget(user)\n"
            ),
            "math.py": "def add(a, b):\n    return a + b\n\ndef mul(a, b):\n    return a * b\n",
        }
        for name, text in texts.items():
            (project / name).write_text(text)
        config = UltravecConfig(
            vector={"chunk_size": 50, "chunk_overlap": 0, "accelerated_index": accelerated}
        )
        with VectorStore.open(project, config=config) as existing:
            backend = existing.backend
        if accelerated and backend is not SearchBackend.ACCELERATED:
            pytest.skip("sqlite-vec extension not loadable in this interpreter")
        chunker = TextChunker(50, 0)
        chunks = {name: list(chunker.split(text)) for name, text in texts.items()}

        index_project(project, one_hot_client, config)

        with VectorStore.open(project, config=config) as store:
            assert store.count() == sum(len(c) for c in chunks.values())
            assert store.backend is backend
        target = chunks["auth.py"][1]
        results = search_project(project, target, one_hot_client, config, similarity_threshold=0.5)

        assert len(results) == 1
        assert results[0].chunk == target
        assert results[0].relpath == "auth.py"
        assert results[0].similarity == 1.0
