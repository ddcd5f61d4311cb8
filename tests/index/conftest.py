"""Shared fixtures for index tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from ultravec.config.models import UltravecConfig
from ultravec.core.errors import EmbeddingProviderError
from ultravec.embeddings.base import EmbeddingClient
from ultravec.index import VectorStore


class KeywordEmbeddingClient(EmbeddingClient):
    """Deterministic client: one axis per keyword, counted in the text.

    Text without any keyword embeds to a small constant on the last axis so
    no vector has zero norm.
    """

    name = "keyword"

    def __init__(self, keywords: list[str]) -> None:
        super().__init__("keyword-test", len(keywords) + 1)
        self.keywords = keywords
        self.calls: list[list[str]] = []
        self.fail_on_call: int | None = None

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise EmbeddingProviderError.request_failed(self.name, "simulated outage")
        return [self._vector(t) for t in texts]

    def _vector(self, text: str) -> list[float]:
        lowered = text.lower()
        counts = [float(lowered.count(k)) for k in self.keywords]
        return [*counts, 0.0 if any(counts) else 1.0]

    @property
    def embedded_texts(self) -> list[str]:
        return [t for call in self.calls for t in call]


class OneHotEmbeddingClient(EmbeddingClient):
    """Deterministic client: one axis per distinct text, in first-seen order.

    Equal texts embed identically and different texts are orthogonal, so a
    query equal to an indexed chunk matches it at similarity 1.0 exactly.
    """

    name = "one-hot"

    def __init__(self, dimension: int = 64) -> None:
        super().__init__("one-hot-test", dimension)
        self.axes: dict[str, int] = {}

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def _vector(self, text: str) -> list[float]:
        axis = self.axes.setdefault(text, len(self.axes))
        if axis >= self.dimension:
            raise EmbeddingProviderError.request_failed(self.name, "out of axes")
        vector = [0.0] * self.dimension
        vector[axis] = 1.0
        return vector


@pytest.fixture
def keyword_client() -> Callable[..., KeywordEmbeddingClient]:
    def make(*keywords: str) -> KeywordEmbeddingClient:
        return KeywordEmbeddingClient(list(keywords))

    return make


@pytest.fixture
def one_hot_client() -> OneHotEmbeddingClient:
    return OneHotEmbeddingClient()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def small_chunks_config() -> UltravecConfig:
    """Config with tiny non-overlapping chunks and brute-force search."""
    return UltravecConfig(
        vector={"chunk_size": 50, "chunk_overlap": 0, "accelerated_index": False},
    )


@pytest.fixture
def open_store(project: Path) -> Generator[Callable[..., VectorStore], None, None]:
    """Factory for stores on the project, closed at teardown."""
    opened: list[VectorStore] = []

    def make(dimension: int | None = None, *, accelerated: bool = False) -> VectorStore:
        config = UltravecConfig(vector={"accelerated_index": accelerated})
        store = VectorStore.open(project, dimension=dimension, config=config)
        opened.append(store)
        return store

    yield make
    for store in opened:
        store.close()
