"""Embedding client interface.

The indexer and search engine only talk to this interface; vendor clients
subclass it. get_embeddings() must preserve input order and return exactly
one vector per input text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ultravec.config.constants import KNOWN_EMBEDDING_DIMENSIONS
from ultravec.core.errors import ConfigError, EmbeddingProviderError


def resolve_dimension(model: str, override: int | None = None) -> int:
    """Vector length for a model, from the override or the known-model table."""
    if override is not None:
        return override
    try:
        return KNOWN_EMBEDDING_DIMENSIONS[model]
    except KeyError:
        raise ConfigError.missing_required("vector.embedding_dimensions") from None


class EmbeddingClient(ABC):
    """Base class for embedding providers."""

    name: str = "embedding"
    # Largest number of texts sent in one request; larger inputs are split
    max_batch: int = 256

    def __init__(self, model: str, dimension: int) -> None:
        self.model = model
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def get_embedding(self, text: str) -> list[float]:
        """Embed one text."""
        vectors = self._embed_batch([text])
        self._check_batch(1, vectors)
        return vectors[0]

    def get_embeddings(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed many texts, one vector per text, in input order."""
        texts = list(texts)
        if not texts:
            return []
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.max_batch):
            part = texts[start : start + self.max_batch]
            embedded = self._embed_batch(part)
            self._check_batch(len(part), embedded)
            vectors.extend(embedded)
        return vectors

    @abstractmethod
    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed at most max_batch texts."""

    def _check_batch(self, expected: int, vectors: list[list[float]]) -> None:
        if len(vectors) != expected:
            raise EmbeddingProviderError.batch_mismatch(self.name, expected, len(vectors))

    def close(self) -> None:  # noqa: B027
        """Release network or model resources. Safe to call twice."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, dimension={self.dimension})"
