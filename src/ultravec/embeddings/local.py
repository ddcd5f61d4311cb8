"""Local embeddings via fastembed (ONNX, no network after the first download)."""

from __future__ import annotations

import os
from typing import Any

import structlog

from ultravec.core.errors import EmbeddingProviderError
from ultravec.embeddings.base import EmbeddingClient

log = structlog.get_logger()

LOCAL_EMBED_BATCH_SIZE = 32


class FastEmbedClient(EmbeddingClient):
    name = "local"

    def __init__(self, model: str, dimension: int) -> None:
        super().__init__(model, dimension)
        self._model: Any = None

    def _ensure_model(self) -> None:
        """Lazy-load the embedding model."""
        if self._model is not None:
            return

        try:
            from fastembed import TextEmbedding
        except ImportError as e:
            raise EmbeddingProviderError.request_failed(
                self.name, "fastembed is not installed; install ultravec[local]"
            ) from e

        threads = max(1, (os.cpu_count() or 2) // 2)
        self._model = TextEmbedding(model_name=self.model, threads=threads)
        log.info("local_embedding.model_loaded", model=self.model, threads=threads)

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        self._ensure_model()
        try:
            vectors = list(self._model.embed(texts, batch_size=LOCAL_EMBED_BATCH_SIZE))
        except Exception as e:  # noqa: BLE001
            raise EmbeddingProviderError.request_failed(self.name, str(e)) from e
        return [[float(x) for x in vec] for vec in vectors]

    def close(self) -> None:
        self._model = None
