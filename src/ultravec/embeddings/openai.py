"""OpenAI embeddings (POST /embeddings)."""

from __future__ import annotations

from typing import Any

import httpx

from ultravec.core.errors import EmbeddingProviderError
from ultravec.embeddings.http import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_TIMEOUT_SEC,
    HttpEmbeddingClient,
)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


def parse_openai_embeddings(provider: str, body: Any) -> list[list[float]]:
    """Vectors from an OpenAI-format response, ordered by their "index" field."""
    try:
        data = sorted(body["data"], key=lambda item: item["index"])
        return [[float(x) for x in item["embedding"]] for item in data]
    except (KeyError, TypeError) as e:
        raise EmbeddingProviderError.request_failed(
            provider, f"unexpected response shape: {e!r}"
        ) from e


class OpenAIEmbeddingClient(HttpEmbeddingClient):
    name = "openai"
    max_batch = 2048

    def __init__(
        self,
        api_key: str,
        model: str,
        dimension: int,
        *,
        base_url: str | None = None,
        request_dimensions: bool = False,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            model,
            dimension,
            base_url=base_url or DEFAULT_OPENAI_BASE_URL,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout_sec=timeout_sec,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            transport=transport,
        )
        # text-embedding-3-* accept a shortened output size
        self._request_dimensions = request_dimensions

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        payload: dict[str, Any] = {
            "model": self.model,
            "input": texts,
            "encoding_format": "float",
        }
        if self._request_dimensions:
            payload["dimensions"] = self.dimension
        return parse_openai_embeddings(self.name, self._post("/embeddings", payload))
