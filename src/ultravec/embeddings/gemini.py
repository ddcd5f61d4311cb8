"""Google Gemini embeddings (embedContent / batchEmbedContents)."""

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

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiEmbeddingClient(HttpEmbeddingClient):
    name = "gemini"
    max_batch = 100

    def __init__(
        self,
        api_key: str,
        model: str,
        dimension: int,
        *,
        base_url: str | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            model,
            dimension,
            base_url=base_url or DEFAULT_GEMINI_BASE_URL,
            headers={"x-goog-api-key": api_key},
            timeout_sec=timeout_sec,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            transport=transport,
        )
        self._model_path = model if model.startswith("models/") else f"models/{model}"

    def _request(self, text: str) -> dict[str, Any]:
        return {"model": self._model_path, "content": {"parts": [{"text": text}]}}

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            if len(texts) == 1:
                body = self._post(f"/{self._model_path}:embedContent", self._request(texts[0]))
                return [[float(x) for x in body["embedding"]["values"]]]
            body = self._post(
                f"/{self._model_path}:batchEmbedContents",
                {"requests": [self._request(t) for t in texts]},
            )
            return [[float(x) for x in item["values"]] for item in body["embeddings"]]
        except (KeyError, TypeError) as e:
            raise EmbeddingProviderError.request_failed(
                self.name, f"unexpected response shape: {e!r}"
            ) from e
