"""Azure OpenAI embeddings.

Texts are sent one request at a time: the deployment endpoint rejects some
multi-input requests with a 400 that single inputs never trigger.
"""

from __future__ import annotations

import re

import httpx

from ultravec.embeddings.http import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_TIMEOUT_SEC,
    HttpEmbeddingClient,
)
from ultravec.embeddings.openai import parse_openai_embeddings

_RESOURCE_RE = re.compile(r"https://(.+?)\.openai\.azure\.com")

DEFAULT_API_VERSION = "2024-02-01"


def resource_from_url(url: str | None) -> str | None:
    """Extract "<name>" from https://<name>.openai.azure.com/..."""
    if not url:
        return None
    match = _RESOURCE_RE.match(url)
    return match.group(1) if match else None


class AzureEmbeddingClient(HttpEmbeddingClient):
    name = "azure"
    max_batch = 1

    def __init__(
        self,
        api_key: str,
        resource_name: str,
        model: str,
        dimension: int,
        *,
        api_version: str = DEFAULT_API_VERSION,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            model,
            dimension,
            base_url=f"https://{resource_name}.openai.azure.com/openai",
            headers={"api-key": api_key},
            timeout_sec=timeout_sec,
            max_retries=max_retries,
            retry_base_delay=retry_base_delay,
            transport=transport,
        )
        self.resource_name = resource_name
        self._api_version = api_version

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        # The deployment name is the configured model name
        body = self._post(
            f"/deployments/{self.model}/embeddings",
            {"input": texts[0]},
            params={"api-version": self._api_version},
        )
        return parse_openai_embeddings(self.name, body)
