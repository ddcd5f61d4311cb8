"""Shared httpx plumbing for hosted embedding providers.

Retries rate limits (429), server errors (5xx) and transport failures with
exponential backoff, honouring Retry-After when the provider sends it.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from ultravec.core.errors import EmbeddingProviderError
from ultravec.embeddings.base import EmbeddingClient

log = structlog.get_logger()

DEFAULT_TIMEOUT_SEC = 60.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 0.5
DEFAULT_RETRY_MAX_DELAY = 8.0


def _is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


def _error_message(response: httpx.Response) -> str:
    """Best-effort provider error text from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.text[:500] or response.reason_phrase


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HttpEmbeddingClient(EmbeddingClient):
    """Embedding client backed by an httpx.Client."""

    def __init__(
        self,
        model: str,
        dimension: int,
        *,
        base_url: str,
        headers: dict[str, str],
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(model, dimension)
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_sec,
            transport=transport,
        )

    def _post(
        self, path: str, payload: dict[str, Any], params: dict[str, str] | None = None
    ) -> Any:
        """POST JSON and return the decoded body, retrying transient failures."""
        for attempt in range(self._max_retries + 1):  # +1 for initial attempt
            last_attempt = attempt >= self._max_retries
            delay = min(self._retry_base_delay * (2**attempt), self._retry_max_delay)
            try:
                response = self._http.post(path, json=payload, params=params)
            except httpx.TransportError as e:
                if last_attempt:
                    raise EmbeddingProviderError.request_failed(
                        self.name, str(e) or type(e).__name__, retryable=True
                    ) from e
                log.warning(
                    "embedding.transport_retry",
                    provider=self.name,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    delay_sec=delay,
                    error=str(e),
                )
                time.sleep(delay)
                continue

            if response.is_success:
                try:
                    return response.json()
                except ValueError as e:
                    raise EmbeddingProviderError.request_failed(
                        self.name, f"invalid JSON response: {e}", status=response.status_code
                    ) from e

            status = response.status_code
            if not _is_retryable_status(status) or last_attempt:
                raise EmbeddingProviderError.request_failed(
                    self.name,
                    _error_message(response),
                    retryable=_is_retryable_status(status),
                    status=status,
                )
            delay = _retry_after(response) or delay
            log.warning(
                "embedding.http_retry",
                provider=self.name,
                status=status,
                attempt=attempt + 1,
                max_retries=self._max_retries,
                delay_sec=delay,
            )
            time.sleep(delay)
        raise AssertionError("unreachable")

    def close(self) -> None:
        self._http.close()
