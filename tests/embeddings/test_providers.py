"""Tests for hosted embedding clients against an httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable
from unittest.mock import patch

import httpx
import pytest

from ultravec.core.errors import ConfigError, ErrorCode, EmbeddingProviderError
from ultravec.embeddings import (
    AzureEmbeddingClient,
    EmbeddingClient,
    GeminiEmbeddingClient,
    OpenAIEmbeddingClient,
    resolve_dimension,
)
from ultravec.embeddings.azure import resource_from_url

Handler = Callable[[httpx.Request], httpx.Response]


class Recorder:
    """MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response | Handler) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        return response(request) if callable(response) else response

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


def _openai_body(vectors: list[list[float]], order: list[int] | None = None) -> dict:
    order = order or list(range(len(vectors)))
    return {"data": [{"index": i, "embedding": vectors[i]} for i in order]}


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("ultravec.embeddings.http.time.sleep") as sleep:
        yield sleep


class TestResolveDimension:
    def test_known_model(self) -> None:
        assert resolve_dimension("text-embedding-3-small") == 1536
        assert resolve_dimension("text-embedding-004") == 768

    def test_override_wins(self) -> None:
        assert resolve_dimension("text-embedding-3-large", 256) == 256

    def test_unknown_model_requires_override(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            resolve_dimension("my-custom-model")
        assert exc_info.value.code == ErrorCode.CONFIG_MISSING_REQUIRED


class TestBaseClient:
    """Batch splitting and count checks in EmbeddingClient."""

    class _Echo(EmbeddingClient):
        name = "echo"
        max_batch = 2

        def __init__(self, drop: bool = False) -> None:
            super().__init__("echo", 1)
            self.batches: list[list[str]] = []
            self.drop = drop

        def _embed_batch(self, texts: list[str]) -> list[list[float]]:
            self.batches.append(texts)
            vectors = [[float(len(t))] for t in texts]
            return vectors[:-1] if self.drop else vectors

    def test_splits_by_max_batch_and_keeps_order(self) -> None:
        client = self._Echo()

        vectors = client.get_embeddings(["a", "bb", "ccc", "dddd", "eeeee"])

        assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0]]
        assert client.batches == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]

    def test_empty_input_makes_no_request(self) -> None:
        client = self._Echo()

        assert client.get_embeddings([]) == []
        assert client.batches == []

    def test_count_mismatch_raises(self) -> None:
        with pytest.raises(EmbeddingProviderError) as exc_info:
            self._Echo(drop=True).get_embeddings(["a", "b"])
        assert exc_info.value.code == ErrorCode.EMBEDDING_BATCH_MISMATCH

    def test_repr(self) -> None:
        assert repr(self._Echo()) == "_Echo(model='echo', dimension=1)"


class TestOpenAIClient:
    def _client(self, recorder: Recorder, **kwargs) -> OpenAIEmbeddingClient:
        return OpenAIEmbeddingClient(
            "sk-test",
            "text-embedding-3-small",
            2,
            transport=httpx.MockTransport(recorder),
            **kwargs,
        )

    def test_request_shape_and_auth(self) -> None:
        recorder = Recorder(httpx.Response(200, json=_openai_body([[0.1, 0.2], [0.3, 0.4]])))

        vectors = self._client(recorder).get_embeddings(["one", "two"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.openai.com/v1/embeddings"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert recorder.bodies[0] == {
            "model": "text-embedding-3-small",
            "input": ["one", "two"],
            "encoding_format": "float",
        }

    def test_results_sorted_by_index(self) -> None:
        body = _openai_body([[1.0, 0.0], [0.0, 1.0]], order=[1, 0])
        recorder = Recorder(httpx.Response(200, json=body))

        assert self._client(recorder).get_embeddings(["a", "b"]) == [[1.0, 0.0], [0.0, 1.0]]

    def test_requests_dimensions_when_configured(self) -> None:
        recorder = Recorder(httpx.Response(200, json=_openai_body([[0.0, 1.0]])))

        self._client(recorder, request_dimensions=True).get_embedding("x")

        assert recorder.bodies[0]["dimensions"] == 2

    def test_custom_base_url(self) -> None:
        recorder = Recorder(httpx.Response(200, json=_openai_body([[0.0, 1.0]])))

        self._client(recorder, base_url="http://localhost:8080/v1/").get_embedding("x")

        assert str(recorder.requests[0].url) == "http://localhost:8080/v1/embeddings"

    def test_retries_rate_limit_then_succeeds(self, no_sleep) -> None:
        recorder = Recorder(
            httpx.Response(429, headers={"retry-after": "2"}, json={"error": {"message": "slow"}}),
            httpx.Response(200, json=_openai_body([[1.0, 1.0]])),
        )

        assert self._client(recorder).get_embedding("x") == [1.0, 1.0]
        assert len(recorder.requests) == 2
        no_sleep.assert_called_once_with(2.0)

    def test_retries_exhausted_on_server_error(self) -> None:
        recorder = Recorder(httpx.Response(503, text="unavailable"))

        with pytest.raises(EmbeddingProviderError) as exc_info:
            self._client(recorder, max_retries=2).get_embedding("x")

        assert len(recorder.requests) == 3
        assert exc_info.value.retryable is True
        assert exc_info.value.details["status"] == 503

    def test_client_error_not_retried(self) -> None:
        recorder = Recorder(
            httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})
        )

        with pytest.raises(EmbeddingProviderError) as exc_info:
            self._client(recorder).get_embedding("x")

        assert len(recorder.requests) == 1
        assert exc_info.value.retryable is False
        assert "Incorrect API key" in exc_info.value.message

    def test_transport_error_retried(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        recorder = Recorder(boom, httpx.Response(200, json=_openai_body([[0.5, 0.5]])))

        assert self._client(recorder).get_embedding("x") == [0.5, 0.5]

    def test_malformed_body(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(EmbeddingProviderError):
            self._client(recorder).get_embedding("x")


class TestAzureClient:
    def test_resource_from_url(self) -> None:
        assert resource_from_url("https://my-res.openai.azure.com/") == "my-res"
        assert resource_from_url("https://example.com") is None
        assert resource_from_url(None) is None

    def test_one_request_per_text(self) -> None:
        recorder = Recorder(
            httpx.Response(200, json=_openai_body([[1.0, 0.0]])),
            httpx.Response(200, json=_openai_body([[0.0, 1.0]])),
        )
        client = AzureEmbeddingClient(
            "az-key",
            "my-res",
            "embed-deploy",
            2,
            transport=httpx.MockTransport(recorder),
        )

        vectors = client.get_embeddings(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        assert recorder.bodies == [{"input": "first"}, {"input": "second"}]
        request = recorder.requests[0]
        assert request.url.host == "my-res.openai.azure.com"
        assert request.url.path == "/openai/deployments/embed-deploy/embeddings"
        assert request.url.params["api-version"] == "2024-02-01"
        assert request.headers["api-key"] == "az-key"


class TestGeminiClient:
    def _client(self, recorder: Recorder) -> GeminiEmbeddingClient:
        return GeminiEmbeddingClient(
            "g-key", "text-embedding-004", 2, transport=httpx.MockTransport(recorder)
        )

    def test_single_text_uses_embed_content(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"embedding": {"values": [0.1, 0.9]}}))

        assert self._client(recorder).get_embedding("hello") == [0.1, 0.9]

        request = recorder.requests[0]
        assert request.url.path == "/v1beta/models/text-embedding-004:embedContent"
        assert request.headers["x-goog-api-key"] == "g-key"
        assert recorder.bodies[0] == {
            "model": "models/text-embedding-004",
            "content": {"parts": [{"text": "hello"}]},
        }

    def test_many_texts_use_batch_endpoint(self) -> None:
        recorder = Recorder(
            httpx.Response(
                200, json={"embeddings": [{"values": [1.0, 0.0]}, {"values": [0.0, 1.0]}]}
            )
        )

        vectors = self._client(recorder).get_embeddings(["a", "b"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        assert recorder.requests[0].url.path.endswith(":batchEmbedContents")
        assert [r["content"]["parts"][0]["text"] for r in recorder.bodies[0]["requests"]] == [
            "a",
            "b",
        ]

    def test_wrong_count_raises_batch_mismatch(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"embeddings": [{"values": [1.0, 0.0]}]}))

        with pytest.raises(EmbeddingProviderError) as exc_info:
            self._client(recorder).get_embeddings(["a", "b"])

        assert exc_info.value.code == ErrorCode.EMBEDDING_BATCH_MISMATCH
