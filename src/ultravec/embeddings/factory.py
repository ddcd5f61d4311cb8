"""Build an EmbeddingClient from configuration.

Credentials come from the providers section of the config, falling back to
the conventional environment variables (OPENAI_API_KEY, AZURE_API_KEY,
AZURE_BASE_URL / AZURE_ENDPOINT, GOOGLE_API_KEY).
"""

from __future__ import annotations

import os
from collections.abc import Mapping

import httpx
import structlog

from ultravec.config.models import ProviderName, UltravecConfig
from ultravec.core.errors import EmbeddingProviderError
from ultravec.embeddings.azure import AzureEmbeddingClient, resource_from_url
from ultravec.embeddings.base import EmbeddingClient, resolve_dimension
from ultravec.embeddings.gemini import GeminiEmbeddingClient
from ultravec.embeddings.local import FastEmbedClient
from ultravec.embeddings.openai import OpenAIEmbeddingClient

log = structlog.get_logger()

PROVIDERS: tuple[str, ...] = ("openai", "azure", "gemini", "local")


class _Credentials:
    """Config values with environment fallbacks."""

    def __init__(self, config: UltravecConfig, env: Mapping[str, str]) -> None:
        p = config.providers
        self.openai_key = p.openai.api_key or env.get("OPENAI_API_KEY")
        self.openai_base_url = p.openai.base_url or env.get("OPENAI_BASE_URL")
        self.azure_key = p.azure.api_key or env.get("AZURE_API_KEY")
        self.azure_resource = (
            p.azure.resource_name
            or resource_from_url(p.azure.base_url)
            or resource_from_url(env.get("AZURE_BASE_URL"))
            or resource_from_url(env.get("AZURE_ENDPOINT"))
        )
        self.google_key = p.google.api_key or env.get("GOOGLE_API_KEY")
        self.google_base_url = p.google.base_url or env.get("GOOGLE_BASE_URL")


def select_provider(
    config: UltravecConfig,
    provider: str | None = None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Pick the provider: explicit > configured default > first with credentials."""
    if provider:
        return provider
    if config.vector.default_provider:
        return config.vector.default_provider
    creds = _Credentials(config, os.environ if env is None else env)
    if creds.azure_key and creds.azure_resource:
        return "azure"
    if creds.openai_key:
        return "openai"
    if creds.google_key:
        return "gemini"
    raise EmbeddingProviderError.not_configured()


def create_embedding_client(
    config: UltravecConfig,
    provider: ProviderName | str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> EmbeddingClient:
    """Create the client for a provider (or the default one).

    Raises:
        EmbeddingProviderError: Unknown provider or missing credentials.
        ConfigError: Model dimension unknown and not configured.
    """
    env = os.environ if env is None else env
    name = select_provider(config, provider, env)
    if name not in PROVIDERS:
        raise EmbeddingProviderError.unsupported_provider(name)

    creds = _Credentials(config, env)
    vector = config.vector
    providers = config.providers
    model = getattr(vector.embedding_model, name)
    dimension = resolve_dimension(model, vector.embedding_dimensions)

    client: EmbeddingClient
    if name == "openai":
        if not creds.openai_key:
            raise EmbeddingProviderError.not_configured("openai")
        client = OpenAIEmbeddingClient(
            creds.openai_key,
            model,
            dimension,
            base_url=creds.openai_base_url,
            request_dimensions=vector.embedding_dimensions is not None,
            timeout_sec=providers.timeout_sec,
            max_retries=providers.max_retries,
            retry_base_delay=providers.retry_base_delay_sec,
            transport=transport,
        )
    elif name == "azure":
        if not creds.azure_key or not creds.azure_resource:
            raise EmbeddingProviderError.not_configured("azure")
        client = AzureEmbeddingClient(
            creds.azure_key,
            creds.azure_resource,
            model,
            dimension,
            api_version=providers.azure.api_version,
            timeout_sec=providers.timeout_sec,
            max_retries=providers.max_retries,
            retry_base_delay=providers.retry_base_delay_sec,
            transport=transport,
        )
    elif name == "gemini":
        if not creds.google_key:
            raise EmbeddingProviderError.not_configured("gemini")
        client = GeminiEmbeddingClient(
            creds.google_key,
            model,
            dimension,
            base_url=creds.google_base_url,
            timeout_sec=providers.timeout_sec,
            max_retries=providers.max_retries,
            retry_base_delay=providers.retry_base_delay_sec,
            transport=transport,
        )
    else:
        client = FastEmbedClient(model, dimension)

    log.debug("embedding.client_created", provider=name, model=model, dimension=dimension)
    return client
