"""Embedding providers behind a single EmbeddingClient interface."""

from ultravec.embeddings.azure import AzureEmbeddingClient
from ultravec.embeddings.base import EmbeddingClient, resolve_dimension
from ultravec.embeddings.factory import PROVIDERS, create_embedding_client, select_provider
from ultravec.embeddings.gemini import GeminiEmbeddingClient
from ultravec.embeddings.local import FastEmbedClient
from ultravec.embeddings.openai import OpenAIEmbeddingClient

__all__ = [
    "PROVIDERS",
    "AzureEmbeddingClient",
    "EmbeddingClient",
    "FastEmbedClient",
    "GeminiEmbeddingClient",
    "OpenAIEmbeddingClient",
    "create_embedding_client",
    "resolve_dimension",
    "select_provider",
]
