"""Configuration constants.

Values here are not user-configurable. For configurable values, see models.py.
"""

SEARCH_MAX_LIMIT = 50
"""Maximum results for a single search."""

PREVIEW_CHARS = 200
"""Characters of chunk text shown per search hit in the CLI."""

STORE_FILENAME = "vector-index-v1.sqlite3"
"""Vector store file inside the project's .ultra-mcp directory."""

SCHEMA_VERSION = 1
"""Version recorded in store_meta when a store is created."""

KNOWN_EMBEDDING_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "text-embedding-004": 768,
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
}
"""Output dimension of the embedding models ultravec knows about."""
