"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (ULTRAVEC__SECTION__KEY)
3. Project YAML (.ultra-mcp/config.yaml)
4. Global YAML (~/.config/ultravec/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    ULTRAVEC__<SECTION>__<KEY>=<VALUE>

Examples:
    ULTRAVEC__LOGGING__LEVEL=DEBUG
    ULTRAVEC__VECTOR__CHUNK_SIZE=2000
    ULTRAVEC__VECTOR__DEFAULT_PROVIDER=local
    ULTRAVEC__PROVIDERS__OPENAI__API_KEY=sk-...
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ProviderName = Literal["openai", "azure", "gemini", "local"]

DEFAULT_FILE_PATTERNS: tuple[str, ...] = (
    "**/*.ts",
    "**/*.tsx",
    "**/*.js",
    "**/*.jsx",
    "**/*.py",
    "**/*.md",
    "**/*.mdx",
    "**/*.txt",
    "**/*.json",
    "**/*.yaml",
    "**/*.yml",
)


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        ULTRAVEC__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. The CLI prints its own progress, so logs stay quiet by default.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class EmbeddingModelConfig(BaseModel):
    """Embedding model name per provider."""

    openai: str = "text-embedding-3-small"
    azure: str = "text-embedding-3-small"
    gemini: str = "text-embedding-004"
    local: str = "BAAI/bge-small-en-v1.5"


class VectorConfig(BaseModel):
    """Chunking, batching and provider selection for the vector index.

    Env vars:
        ULTRAVEC__VECTOR__DEFAULT_PROVIDER: openai, azure, gemini or local
        ULTRAVEC__VECTOR__CHUNK_SIZE: Characters per chunk
        ULTRAVEC__VECTOR__CHUNK_OVERLAP: Characters shared by consecutive chunks
        ULTRAVEC__VECTOR__BATCH_SIZE: Files per embedding batch
        ULTRAVEC__VECTOR__ACCELERATED_INDEX: Use the sqlite-vec index when loadable
    """

    default_provider: ProviderName | None = Field(
        default=None,
        description="Embedding provider. When unset, the first provider with "
        "credentials wins (azure, then openai, then gemini).",
    )
    chunk_size: int = Field(
        default=1500,
        description="Maximum characters per chunk. "
        "TRADEOFF: Larger chunks give more context per hit but blur similarity.",
    )
    chunk_overlap: int = Field(
        default=200,
        description="Characters repeated between consecutive chunks. Must be below chunk_size.",
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Files per embedding request batch (1-50).",
    )
    file_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FILE_PATTERNS),
        description="Glob patterns (relative to the project root) of files to index.",
    )
    embedding_model: EmbeddingModelConfig = Field(default_factory=EmbeddingModelConfig)
    embedding_dimensions: int | None = Field(
        default=None,
        gt=0,
        description="Vector length for models whose dimension is not known in advance.",
    )
    accelerated_index: bool = Field(
        default=True,
        description="Use the sqlite-vec KNN index when the extension loads. "
        "Disable to force the brute-force cosine scan.",
    )

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"chunk_size must be positive, got {v}")
        return v

    @field_validator("chunk_overlap")
    @classmethod
    def validate_chunk_overlap(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"chunk_overlap must not be negative, got {v}")
        return v

    @model_validator(mode="after")
    def validate_overlap_below_size(self) -> "VectorConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self


class OpenAIProviderConfig(BaseModel):
    """OpenAI credentials. Falls back to OPENAI_API_KEY / OPENAI_BASE_URL."""

    api_key: str | None = None
    base_url: str | None = None


class AzureProviderConfig(BaseModel):
    """Azure OpenAI credentials.

    The resource name can also be derived from AZURE_BASE_URL or
    AZURE_ENDPOINT (https://<resource>.openai.azure.com).
    """

    api_key: str | None = None
    resource_name: str | None = None
    base_url: str | None = None
    api_version: str = "2024-02-01"


class GoogleProviderConfig(BaseModel):
    """Google Gemini credentials. Falls back to GOOGLE_API_KEY / GOOGLE_BASE_URL."""

    api_key: str | None = None
    base_url: str | None = None


class ProvidersConfig(BaseModel):
    """Embedding provider credentials and HTTP behaviour.

    Env vars:
        ULTRAVEC__PROVIDERS__OPENAI__API_KEY
        ULTRAVEC__PROVIDERS__AZURE__RESOURCE_NAME
        ULTRAVEC__PROVIDERS__TIMEOUT_SEC: Per-request HTTP timeout
        ULTRAVEC__PROVIDERS__MAX_RETRIES: Retries on 429/5xx
    """

    openai: OpenAIProviderConfig = Field(default_factory=OpenAIProviderConfig)
    azure: AzureProviderConfig = Field(default_factory=AzureProviderConfig)
    google: GoogleProviderConfig = Field(default_factory=GoogleProviderConfig)
    timeout_sec: float = Field(
        default=60.0,
        description="HTTP timeout per embedding request.",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for rate-limited or failed embedding requests (exponential backoff).",
    )
    retry_base_delay_sec: float = Field(
        default=0.5,
        description="Base delay between retries.",
    )


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        ULTRAVEC__INDEX__MAX_FILE_SIZE_MB: Skip files larger than this
    """

    max_file_size_mb: int = Field(
        default=10,
        description="Skip files larger than this (MB). "
        "RISK: Setting too high may cause memory issues with generated files.",
    )


class LimitsConfig(BaseModel):
    """Search defaults.

    These are DEFAULT values. See constants.py for hard maximums.

    Env vars:
        ULTRAVEC__LIMITS__SEARCH_DEFAULT: Default number of search results
        ULTRAVEC__LIMITS__SIMILARITY_THRESHOLD_DEFAULT: Default minimum similarity
    """

    search_default: int = Field(
        default=10,
        ge=1,
        description="Default search results.",
    )
    similarity_threshold_default: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Default minimum cosine similarity (0-1).",
    )


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        ULTRAVEC__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
    """

    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks.",
    )


class UltravecConfig(BaseModel):
    """Root configuration for ultravec.

    All settings can be configured via:
    1. Environment variables: ULTRAVEC__SECTION__KEY
    2. YAML config files (project or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    vector: VectorConfig = Field(default_factory=VectorConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
