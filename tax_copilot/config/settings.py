"""
Tax Copilot configuration.

Each section reads its own environment prefix (``CHROMA_``, ``RAG_``,
``STORAGE_``, ``API_``); model and logging keys are unprefixed. A local
``.env`` file is read as well.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Chat model configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Optional OpenAI-compatible endpoint",
    )
    chat_model: str = Field(
        default="gpt-4o",
        description="Chat model used for answer generation",
    )
    llm_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for answers",
    )
    llm_max_tokens: int = Field(
        default=2000,
        ge=1,
        le=128000,
        description="Upper bound on answer length in tokens",
    )

    @field_validator("chat_model")
    @classmethod
    def validate_chat_model(cls, v: str) -> str:
        """Reject blank model names."""
        if not v.strip():
            raise ValueError("chat_model must not be empty")
        return v.strip()


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    embedding_dimensions: int = Field(
        default=1536,
        ge=1,
        le=8192,
        description="Embedding vector length",
    )
    embedding_batch_size: int = Field(
        default=16,
        ge=1,
        le=2048,
        description="Texts sent per embedding request",
    )


class ChromaSettings(BaseSettings):
    """ChromaDB configuration."""

    model_config = SettingsConfigDict(env_prefix="CHROMA_")

    host: str = Field(
        default="localhost",
        description="ChromaDB host",
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="ChromaDB port",
    )
    collection: str = Field(
        default="tax-chunks",
        description="ChromaDB collection name",
    )
    in_memory: bool = Field(
        default=False,
        description="Keep chunks in an ephemeral in-process collection",
    )

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


class RagSettings(BaseSettings):
    """Chunking and retrieval configuration."""

    model_config = SettingsConfigDict(env_prefix="RAG_")

    chunk_size_chars: int = Field(
        default=3500,
        ge=10,
        le=100000,
        description="Target maximum characters per chunk",
    )
    chunk_overlap_chars: int = Field(
        default=400,
        ge=0,
        le=10000,
        description="Characters carried into the next chunk",
    )
    top_k: int = Field(
        default=12,
        ge=1,
        le=100,
        description="Number of candidates returned by search",
    )
    context_chunks: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Number of candidates passed to the model",
    )
    candidate_multiplier: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Vector candidates fetched per requested result",
    )
    semantic_weight: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Weight of vector ranking in hybrid fusion",
    )
    keyword_weight: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Weight of keyword ranking in hybrid fusion",
    )
    max_file_size_mb: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum upload size in MB",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "RagSettings":
        """Ensure overlap is below chunk size and context fits in top_k."""
        if self.chunk_overlap_chars >= self.chunk_size_chars:
            raise ValueError("chunk_overlap_chars must be less than chunk_size_chars")
        if self.context_chunks > self.top_k:
            raise ValueError("context_chunks must not exceed top_k")
        return self


class StorageSettings(BaseSettings):
    """Blob and database storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    blob_root: str = Field(
        default="./data/blobs",
        description="Directory holding uploaded documents",
    )
    database_path: str = Field(
        default="./data/tax_copilot.db",
        description="SQLite database file",
    )


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="API server port",
    )
    host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    cors_enabled: bool = Field(
        default=True,
        alias="CORS_ENABLED",
        description="Enable CORS",
    )
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        alias="CORS_ORIGINS",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log format",
    )
    debug: bool = Field(
        default=False,
        description="Return exception text in 500 responses",
    )


class Settings(BaseSettings):
    """All configuration sections, loaded together."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )

    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    chroma: ChromaSettings = Field(default_factory=ChromaSettings)
    rag: RagSettings = Field(default_factory=RagSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_api_key(self) -> "Settings":
        """Ensure an OpenAI API key is provided in production."""
        api_key = self.llm.openai_api_key.get_secret_value()
        if not api_key and self.environment == "production":
            raise ValueError("OPENAI_API_KEY is required in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_debug(self) -> bool:
        """Error responses include exception text."""
        return self.logging.debug or self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, loaded once. See ``reload_settings``."""
    return Settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()
