"""
Embedding provider configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Embedding model, batching and cache configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Settings for the embedding provider and its local cache."""

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(
        default="models/gemini-embedding-001",
        description="Google Gemini embedding model ID",
    )
    dimension: int = Field(
        default=1536,
        description="Output dimensionality requested from the model",
    )
    max_batch_size: int = Field(
        default=100,
        description="Maximum number of texts sent in one provider request",
        ge=1,
    )
    max_cache_entries: int = Field(
        default=10_000,
        description="LRU cache capacity (text -> vector)",
        ge=0,
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to each provider batch request",
        gt=0,
    )
