"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.

Dependencies: All config modules
System role: Central configuration aggregator for the engine
"""

from functools import lru_cache

from dotenv import load_dotenv

from handbook_retrieval.configs.base import BaseSettings
from handbook_retrieval.configs.chunking import ChunkingSettings
from handbook_retrieval.configs.embedding import EmbeddingSettings
from handbook_retrieval.configs.handbook import HandbookSettings
from handbook_retrieval.configs.tracking import TrackingSettings
from handbook_retrieval.configs.vector_store import VectorStoreSettings

load_dotenv()


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    vector_store: VectorStoreSettings = VectorStoreSettings()
    embedding: EmbeddingSettings = EmbeddingSettings()
    chunking: ChunkingSettings = ChunkingSettings()
    tracking: TrackingSettings = TrackingSettings()
    handbook: HandbookSettings = HandbookSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables are read once per process.

    Returns:
        Settings: Application settings instance

    Usage:
        from handbook_retrieval.configs import get_settings
        settings = get_settings()
    """
    return Settings()
