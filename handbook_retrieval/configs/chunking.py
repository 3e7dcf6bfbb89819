"""
Chunking configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Default chunk sizes for search-time and upload-time ingestion
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkingSettings(BaseSettings):
    """Settings for document chunking."""

    model_config = SettingsConfigDict(
        env_prefix="CHUNKING_",
        case_sensitive=False,
        extra="ignore",
    )

    max_size: int = Field(
        default=600,
        description="Maximum chunk size in characters",
    )
    overlap: int = Field(
        default=100,
        description="Overlap between consecutive chunks",
    )

    # Larger windows used for uploaded documents and the initial handbook
    upload_max_size: int = Field(default=4000, description="Chunk size for uploads")
    upload_overlap: int = Field(default=500, description="Chunk overlap for uploads")
