"""
Vector store configuration settings.

Selects the storage backend (local JSON files or Amazon S3 Vectors) and
holds the shared collection name plus default search parameters.

Dependencies: pydantic, pydantic_settings
System role: Vector storage configuration for handbook retrieval
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorStoreSettings(BaseSettings):
    """Vector store configuration (local files for dev, S3 Vectors for prod)."""

    model_config = SettingsConfigDict(
        env_prefix="VECTOR_STORE_",
        case_sensitive=False,
        extra="ignore",
    )

    store_type: str = Field(
        default="local",
        description="Vector store type: 'local' for JSON files, 's3' for S3 Vectors",
    )
    data_dir: str = Field(
        default="./embeddings",
        description="Directory holding one JSON file per collection (local mode)",
    )
    collection_name: str = Field(
        default="pm-handbook",
        description="Shared collection that every document is ingested into",
    )

    vectors_bucket: str = Field(
        default="handbook-retrieval-dev-vectors",
        description="S3 Vectors bucket name (s3 mode)",
    )
    aws_region: str = Field(default="ap-southeast-2", description="AWS region for S3 Vectors")
    page_size: int = Field(
        default=500,
        description="Page size for list_vectors / put_vectors batches",
    )

    top_k: int = Field(default=5, description="Number of top results to retrieve")
    similarity_threshold: float = Field(
        default=0.5,
        description="Minimum similarity score for retrieval (0.0-1.0)",
    )
