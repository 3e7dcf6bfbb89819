"""
Vector store factory for selecting between local files (dev) and S3 Vectors (prod).

Depends on the VECTOR_STORE_STORE_TYPE environment variable. Exactly one
backend instance is created at startup and injected into the services.

Dependencies: handbook_retrieval.boundary.vdb, handbook_retrieval.configs
System role: Vector store instantiation and selection
"""

import logging

from handbook_retrieval.boundary.vdb.base import VectorStore
from handbook_retrieval.boundary.vdb.local_vector_store import LocalVectorStore
from handbook_retrieval.boundary.vdb.s3_vectors_store import S3VectorsStore
from handbook_retrieval.configs import Settings, get_settings

logger = logging.getLogger(__name__)

LOCAL = "local"
S3 = "s3"


def get_vector_store(settings: Settings | None = None) -> VectorStore:
    """
    Factory function to get vector store based on environment configuration.

    Args:
        settings: Settings to use (defaults to get_settings())

    Returns:
        VectorStore: LocalVectorStore or S3VectorsStore

    Raises:
        ValueError: If VECTOR_STORE_STORE_TYPE is invalid
    """
    settings = settings or get_settings()
    store_type = settings.vector_store.store_type.lower()

    if store_type == LOCAL:
        logger.info(f"{__name__}:get_vector_store - Creating local vector store (dev mode)")
        return LocalVectorStore(
            data_dir=settings.vector_store.data_dir,
            default_dimension=settings.embedding.dimension,
            reserved_files=(settings.tracking.file_name,),
        )

    elif store_type == S3:
        logger.info(f"{__name__}:get_vector_store - Creating S3 Vectors store (production mode)")
        return S3VectorsStore(
            vectors_bucket=settings.vector_store.vectors_bucket,
            region=settings.vector_store.aws_region,
            default_dimension=settings.embedding.dimension,
            page_size=settings.vector_store.page_size,
        )

    else:
        raise ValueError(
            f"Invalid VECTOR_STORE_STORE_TYPE: {store_type}. "
            f"Must be '{LOCAL}' (dev) or '{S3}' (production)."
        )
