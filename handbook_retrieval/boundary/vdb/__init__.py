"""
Vector database boundary layer.

Provides the VectorStore contract and its backends:
- LocalVectorStore: JSON files with brute-force cosine search
- S3VectorsStore: Amazon S3 Vectors with native query and brute-force fallback
- get_vector_store (vector_store_factory): picks one backend from settings

Dependencies: boto3, numpy
System role: Vector store adapters for handbook retrieval
"""

from handbook_retrieval.boundary.vdb.base import VectorStore
from handbook_retrieval.boundary.vdb.vector_schemas import (
    CollectionStats,
    QueryMatch,
    VectorRecord,
)

__all__ = [
    "VectorStore",
    "VectorRecord",
    "QueryMatch",
    "CollectionStats",
]
