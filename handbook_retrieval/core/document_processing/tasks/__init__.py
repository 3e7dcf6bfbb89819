"""
Task modules for document processing.

Exports: ChunkingTask, validate_chunk_options, EmbeddingTask, EmbeddingCache
"""

from .chunking_task import ChunkingTask, validate_chunk_options
from .embedding_task import EmbeddingCache, EmbeddingTask

__all__ = [
    "ChunkingTask",
    "validate_chunk_options",
    "EmbeddingTask",
    "EmbeddingCache",
]
