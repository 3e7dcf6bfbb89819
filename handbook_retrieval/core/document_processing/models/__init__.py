"""
Models for document processing.

Exports: ChunkOptions, TextChunk, build_chunk_id, IngestResult, SearchResult, CorpusStats
"""

from .chunk import ChunkOptions, TextChunk, build_chunk_id
from .ingest_result import CorpusStats, IngestResult, SearchResult

__all__ = [
    "ChunkOptions",
    "TextChunk",
    "build_chunk_id",
    "IngestResult",
    "SearchResult",
    "CorpusStats",
]
