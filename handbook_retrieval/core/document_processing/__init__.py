"""
Document processing for ingestion and search.

Chunking and embedding stages used by the RetrievalService.

Dependencies: langchain_text_splitters, langchain_core, langchain_google_genai, pydantic
System role: Text-to-vector processing
"""

from .models import ChunkOptions, IngestResult, SearchResult, TextChunk
from .tasks import ChunkingTask, EmbeddingTask

__all__ = [
    "ChunkingTask",
    "EmbeddingTask",
    "ChunkOptions",
    "TextChunk",
    "IngestResult",
    "SearchResult",
]
