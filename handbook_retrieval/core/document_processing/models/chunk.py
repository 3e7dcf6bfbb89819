"""
Chunk domain models for document processing.

Dependencies: pydantic
System role: Data structures passed between chunking, embedding and storage
"""

from pydantic import BaseModel, Field


class ChunkOptions(BaseModel):
    """Chunking window: maximum characters per chunk and shared overlap."""

    max_size: int = Field(default=600, description="Maximum chunk size in characters")
    overlap: int = Field(default=100, description="Characters shared by consecutive chunks")


class TextChunk(BaseModel):
    """A contiguous span of a document selected for embedding."""

    text: str = Field(description="Chunk text content")
    local_index: int = Field(description="Position of the chunk within its document")
    start_index: int = Field(default=0, description="Character offset in the source text")


def build_chunk_id(document_id: str, index: int) -> str:
    """Deterministic chunk ID: ``{document_id}-chunk-{index}``."""
    return f"{document_id}-chunk-{index}"
