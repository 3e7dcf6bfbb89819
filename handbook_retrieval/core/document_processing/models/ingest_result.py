"""
Result models for ingestion and search.

Dependencies: pydantic
System role: Return types for RetrievalService operations
"""

from typing import Any

from pydantic import BaseModel, Field


class IngestResult(BaseModel):
    """Outcome of ingesting one document into the shared collection."""

    document_id: str = Field(description="Ingested document identifier")
    total_chunks: int = Field(description="Number of chunks generated")
    total_embeddings: int = Field(description="Number of vectors generated")
    processing_time_ms: float = Field(description="Total processing time in milliseconds")
    chunk_ids: list[str] = Field(default_factory=list, description="IDs written, in chunk order")
    replaced_chunk_ids: list[str] = Field(
        default_factory=list,
        description="Stale IDs removed from a previous version of the document",
    )


class SearchResult(BaseModel):
    """Single ranked passage returned by a search."""

    id: str = Field(description="Chunk identifier")
    text: str = Field(description="Chunk text content")
    score: float = Field(description="Cosine similarity to the query")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Stored chunk metadata")


class CorpusStats(BaseModel):
    """Aggregate view of the shared collection and its tracking snapshot."""

    collection: str
    total_documents: int = Field(description="Vectors stored in the collection")
    dimensions: int
    metric: str
    tracked_documents: int
    tracked_chunks: int
    last_updated: str | None = None
