"""
Vector database schemas.

Pydantic models shared by every VectorStore backend.

Dependencies: pydantic
System role: Type definitions for vector operations
"""

from typing import Any

from pydantic import BaseModel, Field

COSINE = "cosine"


class VectorRecord(BaseModel):
    """A stored vector with its metadata; id is generated when omitted on upsert."""

    id: str | None = Field(default=None, description="Record identifier")
    vector: list[float] = Field(default_factory=list, description="Embedding vector")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque metadata")


class QueryMatch(BaseModel):
    """Single result from a similarity query."""

    id: str = Field(description="Record identifier")
    score: float = Field(description="Cosine similarity to the query vector")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Record metadata")
    vector: list[float] | None = Field(default=None, description="Stored vector if requested")


class CollectionStats(BaseModel):
    """Result of describe()."""

    dimension: int = Field(description="Vector dimensionality of the collection")
    count: int = Field(description="Number of stored records")
    metric: str = Field(default=COSINE, description="Similarity metric")
