"""
Document tracking models.

The snapshot serializes with camelCase keys
(``{"documents": {...}, "totalChunks": .., "totalDocuments": .., "lastUpdated": ..,
"orphanedChunkIds": [...]}``). Orphaned chunk IDs are chunks left in the collection
after a failed delete; they live in the snapshot so they survive a restart.

Dependencies: pydantic
System role: Persisted document -> chunk-id bookkeeping
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentRecord(BaseModel):
    """Tracking metadata for one ingested source document."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    original_name: str = Field(alias="originalName")
    chunk_count: int = Field(alias="chunkCount")
    embedding_count: int = Field(alias="embeddingCount")
    processed_at: str = Field(default_factory=utc_now_iso, alias="processedAt")
    chunk_ids: list[str] = Field(default_factory=list, alias="chunkIds")


class TrackingStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_documents: int = Field(alias="totalDocuments")
    total_chunks: int = Field(alias="totalChunks")
    last_updated: str | None = Field(default=None, alias="lastUpdated")


class TrackingSnapshot(BaseModel):
    """Aggregate tracking state, persisted as one JSON blob."""

    model_config = ConfigDict(populate_by_name=True)

    documents: dict[str, DocumentRecord] = Field(default_factory=dict)
    total_chunks: int = Field(default=0, alias="totalChunks")
    total_documents: int = Field(default=0, alias="totalDocuments")
    last_updated: str | None = Field(default=None, alias="lastUpdated")
    orphaned_chunk_ids: list[str] = Field(default_factory=list, alias="orphanedChunkIds")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "TrackingSnapshot":
        return cls.model_validate_json(raw)

    def stats(self) -> TrackingStats:
        return TrackingStats(
            total_documents=self.total_documents,
            total_chunks=self.total_chunks,
            last_updated=self.last_updated,
        )
