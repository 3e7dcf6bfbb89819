"""
Retrieval service orchestrator.

Coordinates chunking, embedding, vector storage and document tracking for
the shared handbook collection.

Ingestion runs chunk -> embed -> upsert -> track. The tracking write is
retried; if it still fails, the chunks written for this ingestion are
deleted again (compensation). Anything that cannot be deleted is recorded
as an orphan in the tracking snapshot, so reconcile_orphans() can remove it
later, also from a new process. Re-ingesting a tracked document
overwrites its deterministic chunk IDs and removes the stale ones left over
from the previous version.

Dependencies: handbook_retrieval.core, handbook_retrieval.boundary, tenacity
System role: Public ingest/search/delete API of the engine
"""

import logging
import time
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from handbook_retrieval.boundary.tracking.snapshot_store_factory import get_snapshot_store
from handbook_retrieval.boundary.vdb.base import VectorStore
from handbook_retrieval.boundary.vdb.vector_schemas import VectorRecord
from handbook_retrieval.boundary.vdb.vector_store_factory import get_vector_store
from handbook_retrieval.configs import Settings, get_settings
from handbook_retrieval.core.document_processing.embeddings_wrapper import build_default_embeddings
from handbook_retrieval.core.document_processing.models import (
    ChunkOptions,
    CorpusStats,
    IngestResult,
    SearchResult,
    TextChunk,
    build_chunk_id,
)
from handbook_retrieval.core.document_processing.tasks import (
    ChunkingTask,
    EmbeddingTask,
    validate_chunk_options,
)
from handbook_retrieval.core.document_tracking import DocumentTracker
from handbook_retrieval.core.exceptions import (
    HandbookRetrievalException,
    IngestionError,
    StorageUnavailableError,
    TrackingError,
    ValidationError,
)
from handbook_retrieval.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


class RetrievalService:
    """
    Retrieval engine orchestrator.

    All collaborators are injectable; any that are omitted are built lazily
    from settings on first use.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        chunker: ChunkingTask | None = None,
        embedder: EmbeddingTask | None = None,
        vector_store: VectorStore | None = None,
        tracker: DocumentTracker | None = None,
        collection_name: str | None = None,
        tracking_retry_wait_seconds: float = 0.2,
    ) -> None:
        """
        Initialize retrieval service.

        Args:
            settings: Application settings (defaults to get_settings())
            chunker: Optional ChunkingTask (created if None)
            embedder: Optional EmbeddingTask (created if None)
            vector_store: Optional VectorStore backend (created if None)
            tracker: Optional DocumentTracker (created if None)
            collection_name: Shared collection (defaults to settings)
            tracking_retry_wait_seconds: Initial backoff between tracking retries
        """
        self._settings = settings or get_settings()
        self._chunker = chunker
        self._embedder = embedder
        self._vector_store = vector_store
        self._tracker = tracker
        self._collection = collection_name or self._settings.vector_store.collection_name
        self._tracking_retry_wait = tracking_retry_wait_seconds
        # Orphans not yet persisted because the tracking store was unavailable
        self._pending_orphans: list[str] = []

    @property
    def chunker(self) -> ChunkingTask:
        """Lazy-load chunker with the configured default window."""
        if self._chunker is None:
            self._chunker = ChunkingTask(
                ChunkOptions(
                    max_size=self._settings.chunking.max_size,
                    overlap=self._settings.chunking.overlap,
                )
            )
        return self._chunker

    @property
    def embedder(self) -> EmbeddingTask:
        """Lazy-load embedder to avoid provider initialization cost."""
        if self._embedder is None:
            config = self._settings.embedding
            self._embedder = EmbeddingTask(
                build_default_embeddings(config),
                max_batch_size=config.max_batch_size,
                max_cache_entries=config.max_cache_entries,
                request_timeout_seconds=config.request_timeout_seconds,
            )
        return self._embedder

    @property
    def vector_store(self) -> VectorStore:
        """Lazy-load the configured vector store backend."""
        if self._vector_store is None:
            self._vector_store = get_vector_store(self._settings)
        return self._vector_store

    @property
    def tracker(self) -> DocumentTracker:
        """Lazy-load the document tracker for the configured storage mode."""
        if self._tracker is None:
            self._tracker = DocumentTracker(
                get_snapshot_store(self._settings),
                max_write_attempts=self._settings.tracking.max_write_attempts,
            )
        return self._tracker

    @property
    def collection_name(self) -> str:
        return self._collection

    async def get_orphaned_chunk_ids(self) -> list[str]:
        """Chunk IDs written to the store but not owned by any tracked document."""
        persisted = await self.tracker.get_orphans()
        known = set(persisted)
        return persisted + [c for c in self._pending_orphans if c not in known]

    async def initialize(self) -> None:
        """Ensure the shared collection exists and the tracking snapshot is loaded."""
        await self.vector_store.create_collection(
            self._collection,
            self._settings.embedding.dimension,
        )
        await self.tracker.initialize()
        logger.info(f"{__name__}:initialize - Ready (collection={self._collection})")

    def upload_options(self) -> ChunkOptions:
        """Chunk window used for uploaded documents."""
        return ChunkOptions(
            max_size=self._settings.chunking.upload_max_size,
            overlap=self._settings.chunking.upload_overlap,
        )

    async def ingest(
        self,
        text: str,
        document_id: str,
        options: ChunkOptions | None = None,
        original_name: str | None = None,
    ) -> IngestResult:
        """
        Chunk, embed, store and track one document.

        Steps:
        1. Validate inputs (no I/O on failure)
        2. Chunk text; ids are ``{document_id}-chunk-{i}``
        3. Embed all chunks in one batched call
        4. Upsert chunks into the shared collection
        5. Record the document in the tracker (retried, compensated on failure)
        6. Remove stale chunks from a previous version of the document

        Args:
            text: Full document text
            document_id: Document identifier
            options: Chunk window (defaults to the chunker's default)
            original_name: Display name stored with the tracking record

        Returns:
            IngestResult: Counts, chunk ids and elapsed time

        Raises:
            InvalidChunkConfigError: If the chunk window is invalid
            ValidationError: If text or document_id is empty
            EmbeddingProviderError: If embedding fails
            VectorStoreError, StorageUnavailableError: If the upsert fails
            IngestionError: If the document could not be tracked
        """
        if not document_id or not document_id.strip():
            raise ValidationError("document_id is required", field="document_id")
        options = options or self.chunker.default_options
        validate_chunk_options(options)

        start_time = time.perf_counter()
        original_name = original_name or document_id

        chunks = self.chunker.chunk(text, options)
        chunk_ids = [build_chunk_id(document_id, chunk.local_index) for chunk in chunks]
        vectors = await self.embedder.embed([chunk.text for chunk in chunks], document_id=document_id)

        previous = await self.tracker.get_document(document_id)
        previous_ids = set(previous.chunk_ids) if previous else set()
        new_ids = [chunk_id for chunk_id in chunk_ids if chunk_id not in previous_ids]

        records = [
            VectorRecord(
                id=chunk_id,
                vector=vector,
                metadata=self._chunk_metadata(chunk, document_id, original_name),
            )
            for chunk, chunk_id, vector in zip(chunks, chunk_ids, vectors)
        ]

        try:
            await self.vector_store.upsert(self._collection, records)
        except HandbookRetrievalException as e:
            log_exception_with_context(
                logger,
                f"{__name__}:ingest - Upsert failed",
                e,
                document_id=document_id,
                chunk_count=len(records),
            )
            await self._compensate(new_ids)
            raise

        try:
            await self._track_with_retry(document_id, original_name, chunk_ids)
        except HandbookRetrievalException as e:
            log_exception_with_context(
                logger,
                f"{__name__}:ingest - Tracking failed, rolling back written chunks",
                e,
                document_id=document_id,
                chunk_ids=new_ids,
            )
            await self._compensate(new_ids)
            raise IngestionError(
                f"Failed to track document: {e.message}",
                document_id=document_id,
                stage="track",
                details={"chunk_count": len(chunk_ids)},
            ) from e

        current_ids = set(chunk_ids)
        stale_ids = [chunk_id for chunk_id in previous.chunk_ids if chunk_id not in current_ids] if previous else []
        if stale_ids:
            await self._compensate(stale_ids)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{__name__}:ingest - Ingested {document_id}: {len(chunk_ids)} chunks "
            f"in {elapsed_ms:.0f}ms",
            extra={"document_id": document_id, "replaced": len(stale_ids)},
        )

        return IngestResult(
            document_id=document_id,
            total_chunks=len(chunks),
            total_embeddings=len(vectors),
            processing_time_ms=elapsed_ms,
            chunk_ids=chunk_ids,
            replaced_chunk_ids=stale_ids,
        )

    def _chunk_metadata(self, chunk: TextChunk, document_id: str, original_name: str) -> dict[str, Any]:
        return {
            "text": chunk.text,
            "documentId": document_id,
            "chunkIndex": chunk.local_index,
            "source": self._collection,
            "originalName": original_name,
        }

    async def _track_with_retry(self, document_id: str, original_name: str, chunk_ids: list[str]) -> None:
        attempts = self._settings.tracking.max_write_attempts
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((TrackingError, StorageUnavailableError)),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential_jitter(
                initial=self._tracking_retry_wait,
                max=5,
                jitter=self._tracking_retry_wait,
            ),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:_track_with_retry - Retry {retry_state.attempt_number}/{attempts} "
                f"for {document_id}"
            ),
            reraise=True,
        ):
            with attempt:
                await self.tracker.add_document(document_id, original_name, len(chunk_ids), chunk_ids)

    async def _compensate(self, chunk_ids: list[str]) -> None:
        """Best-effort delete of untracked chunks; failures are kept as orphans."""
        if not chunk_ids:
            return
        try:
            await self.vector_store.delete_vectors(self._collection, chunk_ids)
        except HandbookRetrievalException as e:
            logger.error(
                f"{__name__}:_compensate - Could not delete {len(chunk_ids)} chunks, "
                f"recording them as orphans: {e}"
            )
            await self._record_orphans(chunk_ids)

    async def _record_orphans(self, chunk_ids: list[str]) -> None:
        known = set(self._pending_orphans)
        pending = self._pending_orphans + [c for c in chunk_ids if c not in known]
        try:
            await self.tracker.add_orphans(pending)
        except HandbookRetrievalException as e:
            self._pending_orphans = pending
            logger.error(
                f"{__name__}:_record_orphans - Could not persist {len(pending)} orphaned chunk ids, "
                f"keeping them in memory: {e}"
            )
            return
        self._pending_orphans = []

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        threshold: float | None = None,
    ) -> list[SearchResult]:
        """
        Rank chunks of the shared collection against a query.

        Args:
            query: Free-text query
            top_k: Maximum results (defaults to settings, 5)
            threshold: Minimum cosine score (defaults to settings, 0.5)

        Returns:
            list[SearchResult]: Results with score >= threshold, best first.
                An empty list means nothing relevant was found.

        Raises:
            ValidationError: If query is empty or top_k < 1
            EmbeddingProviderError: If the query cannot be embedded
        """
        top_k = top_k if top_k is not None else self._settings.vector_store.top_k
        threshold = threshold if threshold is not None else self._settings.vector_store.similarity_threshold

        if not query or not query.strip():
            raise ValidationError("query cannot be empty", field="query")
        if top_k < 1:
            raise ValidationError("top_k must be at least 1", field="top_k")

        query_vector = await self.embedder.embed_query(query)
        matches = await self.vector_store.query(self._collection, query_vector, top_k)

        results = [
            SearchResult(
                id=match.id,
                text=str(match.metadata.get("text", "")),
                score=match.score,
                metadata=match.metadata,
            )
            for match in matches
            if match.score >= threshold
        ]

        logger.info(
            f"{__name__}:search - Found {len(results)} results",
            extra={"top_k": top_k, "threshold": threshold, "candidates": len(matches)},
        )
        return results

    async def delete_document(self, document_id: str) -> list[str]:
        """
        Delete a document's chunks from the shared collection.

        Args:
            document_id: Document identifier

        Returns:
            list[str]: Deleted chunk IDs ([] if the document was not tracked)

        Raises:
            VectorStoreError, StorageUnavailableError: If the chunks cannot be
                deleted (they are recorded as orphans first)
        """
        chunk_ids = await self.tracker.remove_document(document_id)
        if not chunk_ids:
            return []

        try:
            await self.delete_document_chunks(chunk_ids)
        except HandbookRetrievalException:
            await self._record_orphans(chunk_ids)
            raise

        logger.info(
            f"{__name__}:delete_document - Deleted {len(chunk_ids)} chunks for {document_id}"
        )
        return chunk_ids

    async def delete_document_chunks(self, chunk_ids: list[str]) -> None:
        """Delete chunks by id from the shared collection."""
        await self.vector_store.delete_vectors(self._collection, chunk_ids)

    async def reconcile_orphans(self) -> int:
        """
        Retry deletion of orphaned chunks.

        Orphans recorded by an earlier process are read from the tracking
        snapshot. IDs that a tracked document owns again are dropped from the
        orphan list without being deleted.

        Returns:
            int: Number of orphaned chunks deleted from the collection

        Raises:
            TrackingError, StorageUnavailableError: If the tracking snapshot
                cannot be read or written
            VectorStoreError: If the delete fails (orphans are kept)
        """
        if self._pending_orphans:
            await self._record_orphans([])
        orphans = await self.get_orphaned_chunk_ids()
        if not orphans:
            return 0

        owned = {
            chunk_id
            for record in await self.tracker.get_all_documents()
            for chunk_id in record.chunk_ids
        }
        doomed = [chunk_id for chunk_id in orphans if chunk_id not in owned]
        if doomed:
            await self.vector_store.delete_vectors(self._collection, doomed)

        await self.tracker.discard_orphans(orphans)
        resolved = set(orphans)
        self._pending_orphans = [c for c in self._pending_orphans if c not in resolved]
        logger.info(
            f"{__name__}:reconcile_orphans - Removed {len(doomed)} orphaned chunks",
            extra={"still_owned": len(orphans) - len(doomed)},
        )
        return len(doomed)

    async def delete_collection(self) -> None:
        """Drop the shared collection and every vector in it; tracking records are left as they are."""
        await self.vector_store.delete_collection(self._collection)
        logger.warning(f"{__name__}:delete_collection - Deleted collection {self._collection}")

    async def get_stats(self) -> CorpusStats:
        """Vector count and dimension of the shared collection plus tracking totals."""
        description = await self.vector_store.describe(self._collection)
        tracking = await self.tracker.get_stats()
        return CorpusStats(
            collection=self._collection,
            total_documents=description.count,
            dimensions=description.dimension,
            metric=description.metric,
            tracked_documents=tracking.total_documents,
            tracked_chunks=tracking.total_chunks,
            last_updated=tracking.last_updated,
        )

    async def list_collections(self) -> list[str]:
        return await self.vector_store.list_collections()
