"""
Document tracker.

Maps each ingested document to the chunk IDs it wrote into the shared
collection, so a single document can be deleted without touching others.

The tracker is an explicit state holder: one instance owns the in-memory
snapshot and is passed to whoever needs it. The snapshot is loaded lazily,
cached, and rewritten in full on every mutation. Mutations are serialized by
an asyncio.Lock inside the process; across processes, every save carries the
version token that was loaded, and a conflicting save reloads the snapshot
and re-applies the mutation.

Dependencies: tenacity, handbook_retrieval.boundary.tracking (SnapshotStore)
System role: Per-document lifecycle bookkeeping
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from handbook_retrieval.core.document_tracking.models import (
    DocumentRecord,
    TrackingSnapshot,
    TrackingStats,
    utc_now_iso,
)
from handbook_retrieval.core.exceptions import SnapshotConflictError, ValidationError
from handbook_retrieval.observability.log_utils import log_with_context

if TYPE_CHECKING:
    from handbook_retrieval.boundary.tracking.base import SnapshotStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentTracker:
    """Tracks document -> chunk-id ownership in a persisted snapshot."""

    def __init__(self, store: "SnapshotStore", max_write_attempts: int = 3) -> None:
        """
        Initialize document tracker.

        Args:
            store: Snapshot persistence strategy (local file or S3 object)
            max_write_attempts: Attempts per mutation when saves conflict

        Raises:
            ValueError: If store is not provided
        """
        if store is None:
            raise ValueError("store is required")

        self._store = store
        self._max_write_attempts = max_write_attempts
        self._snapshot: TrackingSnapshot | None = None
        self._version: str | None = None
        self._lock = asyncio.Lock()

    @property
    def location(self) -> str:
        return self._store.location

    async def initialize(self) -> None:
        """Load the snapshot, creating and persisting an empty one on first run."""
        async with self._lock:
            await self._ensure_loaded()

    async def reload(self) -> None:
        """Drop the cached snapshot and read it again from storage."""
        async with self._lock:
            self._snapshot = None
            await self._ensure_loaded()

    async def _ensure_loaded(self) -> TrackingSnapshot:
        if self._snapshot is not None:
            return self._snapshot

        loaded = await self._store.load()
        if loaded is None:
            empty = TrackingSnapshot(last_updated=utc_now_iso())
            try:
                self._version = await self._store.save(empty, None)
                self._snapshot = empty
                logger.info(f"{__name__}:_ensure_loaded - Created empty snapshot at {self.location}")
                return empty
            except SnapshotConflictError:
                # Another writer created it first
                loaded = await self._store.load()
                if loaded is None:
                    raise

        self._snapshot, self._version = loaded
        logger.debug(
            f"{__name__}:_ensure_loaded - Loaded snapshot with "
            f"{self._snapshot.total_documents} documents"
        )
        return self._snapshot

    async def _apply(self, operation: str, mutation: Callable[[TrackingSnapshot], T]) -> T:
        """Run mutation on a copy of the snapshot and persist it. Caller holds the lock."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(SnapshotConflictError),
            stop=stop_after_attempt(self._max_write_attempts),
            wait=wait_exponential_jitter(initial=0.05, max=1, jitter=0.1),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:{operation} - Snapshot conflict, reloading "
                f"(attempt {retry_state.attempt_number}/{self._max_write_attempts})"
            ),
            reraise=True,
        ):
            with attempt:
                current = await self._ensure_loaded()
                working = current.model_copy(deep=True)
                result = mutation(working)
                working.last_updated = utc_now_iso()
                try:
                    version = await self._store.save(working, self._version)
                except SnapshotConflictError:
                    self._snapshot = None
                    raise
                self._snapshot, self._version = working, version
                return result

    async def add_document(
        self,
        document_id: str,
        original_name: str,
        chunk_count: int,
        chunk_ids: list[str],
    ) -> DocumentRecord:
        """
        Record a document and the chunk IDs it produced.

        Re-adding a tracked document replaces its record; the old chunk count
        is subtracted from the totals first. Chunk IDs the document now owns
        stop counting as orphans.

        Args:
            document_id: Document identifier
            original_name: Display name of the source file
            chunk_count: Number of chunks written
            chunk_ids: IDs written to the collection

        Returns:
            DocumentRecord: The stored record

        Raises:
            ValidationError: If chunk_count != len(chunk_ids)
        """
        if chunk_count != len(chunk_ids):
            raise ValidationError(
                "chunk_count must equal the number of chunk ids",
                field="chunk_count",
                details={"chunk_count": chunk_count, "chunk_ids": len(chunk_ids)},
            )

        def _add(snapshot: TrackingSnapshot) -> DocumentRecord:
            previous = snapshot.documents.get(document_id)
            if previous is not None:
                snapshot.total_chunks -= previous.chunk_count
            record = DocumentRecord(
                document_id=document_id,
                original_name=original_name,
                chunk_count=chunk_count,
                embedding_count=len(chunk_ids),
                chunk_ids=list(chunk_ids),
            )
            snapshot.documents[document_id] = record
            snapshot.total_chunks += chunk_count
            snapshot.total_documents = len(snapshot.documents)
            owned = set(chunk_ids)
            snapshot.orphaned_chunk_ids = [c for c in snapshot.orphaned_chunk_ids if c not in owned]
            return record

        async with self._lock:
            record = await self._apply("add_document", _add)

        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:add_document - Tracked document {document_id}",
            document_id=document_id,
            chunk_count=chunk_count,
        )
        return record

    async def remove_document(self, document_id: str) -> list[str]:
        """
        Stop tracking a document and return its chunk IDs.

        Args:
            document_id: Document identifier

        Returns:
            list[str]: Chunk IDs to delete from the vector store, or [] if the
                document was not tracked
        """

        def _remove(snapshot: TrackingSnapshot) -> list[str]:
            record = snapshot.documents.pop(document_id, None)
            if record is None:
                return []
            snapshot.total_chunks -= record.chunk_count
            snapshot.total_documents = len(snapshot.documents)
            return list(record.chunk_ids)

        async with self._lock:
            snapshot = await self._ensure_loaded()
            if document_id not in snapshot.documents:
                logger.warning(
                    f"{__name__}:remove_document - Document not tracked: {document_id}"
                )
                return []
            chunk_ids = await self._apply("remove_document", _remove)

        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:remove_document - Removed document {document_id}",
            document_id=document_id,
            chunk_ids=chunk_ids,
        )
        return chunk_ids

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        async with self._lock:
            snapshot = await self._ensure_loaded()
            record = snapshot.documents.get(document_id)
            return record.model_copy(deep=True) if record else None

    async def get_all_documents(self) -> list[DocumentRecord]:
        async with self._lock:
            snapshot = await self._ensure_loaded()
            return [record.model_copy(deep=True) for record in snapshot.documents.values()]

    async def get_stats(self) -> TrackingStats:
        async with self._lock:
            snapshot = await self._ensure_loaded()
            return snapshot.stats()

    async def add_orphans(self, chunk_ids: list[str]) -> list[str]:
        """
        Persist chunk IDs that are in the collection but owned by no document.

        Args:
            chunk_ids: IDs a failed delete left behind

        Returns:
            list[str]: All orphaned chunk IDs after the write
        """
        if not chunk_ids:
            return await self.get_orphans()

        def _add_orphans(snapshot: TrackingSnapshot) -> list[str]:
            known = set(snapshot.orphaned_chunk_ids)
            for chunk_id in chunk_ids:
                if chunk_id not in known:
                    snapshot.orphaned_chunk_ids.append(chunk_id)
                    known.add(chunk_id)
            return list(snapshot.orphaned_chunk_ids)

        async with self._lock:
            orphans = await self._apply("add_orphans", _add_orphans)

        logger.warning(
            f"{__name__}:add_orphans - Recorded {len(chunk_ids)} orphaned chunks",
            extra={"orphan_count": len(orphans)},
        )
        return orphans

    async def discard_orphans(self, chunk_ids: list[str]) -> None:
        """Forget orphaned chunk IDs once they are gone from the collection."""
        if not chunk_ids:
            return
        removed = set(chunk_ids)

        def _discard(snapshot: TrackingSnapshot) -> None:
            snapshot.orphaned_chunk_ids = [c for c in snapshot.orphaned_chunk_ids if c not in removed]

        async with self._lock:
            snapshot = await self._ensure_loaded()
            if not removed.intersection(snapshot.orphaned_chunk_ids):
                return
            await self._apply("discard_orphans", _discard)

    async def get_orphans(self) -> list[str]:
        async with self._lock:
            snapshot = await self._ensure_loaded()
            return list(snapshot.orphaned_chunk_ids)
