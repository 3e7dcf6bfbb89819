"""
Snapshot store contract for document tracking.

A store loads and saves the whole tracking snapshot together with an opaque
version token. Saves are conditional: they succeed only if the stored
version still equals the token the caller loaded, which closes the
read-modify-write race between concurrent writers.

Dependencies: abc
System role: Persistence strategy for DocumentTracker
"""

from abc import ABC, abstractmethod

from handbook_retrieval.core.document_tracking.models import TrackingSnapshot


class SnapshotStore(ABC):
    """Conditional load/save of the tracking snapshot."""

    location: str = ""

    @abstractmethod
    async def load(self) -> tuple[TrackingSnapshot, str] | None:
        """
        Load the snapshot.

        Returns:
            (snapshot, version) or None when no snapshot exists yet

        Raises:
            TrackingError: If the stored snapshot cannot be parsed
            StorageUnavailableError: If the storage cannot be reached
        """

    @abstractmethod
    async def save(self, snapshot: TrackingSnapshot, expected_version: str | None) -> str:
        """
        Write the snapshot if the stored version matches.

        Args:
            snapshot: Snapshot to persist
            expected_version: Version previously loaded; None means "must not exist"

        Returns:
            str: New version token

        Raises:
            SnapshotConflictError: If another writer changed the snapshot
        """
