"""
VectorStore contract.

Every backend stores {id, vector, metadata} records in named collections and
answers cosine-similarity queries with identical score semantics, so
ingestion and search code never branch on the backend in use.

Dependencies: abc, pydantic models
System role: Storage strategy interface
"""

import time
from abc import ABC, abstractmethod
from typing import Any

from handbook_retrieval.boundary.vdb.vector_schemas import (
    CollectionStats,
    QueryMatch,
    VectorRecord,
)
from handbook_retrieval.core.exceptions import ValidationError


class VectorStore(ABC):
    """Backend-agnostic key/vector/metadata store over named collections."""

    backend_name: str = "abstract"

    @abstractmethod
    async def create_collection(self, name: str, dimension: int | None = None) -> None:
        """Create the collection if it does not exist."""

    @abstractmethod
    async def upsert(self, name: str, records: list[VectorRecord]) -> list[str]:
        """Insert or replace records by id and return the ids written."""

    @abstractmethod
    async def query(
        self,
        name: str,
        vector: list[float],
        top_k: int = 10,
        include_vector: bool = False,
    ) -> list[QueryMatch]:
        """Return up to top_k matches sorted by cosine similarity, descending."""

    @abstractmethod
    async def get(self, name: str, ids: list[str]) -> list[VectorRecord]:
        """Fetch stored records by id; unknown ids are omitted."""

    @abstractmethod
    async def update_vector(
        self,
        name: str,
        record_id: str,
        vector: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Partially update a record, merging metadata. False if id is unknown."""

    @abstractmethod
    async def delete_vectors(self, name: str, ids: list[str]) -> None:
        """Delete records by id; unknown ids are ignored."""

    async def delete_vector(self, name: str, record_id: str) -> None:
        await self.delete_vectors(name, [record_id])

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Remove a collection and all its records; missing collections are ignored."""

    @abstractmethod
    async def describe(self, name: str) -> CollectionStats:
        """Dimension, record count and metric of a collection."""

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Names of existing collections."""


def assign_ids(name: str, records: list[VectorRecord]) -> list[VectorRecord]:
    """
    Fill in missing ids as ``{name}-{timestamp_ms}-{index}``.

    Args:
        name: Collection name
        records: Records to upsert

    Returns:
        list[VectorRecord]: Records with every id set, in input order
    """
    timestamp_ms = int(time.time() * 1000)
    return [
        record if record.id else record.model_copy(update={"id": f"{name}-{timestamp_ms}-{i}"})
        for i, record in enumerate(records)
    ]


def validate_top_k(top_k: int) -> None:
    """Reject a non-positive top_k before any backend call is made."""
    if top_k < 1:
        raise ValidationError(f"top_k must be >= 1, got {top_k}", field="top_k")


def check_dimensions(records: list[VectorRecord], expected: int | None) -> int | None:
    """
    Ensure every vector in records has the collection's dimension.

    Args:
        records: Records about to be written
        expected: Dimension already held by the collection, None when empty

    Returns:
        int | None: The collection dimension after the write

    Raises:
        ValidationError: If any vector length differs
    """
    for record in records:
        if not record.vector:
            continue
        if expected is None:
            expected = len(record.vector)
        elif len(record.vector) != expected:
            raise ValidationError(
                f"Vector for {record.id!r} has dimension {len(record.vector)}, collection uses {expected}",
                field="vector",
            )
    return expected
