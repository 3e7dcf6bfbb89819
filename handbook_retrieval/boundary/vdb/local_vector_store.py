"""
Local flat-file vector store.

One JSON file per collection (``<data_dir>/<collection>.json``) holding the
full list of records. Queries are brute force: every stored vector is scored
with cosine similarity, sorted and sliced. Correct for any collection size,
O(n) per query, intended for development and small corpora.

Dependencies: numpy (via similarity), json, asyncio
System role: Development vector store backend
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from handbook_retrieval.boundary.vdb.base import (
    VectorStore,
    assign_ids,
    check_dimensions,
    validate_top_k,
)
from handbook_retrieval.boundary.vdb.similarity import rank_records
from handbook_retrieval.boundary.vdb.vector_schemas import (
    COSINE,
    CollectionStats,
    QueryMatch,
    VectorRecord,
)
from handbook_retrieval.core.exceptions import (
    StorageUnavailableError,
    ValidationError,
    VectorStoreError,
)

logger = logging.getLogger(__name__)


class LocalVectorStore(VectorStore):
    """JSON-file backed vector store with brute-force cosine search."""

    backend_name = "local"

    def __init__(
        self,
        data_dir: str | Path = "./embeddings",
        default_dimension: int = 1536,
        reserved_files: tuple[str, ...] = ("document-tracking.json",),
    ) -> None:
        """
        Initialize local vector store.

        Args:
            data_dir: Directory holding collection files
            default_dimension: Dimension reported by describe() for empty collections
            reserved_files: File names in data_dir that are not collections
        """
        self._data_dir = Path(data_dir)
        self._default_dimension = default_dimension
        self._reserved_files = set(reserved_files)
        self._locks: dict[str, asyncio.Lock] = {}

        logger.info(f"{__name__}:__init__ - Local vector store at {self._data_dir.resolve()}")

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _collection_path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise ValidationError(f"Invalid collection name: {name!r}", field="collection")
        path = self._data_dir / f"{name}.json"
        if path.name in self._reserved_files:
            raise ValidationError(f"Collection name is reserved: {name!r}", field="collection")
        return path

    def _lock(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    def _read_records(self, path: Path) -> list[VectorRecord]:
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot read collection file {path.name}",
                operation="read",
                backend=self.backend_name,
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise VectorStoreError(
                f"Collection file {path.name} is corrupt",
                operation="read",
                details={"error": str(e)},
            ) from e
        return [VectorRecord.model_validate(item) for item in raw]

    def _write_records(self, path: Path, records: list[VectorRecord]) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            payload = [record.model_dump(mode="json") for record in records]
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot write collection file {path.name}",
                operation="write",
                backend=self.backend_name,
                details={"error": str(e)},
            ) from e

    async def _load(self, name: str) -> list[VectorRecord]:
        return await asyncio.to_thread(self._read_records, self._collection_path(name))

    async def _save(self, name: str, records: list[VectorRecord]) -> None:
        await asyncio.to_thread(self._write_records, self._collection_path(name), records)

    async def create_collection(self, name: str, dimension: int | None = None) -> None:
        path = self._collection_path(name)
        async with self._lock(name):
            if await asyncio.to_thread(path.exists):
                return
            await self._save(name, [])
        logger.info(f"{__name__}:create_collection - Created collection {name}")

    async def upsert(self, name: str, records: list[VectorRecord]) -> list[str]:
        """
        Insert or replace records, merging by id into the collection file.

        Args:
            name: Collection name
            records: Records to write (ids generated when missing)

        Returns:
            list[str]: IDs written, in input order

        Raises:
            ValidationError: If a vector length differs from the collection's
        """
        records = assign_ids(name, records)
        async with self._lock(name):
            stored = await self._load(name)
            check_dimensions(records, _stored_dimension(stored))
            positions = {record.id: i for i, record in enumerate(stored)}
            for record in records:
                if record.id in positions:
                    stored[positions[record.id]] = record
                else:
                    positions[record.id] = len(stored)
                    stored.append(record)
            await self._save(name, stored)

        logger.info(
            f"{__name__}:upsert - Upserted {len(records)} records",
            extra={"collection": name, "collection_size": len(stored)},
        )
        return [record.id for record in records]

    async def query(
        self,
        name: str,
        vector: list[float],
        top_k: int = 10,
        include_vector: bool = False,
    ) -> list[QueryMatch]:
        """
        Brute-force cosine search over every stored record.

        Args:
            name: Collection name
            vector: Query vector
            top_k: Maximum matches
            include_vector: Attach stored vectors to matches

        Returns:
            list[QueryMatch]: Matches sorted by score descending
        """
        validate_top_k(top_k)
        stored = await self._load(name)
        matches = rank_records(stored, vector, top_k, include_vector)
        logger.debug(
            f"{__name__}:query - Scored {len(stored)} records",
            extra={"collection": name, "top_k": top_k, "returned": len(matches)},
        )
        return matches

    async def get(self, name: str, ids: list[str]) -> list[VectorRecord]:
        wanted = set(ids)
        return [record for record in await self._load(name) if record.id in wanted]

    async def update_vector(
        self,
        name: str,
        record_id: str,
        vector: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        async with self._lock(name):
            stored = await self._load(name)
            for i, record in enumerate(stored):
                if record.id != record_id:
                    continue
                if vector is not None:
                    others = stored[:i] + stored[i + 1:]
                    check_dimensions([VectorRecord(id=record_id, vector=vector)], _stored_dimension(others))
                stored[i] = VectorRecord(
                    id=record.id,
                    vector=vector if vector is not None else record.vector,
                    metadata={**record.metadata, **(metadata or {})},
                )
                await self._save(name, stored)
                return True

        logger.warning(
            f"{__name__}:update_vector - Record not found",
            extra={"collection": name, "record_id": record_id},
        )
        return False

    async def delete_vectors(self, name: str, ids: list[str]) -> None:
        if not ids:
            return
        doomed = set(ids)
        async with self._lock(name):
            stored = await self._load(name)
            remaining = [record for record in stored if record.id not in doomed]
            if len(remaining) != len(stored):
                await self._save(name, remaining)

        logger.info(
            f"{__name__}:delete_vectors - Deleted {len(stored) - len(remaining)} records",
            extra={"collection": name, "requested": len(doomed)},
        )

    async def delete_collection(self, name: str) -> None:
        path = self._collection_path(name)
        async with self._lock(name):
            try:
                await asyncio.to_thread(lambda: path.unlink(missing_ok=True))
            except OSError as e:
                raise StorageUnavailableError(
                    f"Cannot delete collection file {path.name}",
                    operation="delete_collection",
                    backend=self.backend_name,
                    details={"error": str(e)},
                ) from e
        logger.info(f"{__name__}:delete_collection - Deleted collection {name}")

    async def describe(self, name: str) -> CollectionStats:
        stored = await self._load(name)
        dimension = _stored_dimension(stored) or self._default_dimension
        return CollectionStats(dimension=dimension, count=len(stored), metric=COSINE)

    async def list_collections(self) -> list[str]:
        def _scan() -> list[str]:
            if not self._data_dir.exists():
                return []
            return sorted(
                path.stem
                for path in self._data_dir.glob("*.json")
                if path.name not in self._reserved_files
            )

        return await asyncio.to_thread(_scan)


def _stored_dimension(records: list[VectorRecord]) -> int | None:
    return next((len(r.vector) for r in records if r.vector), None)
