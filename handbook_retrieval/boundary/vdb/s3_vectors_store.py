"""
S3 Vectors store for production retrieval.

Each collection is one vector index inside a single S3 Vectors bucket
(cosine metric, float32, ``text`` stored as non-filterable metadata).
Queries use the native ``query_vectors`` nearest-neighbour API and convert
cosine distance to similarity (``1 - distance``). If the native query path
fails for any reason, the store pages every vector of the index with
``list_vectors`` and ranks them client side with the same cosine scoring as
the local backend, so search keeps working before the index is usable.

Dependencies: boto3, botocore, tenacity, numpy (via similarity)
System role: Production vector store backend (S3 Vectors)
"""

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

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

NOT_FOUND_CODES = {"NotFoundException", "ResourceNotFoundException", "NoSuchVectorBucket"}
CONFLICT_CODES = {"ConflictException"}
THROTTLING_CODES = {"ThrottlingException", "TooManyRequestsException", "ServiceUnavailableException"}

# S3 Vectors API limits
MAX_GET_KEYS = 100
MAX_PUT_VECTORS = 500
NON_FILTERABLE_KEYS = ["text"]


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _is_throttling_error(error: BaseException) -> bool:
    return isinstance(error, ClientError) and _error_code(error) in THROTTLING_CODES


class IndexNotFoundError(VectorStoreError):
    """The collection's vector index (or the bucket) does not exist."""

    pass


class S3VectorsStore(VectorStore):
    """
    S3 Vectors backend satisfying the VectorStore contract.

    Blocking boto3 calls run in worker threads. Throttling responses are
    retried with exponential backoff; all other errors surface as
    VectorStoreError or StorageUnavailableError.
    """

    backend_name = "s3"

    def __init__(
        self,
        vectors_bucket: str = "handbook-retrieval-dev-vectors",
        region: str = "ap-southeast-2",
        default_dimension: int = 1536,
        page_size: int = MAX_PUT_VECTORS,
        client: Any | None = None,
    ) -> None:
        """
        Initialize S3 Vectors store.

        Args:
            vectors_bucket: S3 Vectors bucket name
            region: AWS region for S3 Vectors
            default_dimension: Index dimension used when create_collection gets none
            page_size: Batch size for list_vectors and put_vectors (max 500)
            client: Optional pre-built boto3 s3vectors client

        Raises:
            ValueError: If vectors_bucket is empty
        """
        if not vectors_bucket:
            raise ValueError("vectors_bucket is required")

        self._bucket = vectors_bucket
        self._region = region
        self._default_dimension = default_dimension
        self._page_size = max(1, min(page_size, MAX_PUT_VECTORS))
        self._client = client or boto3.client("s3vectors", region_name=region)

        logger.info(
            f"{__name__}:__init__ - S3 Vectors store initialized "
            f"bucket={vectors_bucket}, region={region}"
        )

    @retry(
        retry=retry_if_exception(_is_throttling_error),
        stop=stop_after_attempt(5),
        wait=wait_exponential_jitter(initial=1, max=30, jitter=5),
        before_sleep=lambda retry_state: logger.warning(
            f"{__name__}:_invoke - Retry {retry_state.attempt_number}/5 after throttling"
        ),
        reraise=True,
    )
    def _invoke(self, method: str, **kwargs: Any) -> dict[str, Any]:
        """Call an s3vectors API with throttling retry."""
        return getattr(self._client, method)(vectorBucketName=self._bucket, **kwargs)

    async def _call(self, operation: str, method: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._invoke, method, **kwargs)
        except ClientError as e:
            code = _error_code(e)
            error_cls = IndexNotFoundError if code in NOT_FOUND_CODES else VectorStoreError
            raise error_cls(
                f"S3 Vectors {method} failed: {code or 'unknown error'}",
                operation=operation,
                details={"code": code, "error": str(e), "bucket": self._bucket},
            ) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(
                "S3 Vectors is unreachable",
                operation=operation,
                backend=self.backend_name,
                details={"error": str(e), "bucket": self._bucket},
            ) from e

    async def create_collection(self, name: str, dimension: int | None = None) -> None:
        try:
            await self._call(
                "create_collection",
                "create_index",
                indexName=name,
                dataType="float32",
                dimension=dimension or self._default_dimension,
                distanceMetric=COSINE,
                metadataConfiguration={"nonFilterableMetadataKeys": NON_FILTERABLE_KEYS},
            )
            logger.info(f"{__name__}:create_collection - Created index {name}")
        except VectorStoreError as e:
            if e.details.get("code") not in CONFLICT_CODES:
                raise
            logger.debug(f"{__name__}:create_collection - Index {name} already exists")

    async def upsert(self, name: str, records: list[VectorRecord]) -> list[str]:
        """
        Insert or replace vectors with put_vectors, creating the index if needed.

        Args:
            name: Collection (index) name
            records: Records to write (ids generated when missing)

        Returns:
            list[str]: IDs written, in input order

        Raises:
            ValidationError: If a record has no vector or the batch mixes dimensions
            VectorStoreError: If put_vectors fails
        """
        records = assign_ids(name, records)
        if any(not record.vector for record in records):
            raise ValidationError("S3 Vectors records require a vector", field="vector")
        check_dimensions(records, None)

        payload = [
            {"key": record.id, "data": {"float32": record.vector}, "metadata": record.metadata}
            for record in records
        ]
        for start in range(0, len(payload), self._page_size):
            batch = payload[start:start + self._page_size]
            try:
                await self._call("upsert", "put_vectors", indexName=name, vectors=batch)
            except IndexNotFoundError:
                await self.create_collection(name, len(records[0].vector))
                await self._call("upsert", "put_vectors", indexName=name, vectors=batch)

        logger.info(
            f"{__name__}:upsert - Upserted {len(records)} vectors",
            extra={"collection": name, "bucket": self._bucket},
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
        Native nearest-neighbour query with brute-force fallback.

        Args:
            name: Collection (index) name
            vector: Query vector
            top_k: Maximum matches
            include_vector: Attach stored vectors to matches

        Returns:
            list[QueryMatch]: Matches sorted by score descending
        """
        validate_top_k(top_k)
        try:
            matches = await self._native_query(name, vector, top_k)
        except Exception as e:
            logger.warning(
                f"{__name__}:query - Native vector query failed, using brute-force fallback: {e}",
                extra={"collection": name, "error_type": type(e).__name__},
            )
            return await self._brute_force_query(name, vector, top_k, include_vector)

        if include_vector and matches:
            stored = {record.id: record.vector for record in await self.get(name, [m.id for m in matches])}
            matches = [m.model_copy(update={"vector": stored.get(m.id)}) for m in matches]
        return matches

    async def _native_query(self, name: str, vector: list[float], top_k: int) -> list[QueryMatch]:
        response = await self._call(
            "query",
            "query_vectors",
            indexName=name,
            topK=top_k,
            queryVector={"float32": vector},
            returnMetadata=True,
            returnDistance=True,
        )
        matches = [
            QueryMatch(
                id=item["key"],
                score=1.0 - float(item["distance"]),
                metadata=item.get("metadata") or {},
            )
            for item in response.get("vectors", [])
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def _brute_force_query(
        self,
        name: str,
        vector: list[float],
        top_k: int,
        include_vector: bool,
    ) -> list[QueryMatch]:
        try:
            records = await self._list_records(name, return_data=True)
        except IndexNotFoundError:
            logger.warning(f"{__name__}:_brute_force_query - Index {name} does not exist")
            return []
        return rank_records(records, vector, top_k, include_vector)

    async def _list_records(self, name: str, return_data: bool) -> list[VectorRecord]:
        records: list[VectorRecord] = []
        next_token: str | None = None
        while True:
            kwargs: dict[str, Any] = {
                "indexName": name,
                "maxResults": self._page_size,
                "returnData": return_data,
                "returnMetadata": return_data,
            }
            if next_token:
                kwargs["nextToken"] = next_token
            response = await self._call("list", "list_vectors", **kwargs)
            records.extend(self._to_record(item) for item in response.get("vectors", []))
            next_token = response.get("nextToken")
            if not next_token:
                return records

    @staticmethod
    def _to_record(item: dict[str, Any]) -> VectorRecord:
        data = item.get("data") or {}
        return VectorRecord(
            id=item["key"],
            vector=[float(x) for x in data.get("float32", [])],
            metadata=item.get("metadata") or {},
        )

    async def get(self, name: str, ids: list[str]) -> list[VectorRecord]:
        records: list[VectorRecord] = []
        for start in range(0, len(ids), MAX_GET_KEYS):
            try:
                response = await self._call(
                    "get",
                    "get_vectors",
                    indexName=name,
                    keys=ids[start:start + MAX_GET_KEYS],
                    returnData=True,
                    returnMetadata=True,
                )
            except IndexNotFoundError:
                return []
            records.extend(self._to_record(item) for item in response.get("vectors", []))
        return records

    async def update_vector(
        self,
        name: str,
        record_id: str,
        vector: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        existing = await self.get(name, [record_id])
        if not existing:
            logger.warning(
                f"{__name__}:update_vector - Record not found",
                extra={"collection": name, "record_id": record_id},
            )
            return False

        current = existing[0]
        await self.upsert(
            name,
            [
                VectorRecord(
                    id=record_id,
                    vector=vector if vector is not None else current.vector,
                    metadata={**current.metadata, **(metadata or {})},
                )
            ],
        )
        return True

    async def delete_vectors(self, name: str, ids: list[str]) -> None:
        for start in range(0, len(ids), self._page_size):
            try:
                await self._call(
                    "delete",
                    "delete_vectors",
                    indexName=name,
                    keys=ids[start:start + self._page_size],
                )
            except IndexNotFoundError:
                logger.warning(f"{__name__}:delete_vectors - Index {name} does not exist")
                return
        if ids:
            logger.info(
                f"{__name__}:delete_vectors - Deleted {len(ids)} vectors",
                extra={"collection": name},
            )

    async def delete_collection(self, name: str) -> None:
        try:
            await self._call("delete_collection", "delete_index", indexName=name)
            logger.info(f"{__name__}:delete_collection - Deleted index {name}")
        except IndexNotFoundError:
            logger.debug(f"{__name__}:delete_collection - Index {name} already absent")

    async def describe(self, name: str) -> CollectionStats:
        try:
            response = await self._call("describe", "get_index", indexName=name)
            keys = await self._list_records(name, return_data=False)
        except IndexNotFoundError:
            return CollectionStats(dimension=self._default_dimension, count=0, metric=COSINE)

        index = response.get("index", {})
        return CollectionStats(
            dimension=int(index.get("dimension") or self._default_dimension),
            count=len(keys),
            metric=COSINE,
        )

    async def list_collections(self) -> list[str]:
        names: list[str] = []
        next_token: str | None = None
        while True:
            kwargs: dict[str, Any] = {"nextToken": next_token} if next_token else {}
            response = await self._call("list_collections", "list_indexes", **kwargs)
            names.extend(index["indexName"] for index in response.get("indexes", []))
            next_token = response.get("nextToken")
            if not next_token:
                return sorted(names)
