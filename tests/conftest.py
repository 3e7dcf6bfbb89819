"""
Shared test fixtures and configuration for entire test suite.

Provides: deterministic embeddings, in-memory S3 Vectors / S3 clients,
local stores rooted in tmp_path, and a fully wired RetrievalService.
Dependencies: pytest, numpy, botocore, langchain_core
System role: Test infrastructure and fixture management
"""

from typing import Any

import numpy as np
import pytest
from botocore.exceptions import ClientError
from langchain_core.embeddings import Embeddings

from handbook_retrieval.application.services.retrieval_service import RetrievalService
from handbook_retrieval.boundary.tracking.local_snapshot_store import LocalSnapshotStore
from handbook_retrieval.boundary.vdb.local_vector_store import LocalVectorStore
from handbook_retrieval.configs import Settings
from handbook_retrieval.core.document_processing.models import ChunkOptions
from handbook_retrieval.core.document_processing.tasks import ChunkingTask, EmbeddingTask
from handbook_retrieval.core.document_tracking import DocumentTracker

BUDGET_TEXT = (
    "Budget approvals under $5,000 need team-lead sign-off. "
    "Approvals between $5,000 and $50,000 require department-head and finance sign-off."
)

# One vector dimension per feature; a text activates a feature when it
# contains any of the feature's trigger phrases.
HANDBOOK_FEATURES = [
    ["$50,000", "$20,000"],
    ["team-lead", "under $5,000"],
    ["rocket"],
    ["vacation", "holiday", "leave"],
    ["onboarding", "laptop"],
]


class KeywordEmbeddings(Embeddings):
    """Deterministic LangChain embeddings driven by keyword features."""

    def __init__(self, features: list[list[str]] | None = None, bias: float = 0.05) -> None:
        self.features = features or HANDBOOK_FEATURES
        self.bias = bias
        self.calls: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        lowered = text.lower()
        vector = [
            1.0 if any(trigger.lower() in lowered for trigger in triggers) else 0.0
            for triggers in self.features
        ]
        return vector + [self.bias]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._vector(text)


def client_error(code: str, operation: str = "Operation", message: str = "error") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeS3VectorsClient:
    """
    In-memory stand-in for the boto3 ``s3vectors`` client.

    Stores vectors per index and implements the subset of the API used by
    S3VectorsStore, including nextToken paging and native cosine queries.
    """

    def __init__(self, fail_native_query: bool = False) -> None:
        self.indexes: dict[str, dict[str, Any]] = {}
        self.fail_native_query = fail_native_query
        self.query_calls = 0
        self.list_calls = 0

    def _index(self, name: str) -> dict[str, Any]:
        if name not in self.indexes:
            raise client_error("NotFoundException", "GetIndex", f"index {name} not found")
        return self.indexes[name]

    def create_index(self, vectorBucketName: str, indexName: str, dimension: int, **kwargs: Any) -> dict:
        if indexName in self.indexes:
            raise client_error("ConflictException", "CreateIndex")
        self.indexes[indexName] = {"dimension": dimension, "vectors": {}}
        return {}

    def delete_index(self, vectorBucketName: str, indexName: str) -> dict:
        self._index(indexName)
        del self.indexes[indexName]
        return {}

    def get_index(self, vectorBucketName: str, indexName: str) -> dict:
        index = self._index(indexName)
        return {"index": {"indexName": indexName, "dimension": index["dimension"], "distanceMetric": "cosine"}}

    def list_indexes(self, vectorBucketName: str, nextToken: str | None = None) -> dict:
        return {"indexes": [{"indexName": name} for name in self.indexes]}

    def put_vectors(self, vectorBucketName: str, indexName: str, vectors: list[dict]) -> dict:
        index = self._index(indexName)
        for vector in vectors:
            index["vectors"][vector["key"]] = {
                "data": list(vector["data"]["float32"]),
                "metadata": dict(vector.get("metadata") or {}),
            }
        return {}

    def get_vectors(self, vectorBucketName: str, indexName: str, keys: list[str], **kwargs: Any) -> dict:
        index = self._index(indexName)
        return {
            "vectors": [
                {"key": key, "data": {"float32": index["vectors"][key]["data"]}, "metadata": index["vectors"][key]["metadata"]}
                for key in keys
                if key in index["vectors"]
            ]
        }

    def delete_vectors(self, vectorBucketName: str, indexName: str, keys: list[str]) -> dict:
        index = self._index(indexName)
        for key in keys:
            index["vectors"].pop(key, None)
        return {}

    def list_vectors(
        self,
        vectorBucketName: str,
        indexName: str,
        maxResults: int = 500,
        nextToken: str | None = None,
        returnData: bool = False,
        returnMetadata: bool = False,
    ) -> dict:
        self.list_calls += 1
        index = self._index(indexName)
        keys = list(index["vectors"])
        offset = int(nextToken or 0)
        page = keys[offset:offset + maxResults]
        items = []
        for key in page:
            item: dict[str, Any] = {"key": key}
            if returnData:
                item["data"] = {"float32": index["vectors"][key]["data"]}
            if returnMetadata:
                item["metadata"] = index["vectors"][key]["metadata"]
            items.append(item)
        response: dict[str, Any] = {"vectors": items}
        if offset + maxResults < len(keys):
            response["nextToken"] = str(offset + maxResults)
        return response

    def query_vectors(
        self,
        vectorBucketName: str,
        indexName: str,
        topK: int,
        queryVector: dict,
        returnMetadata: bool = False,
        returnDistance: bool = False,
    ) -> dict:
        self.query_calls += 1
        if self.fail_native_query:
            raise client_error("ValidationException", "QueryVectors", "vector index not ready")
        index = self._index(indexName)
        query = np.asarray(queryVector["float32"], dtype=np.float64)
        scored = []
        for key, stored in index["vectors"].items():
            vector = np.asarray(stored["data"], dtype=np.float64)
            cosine = float(np.dot(query, vector) / (np.linalg.norm(query) * np.linalg.norm(vector)))
            scored.append({"key": key, "distance": 1.0 - cosine, "metadata": stored["metadata"]})
        scored.sort(key=lambda item: item["distance"])
        return {"vectors": scored[:topK], "distanceMetric": "cosine"}


@pytest.fixture
def settings() -> Settings:
    """Default settings (local store, pm-handbook collection)."""
    return Settings()


@pytest.fixture
def keyword_embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture
def embedder(keyword_embeddings: KeywordEmbeddings) -> EmbeddingTask:
    return EmbeddingTask(keyword_embeddings, max_batch_size=8, max_cache_entries=100)


@pytest.fixture
def local_store(tmp_path) -> LocalVectorStore:
    return LocalVectorStore(data_dir=tmp_path / "embeddings", default_dimension=6)


@pytest.fixture
def tracker(tmp_path) -> DocumentTracker:
    return DocumentTracker(LocalSnapshotStore(tmp_path / "embeddings" / "document-tracking.json"))


@pytest.fixture
def retrieval_service(
    settings: Settings,
    embedder: EmbeddingTask,
    local_store: LocalVectorStore,
    tracker: DocumentTracker,
) -> RetrievalService:
    """RetrievalService wired to local storage and keyword embeddings."""
    return RetrievalService(
        settings=settings,
        chunker=ChunkingTask(ChunkOptions(max_size=60, overlap=10)),
        embedder=embedder,
        vector_store=local_store,
        tracker=tracker,
        collection_name="pm-handbook",
        tracking_retry_wait_seconds=0,
    )
