"""Tests for vector store and snapshot store selection."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from handbook_retrieval.boundary.tracking import LocalSnapshotStore, S3SnapshotStore
from handbook_retrieval.boundary.tracking.snapshot_store_factory import get_snapshot_store
from handbook_retrieval.boundary.vdb.local_vector_store import LocalVectorStore
from handbook_retrieval.boundary.vdb.s3_vectors_store import S3VectorsStore
from handbook_retrieval.boundary.vdb.vector_store_factory import get_vector_store
from handbook_retrieval.configs import Settings
from handbook_retrieval.configs.vector_store import VectorStoreSettings


def _settings(store_type: str, data_dir: str = "./embeddings") -> Settings:
    return Settings(vector_store=VectorStoreSettings(store_type=store_type, data_dir=data_dir))


class TestGetVectorStore:
    """Test get_vector_store backend selection."""

    def test_local(self, tmp_path) -> None:
        """Should build a LocalVectorStore in local mode."""
        store = get_vector_store(_settings("local", str(tmp_path)))

        assert isinstance(store, LocalVectorStore)
        assert store.data_dir == Path(tmp_path)

    def test_s3(self) -> None:
        """Should build an S3VectorsStore in s3 mode."""
        with patch("handbook_retrieval.boundary.vdb.s3_vectors_store.boto3.client", return_value=MagicMock()) as client:
            store = get_vector_store(_settings("S3"))

        assert isinstance(store, S3VectorsStore)
        assert client.call_args.args[0] == "s3vectors"

    def test_invalid(self) -> None:
        """Should reject unknown store types."""
        with pytest.raises(ValueError):
            get_vector_store(_settings("cosmos"))


class TestGetSnapshotStore:
    """Test get_snapshot_store selection."""

    def test_local_snapshot_beside_collections(self, tmp_path) -> None:
        """Should place the snapshot file in the local data directory."""
        store = get_snapshot_store(_settings("local", str(tmp_path)))

        assert isinstance(store, LocalSnapshotStore)
        assert store.location == str(Path(tmp_path) / "document-tracking.json")

    def test_s3_snapshot(self) -> None:
        """Should use an S3 object in s3 mode."""
        with patch("handbook_retrieval.boundary.tracking.s3_snapshot_store.boto3.client", return_value=MagicMock()):
            store = get_snapshot_store(_settings("s3"))

        assert isinstance(store, S3SnapshotStore)
        assert store.location == "s3://handbook-retrieval-dev-documents/tracking/document-tracking.json"

    def test_invalid(self) -> None:
        """Should reject unknown store types."""
        with pytest.raises(ValueError):
            get_snapshot_store(_settings("memory"))
