"""Tests for local and S3 tracking snapshot stores."""

import hashlib
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from conftest import client_error
from handbook_retrieval.boundary.tracking import LocalSnapshotStore, S3SnapshotStore
from handbook_retrieval.core.document_tracking import DocumentTracker, TrackingSnapshot
from handbook_retrieval.core.exceptions import SnapshotConflictError, StorageUnavailableError, TrackingError


class FakeS3Objects:
    """In-memory S3 client honouring IfMatch / IfNoneMatch on put_object."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.writes = 0

    def get_object(self, Bucket: str, Key: str) -> dict:
        if Key not in self.objects:
            raise client_error("NoSuchKey", "GetObject")
        body, etag = self.objects[Key]
        stream = MagicMock()
        stream.read.return_value = body
        return {"Body": stream, "ETag": etag}

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str, **condition) -> dict:
        current = self.objects.get(Key)
        if "IfNoneMatch" in condition and current is not None:
            raise client_error("PreconditionFailed", "PutObject")
        if "IfMatch" in condition and (current is None or current[1] != condition["IfMatch"]):
            raise client_error("PreconditionFailed", "PutObject")
        self.writes += 1
        etag = f'"{hashlib.md5(Body).hexdigest()}-{self.writes}"'
        self.objects[Key] = (Body, etag)
        return {"ETag": etag}


# ============================================================================
# Local Snapshot Store Tests
# ============================================================================


class TestLocalSnapshotStore:
    """Test the local JSON snapshot store."""

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, tmp_path) -> None:
        """Should report a missing snapshot as None."""
        assert await LocalSnapshotStore(tmp_path / "t.json").load() is None

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip_version(self, tmp_path) -> None:
        """Should return the content hash as version on save and load."""
        store = LocalSnapshotStore(tmp_path / "nested" / "t.json")

        version = await store.save(TrackingSnapshot(total_documents=0), None)
        snapshot, loaded_version = await store.load()

        assert loaded_version == version
        assert version == hashlib.sha256((tmp_path / "nested" / "t.json").read_bytes()).hexdigest()
        assert snapshot.total_documents == 0

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, tmp_path) -> None:
        """Should refuse to overwrite a snapshot changed by another writer."""
        store = LocalSnapshotStore(tmp_path / "t.json")
        first = await store.save(TrackingSnapshot(), None)
        await store.save(TrackingSnapshot(total_chunks=4), first)

        with pytest.raises(SnapshotConflictError):
            await store.save(TrackingSnapshot(total_chunks=9), first)

    @pytest.mark.asyncio
    async def test_create_conflicts_when_present(self, tmp_path) -> None:
        """Should refuse a create-only save when the file exists."""
        store = LocalSnapshotStore(tmp_path / "t.json")
        await store.save(TrackingSnapshot(), None)

        with pytest.raises(SnapshotConflictError):
            await store.save(TrackingSnapshot(), None)

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_tracking_error(self, tmp_path) -> None:
        """Should raise TrackingError for unparsable content."""
        path = tmp_path / "t.json"
        path.write_text('{"documents": 5}')

        with pytest.raises(TrackingError):
            await LocalSnapshotStore(path).load()


# ============================================================================
# S3 Snapshot Store Tests
# ============================================================================


class TestS3SnapshotStore:
    """Test the S3 snapshot store and its conditional writes."""

    def test_requires_bucket(self) -> None:
        """Should raise ValueError without a bucket."""
        with pytest.raises(ValueError):
            S3SnapshotStore(bucket="", client=MagicMock())

    def test_location(self) -> None:
        """Should describe the object as an s3:// URL."""
        store = S3SnapshotStore(bucket="docs", key="tracking/t.json", client=MagicMock())

        assert store.location == "s3://docs/tracking/t.json"

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self) -> None:
        """Should map NoSuchKey to None."""
        store = S3SnapshotStore(bucket="docs", client=FakeS3Objects())

        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_first_save_is_create_only(self) -> None:
        """Should send IfNoneMatch when no version was loaded."""
        client = MagicMock()
        client.put_object.return_value = {"ETag": '"v1"'}
        store = S3SnapshotStore(bucket="docs", client=client)

        version = await store.save(TrackingSnapshot(), None)

        assert version == '"v1"'
        assert client.put_object.call_args.kwargs["IfNoneMatch"] == "*"
        assert "IfMatch" not in client.put_object.call_args.kwargs

    @pytest.mark.asyncio
    async def test_update_uses_if_match(self) -> None:
        """Should send IfMatch with the loaded ETag."""
        client = MagicMock()
        client.put_object.return_value = {"ETag": '"v2"'}
        store = S3SnapshotStore(bucket="docs", client=client)

        await store.save(TrackingSnapshot(), '"v1"')

        assert client.put_object.call_args.kwargs["IfMatch"] == '"v1"'

    @pytest.mark.asyncio
    async def test_precondition_failure_is_conflict(self) -> None:
        """Should raise SnapshotConflictError on 412."""
        client = MagicMock()
        client.put_object.side_effect = client_error("PreconditionFailed", "PutObject")
        store = S3SnapshotStore(bucket="docs", client=client)

        with pytest.raises(SnapshotConflictError):
            await store.save(TrackingSnapshot(), '"stale"')

    @pytest.mark.asyncio
    async def test_missing_bucket_is_unavailable(self) -> None:
        """Should raise StorageUnavailableError for NoSuchBucket."""
        client = MagicMock()
        client.get_object.side_effect = client_error("NoSuchBucket", "GetObject")
        store = S3SnapshotStore(bucket="docs", client=client)

        with pytest.raises(StorageUnavailableError):
            await store.load()

    @pytest.mark.asyncio
    async def test_connection_failure_is_unavailable(self) -> None:
        """Should raise StorageUnavailableError when S3 cannot be reached."""
        client = MagicMock()
        client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.invalid")
        store = S3SnapshotStore(bucket="docs", client=client)

        with pytest.raises(StorageUnavailableError):
            await store.save(TrackingSnapshot(), None)

    @pytest.mark.asyncio
    async def test_corrupt_object_raises_tracking_error(self) -> None:
        """Should raise TrackingError when the object is not a snapshot."""
        client = FakeS3Objects()
        client.objects["tracking/document-tracking.json"] = (b"not json", '"v1"')
        store = S3SnapshotStore(bucket="docs", client=client)

        with pytest.raises(TrackingError):
            await store.load()

    @pytest.mark.asyncio
    async def test_trackers_share_snapshot_through_s3(self) -> None:
        """Should merge updates from two trackers writing the same object."""
        client = FakeS3Objects()
        first = DocumentTracker(S3SnapshotStore(bucket="docs", client=client))
        second = DocumentTracker(S3SnapshotStore(bucket="docs", client=client))
        await first.initialize()
        await second.initialize()

        await first.add_document("doc1", "doc1.txt", 1, ["doc1-chunk-0"])
        await second.add_document("doc2", "doc2.txt", 2, ["doc2-chunk-0", "doc2-chunk-1"])

        await first.reload()
        stats = await first.get_stats()
        assert stats.total_documents == 2
        assert stats.total_chunks == 3
