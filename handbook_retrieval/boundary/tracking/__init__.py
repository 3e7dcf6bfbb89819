"""
Document tracking persistence.

- LocalSnapshotStore: JSON file beside the collection files
- S3SnapshotStore: S3 object with ETag-conditional writes
"""

from handbook_retrieval.boundary.tracking.base import SnapshotStore
from handbook_retrieval.boundary.tracking.local_snapshot_store import LocalSnapshotStore
from handbook_retrieval.boundary.tracking.s3_snapshot_store import S3SnapshotStore

__all__ = ["SnapshotStore", "LocalSnapshotStore", "S3SnapshotStore"]
