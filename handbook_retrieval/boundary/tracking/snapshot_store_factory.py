"""
Snapshot store factory.

The tracking snapshot follows the vector backend: a local file beside the
collection files, or an S3 object when S3 Vectors is active.

Dependencies: handbook_retrieval.configs
System role: Snapshot store selection
"""

import logging
from pathlib import Path

from handbook_retrieval.boundary.tracking.base import SnapshotStore
from handbook_retrieval.boundary.tracking.local_snapshot_store import LocalSnapshotStore
from handbook_retrieval.boundary.tracking.s3_snapshot_store import S3SnapshotStore
from handbook_retrieval.configs import Settings, get_settings

logger = logging.getLogger(__name__)


def get_snapshot_store(settings: Settings | None = None) -> SnapshotStore:
    """
    Build the snapshot store matching the configured storage mode.

    Raises:
        ValueError: If VECTOR_STORE_STORE_TYPE is invalid
    """
    settings = settings or get_settings()
    store_type = settings.vector_store.store_type.lower()

    if store_type == "local":
        path = Path(settings.vector_store.data_dir) / settings.tracking.file_name
        logger.info(f"{__name__}:get_snapshot_store - Tracking snapshot at {path}")
        return LocalSnapshotStore(path)

    if store_type == "s3":
        logger.info(
            f"{__name__}:get_snapshot_store - Tracking snapshot at "
            f"s3://{settings.tracking.bucket}/{settings.tracking.key}"
        )
        return S3SnapshotStore(
            bucket=settings.tracking.bucket,
            key=settings.tracking.key,
            region=settings.tracking.region,
        )

    raise ValueError(f"Invalid VECTOR_STORE_STORE_TYPE: {store_type}. Must be 'local' or 's3'.")
