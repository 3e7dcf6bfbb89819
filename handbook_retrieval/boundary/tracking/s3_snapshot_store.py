"""
S3 snapshot store.

Keeps the tracking snapshot as a single S3 object
(``tracking/document-tracking.json`` by default). The version token is the
object's ETag, and writes are conditional (``IfMatch`` / ``IfNoneMatch``),
so two processes cannot silently overwrite each other's updates.

Dependencies: boto3, botocore
System role: Production persistence target for DocumentTracker
"""

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from handbook_retrieval.boundary.tracking.base import SnapshotStore
from handbook_retrieval.core.document_tracking.models import TrackingSnapshot
from handbook_retrieval.core.exceptions import (
    SnapshotConflictError,
    StorageUnavailableError,
    TrackingError,
)

logger = logging.getLogger(__name__)

MISSING_CODES = {"NoSuchKey", "404", "NotFound"}
CONFLICT_CODES = {"PreconditionFailed", "412", "ConditionalRequestConflict", "409"}


class S3SnapshotStore(SnapshotStore):
    """Tracking snapshot stored as an S3 object with ETag-conditional writes."""

    def __init__(
        self,
        bucket: str,
        key: str = "tracking/document-tracking.json",
        region: str = "ap-southeast-2",
        client: Any | None = None,
    ) -> None:
        """
        Initialize S3 snapshot store.

        Args:
            bucket: S3 bucket name
            key: Object key of the snapshot
            region: AWS region for the bucket
            client: Optional pre-built boto3 S3 client

        Raises:
            ValueError: If bucket is empty
        """
        if not bucket:
            raise ValueError("bucket is required")

        self._bucket = bucket
        self._key = key
        self._s3_client = client or boto3.client("s3", region_name=region)
        self.location = f"s3://{bucket}/{key}"

    def _unavailable(self, operation: str, error: Exception) -> StorageUnavailableError:
        return StorageUnavailableError(
            "S3 tracking snapshot is unavailable",
            operation=operation,
            backend="s3",
            details={"location": self.location, "error": str(error)},
        )

    async def load(self) -> tuple[TrackingSnapshot, str] | None:
        try:
            response = await asyncio.to_thread(
                self._s3_client.get_object,
                Bucket=self._bucket,
                Key=self._key,
            )
            body = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in MISSING_CODES:
                return None
            if code == "NoSuchBucket":
                raise self._unavailable("load", e) from e
            raise TrackingError(
                f"Failed to read tracking snapshot: {code}",
                operation="load",
                details={"location": self.location, "error": str(e)},
            ) from e
        except BotoCoreError as e:
            raise self._unavailable("load", e) from e

        try:
            snapshot = TrackingSnapshot.from_json(body)
        except PydanticValidationError as e:
            raise TrackingError(
                "Tracking snapshot is corrupt",
                operation="load",
                details={"location": self.location, "error": str(e)},
            ) from e
        return snapshot, response["ETag"]

    async def save(self, snapshot: TrackingSnapshot, expected_version: str | None) -> str:
        condition = {"IfMatch": expected_version} if expected_version else {"IfNoneMatch": "*"}
        try:
            response = await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._bucket,
                Key=self._key,
                Body=snapshot.to_json().encode("utf-8"),
                ContentType="application/json",
                **condition,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in CONFLICT_CODES:
                raise SnapshotConflictError(
                    "Tracking snapshot changed since it was loaded",
                    operation="save",
                    details={"location": self.location, "code": code},
                ) from e
            if code == "NoSuchBucket":
                raise self._unavailable("save", e) from e
            raise TrackingError(
                f"Failed to write tracking snapshot: {code}",
                operation="save",
                details={"location": self.location, "error": str(e)},
            ) from e
        except BotoCoreError as e:
            raise self._unavailable("save", e) from e

        logger.debug(f"{__name__}:save - Wrote tracking snapshot to {self.location}")
        return response["ETag"]
