"""
Local file snapshot store.

Keeps the tracking snapshot at ``<data_dir>/document-tracking.json`` next to
the collection files. The version token is the SHA-256 of the file content.

Dependencies: hashlib, json (via pydantic), asyncio
System role: Development persistence target for DocumentTracker
"""

import asyncio
import hashlib
import logging
import os
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from handbook_retrieval.boundary.tracking.base import SnapshotStore
from handbook_retrieval.core.document_tracking.models import TrackingSnapshot
from handbook_retrieval.core.exceptions import (
    SnapshotConflictError,
    StorageUnavailableError,
    TrackingError,
)

logger = logging.getLogger(__name__)


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class LocalSnapshotStore(SnapshotStore):
    """Tracking snapshot stored as a local JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self.location = str(self._path)

    def _read(self) -> tuple[TrackingSnapshot, str] | None:
        try:
            content = self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailableError(
                "Cannot read tracking snapshot",
                operation="load",
                backend="local",
                details={"path": self.location, "error": str(e)},
            ) from e

        try:
            return TrackingSnapshot.from_json(content), _digest(content)
        except PydanticValidationError as e:
            raise TrackingError(
                "Tracking snapshot is corrupt",
                operation="load",
                details={"path": self.location, "error": str(e)},
            ) from e

    def _write(self, snapshot: TrackingSnapshot, expected_version: str | None) -> str:
        try:
            current = _digest(self._path.read_bytes()) if self._path.exists() else None
            if current != expected_version:
                raise SnapshotConflictError(
                    "Tracking snapshot changed since it was loaded",
                    operation="save",
                    details={"path": self.location},
                )

            content = snapshot.to_json().encode("utf-8")
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            tmp_path.write_bytes(content)
            os.replace(tmp_path, self._path)
            return _digest(content)
        except OSError as e:
            raise StorageUnavailableError(
                "Cannot write tracking snapshot",
                operation="save",
                backend="local",
                details={"path": self.location, "error": str(e)},
            ) from e

    async def load(self) -> tuple[TrackingSnapshot, str] | None:
        return await asyncio.to_thread(self._read)

    async def save(self, snapshot: TrackingSnapshot, expected_version: str | None) -> str:
        version = await asyncio.to_thread(self._write, snapshot, expected_version)
        logger.debug(f"{__name__}:save - Wrote tracking snapshot to {self.location}")
        return version
