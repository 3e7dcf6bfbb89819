"""
Document tracking configuration settings.

The snapshot lives next to the vectors: a JSON file in the local data
directory, or an S3 object when the S3 Vectors backend is active.

Dependencies: pydantic, pydantic_settings
System role: Document tracking snapshot location
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackingSettings(BaseSettings):
    """Settings for the document tracking snapshot."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKING_",
        case_sensitive=False,
        extra="ignore",
    )

    file_name: str = Field(
        default="document-tracking.json",
        description="Snapshot file name inside the local data directory",
    )
    bucket: str = Field(
        default="handbook-retrieval-dev-documents",
        description="S3 bucket holding the snapshot (s3 mode)",
    )
    key: str = Field(
        default="tracking/document-tracking.json",
        description="S3 object key of the snapshot",
    )
    region: str = Field(default="ap-southeast-2", description="AWS region for the bucket")
    max_write_attempts: int = Field(
        default=3,
        description="Attempts for snapshot writes before giving up",
        ge=1,
    )
