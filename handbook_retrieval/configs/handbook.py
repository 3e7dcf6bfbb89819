"""
Handbook source configuration.

Dependencies: pydantic_settings
System role: Location of the handbook used to seed the shared collection
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HandbookSettings(BaseSettings):
    """Settings for the initial handbook document."""

    model_config = SettingsConfigDict(
        env_prefix="HANDBOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    path: str = Field(
        default="./data/PM_handbook.txt",
        description="Plain-text handbook ingested by the initialisation script",
    )
    document_id: str = Field(
        default="pm-handbook-initial",
        description="Document ID the handbook is tracked under",
    )
    original_name: str = Field(default="PM_handbook.txt", description="Display name")
