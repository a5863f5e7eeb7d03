"""
Content store configuration.

Settings for the S3 bucket holding raw uploaded documents.

Dependencies: pydantic_settings
System role: Content store (blob) configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContentStoreSettings(BaseSettings):
    """Settings for the raw document bucket."""

    model_config = SettingsConfigDict(
        env_prefix="S3_DOCUMENTS_",
        case_sensitive=False,
        extra="ignore",
    )

    bucket: str = Field(
        default="classrag-dev-documents",
        description="S3 bucket for raw document storage",
    )
    region: str = Field(
        default="ap-southeast-2",
        description="AWS region for S3 bucket",
    )
    key_prefix: str = Field(
        default="class-files",
        description="Key prefix for uploaded documents",
    )
