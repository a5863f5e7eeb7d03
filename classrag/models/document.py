"""
Document domain models and schemas.

Request/response schemas for document upload, listing, and lifecycle
operations.

Dependencies: pydantic
System role: Document API contracts
"""

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentFile(BaseModel):
    """One file handed to the document service for submission."""

    name: str = Field(description="Original filename")
    mime_type: str = Field(description="Declared MIME type")
    data: bytes = Field(repr=False)


class DocumentResponse(BaseModel):
    """Response schema for document operations."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    collection_id: uuid.UUID
    name: str
    mime_type: str
    size_bytes: int
    status: str
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    chunk_count: int | None = Field(
        default=None,
        description="Number of searchable (child) chunks, when requested",
    )

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, value):
        return value.value if isinstance(value, enum.Enum) else value


class FailedUpload(BaseModel):
    """A file rejected before processing could be scheduled."""

    name: str
    error: str


class BatchUploadResponse(BaseModel):
    """Result of a multi-file submission; accepted files are processed in order."""

    uploaded: list[DocumentResponse] = Field(default_factory=list)
    failed: list[FailedUpload] = Field(default_factory=list)


class DocumentListResponse(BaseModel):
    """Documents of a collection."""

    documents: list[DocumentResponse]
    total: int
