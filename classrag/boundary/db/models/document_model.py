"""
Document ORM model.

Represents uploaded class materials with processing status and metadata.
Tracks the ingestion lifecycle from upload to searchable chunks.

Dependencies: sqlalchemy, classrag.boundary.db.base
System role: Document persistence for ingestion tracking
"""

import enum
import uuid

from sqlalchemy import BigInteger, Enum, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classrag.boundary.db.base import Base, UUIDMixin, TimestampMixin

ERROR_MESSAGE_MAX_LENGTH = 2000


class DocumentStatus(str, enum.Enum):
    """
    Document processing lifecycle states.

    PENDING: Document uploaded, awaiting processing
    PROCESSING: Pipeline is extracting, chunking, and embedding
    COMPLETED: Chunks stored and ready for retrieval
    FAILED: Processing error; error_message field contains details
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DocumentModel(Base, UUIDMixin, TimestampMixin):
    """
    Document ORM model tracking ingestion pipeline state.

    Lifecycle: Upload (PENDING) → processing (PROCESSING) → chunk storage
    (COMPLETED) or failure (FAILED). A FAILED document can be retried,
    which moves it back to PENDING.

    Attributes:
        id: UUID primary key (auto-generated)
        collection_id: Owning collection (class) UUID
        name: Original filename (255 char limit)
        mime_type: Declared MIME type of the upload
        size_bytes: Size of the raw upload
        content_url: Opaque content store handle (s3://bucket/key)
        status: Current processing state
        error_message: Null unless FAILED; truncated to 2000 chars
        created_at: Document upload timestamp (UTC)
        updated_at: Last status change timestamp (UTC)

    Relationships:
        chunks: Derived ChunkModels, deleted with the document
    """

    __tablename__ = "documents"

    collection_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Original filename",
    )

    mime_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    size_bytes: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, native_enum=False),
        nullable=False,
        default=DocumentStatus.PENDING,
    )

    content_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        doc="Content store handle for the raw document",
    )

    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Error details if processing failed",
    )

    # Relationships
    chunks = relationship(
        "ChunkModel",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
