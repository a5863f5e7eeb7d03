"""
Chunk ORM model.

Stores the parent/child chunk hierarchy derived from a document. CHILD
rows carry embeddings for vector search; PARENT rows carry the wider
context returned with search hits. Both carry a generated tsvector for
lexical (BM25-style) ranking.

Dependencies: sqlalchemy, pgvector, classrag.boundary.db.base
System role: Chunk persistence backing hybrid retrieval
"""

import enum
import uuid
from datetime import datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    Computed,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classrag.boundary.db.base import Base, utc_now
from classrag.configs import get_settings

EMBEDDING_DIMENSION = get_settings().pipeline.embedding_dimension
TEXT_SEARCH_CONFIG = get_settings().retrieval.text_search_config


class ChunkType(str, enum.Enum):
    """Level of a chunk in the hierarchy."""

    PARENT = "PARENT"
    CHILD = "CHILD"


class ChunkModel(Base):
    """
    Chunk ORM model.

    Attributes:
        id: Deterministic id (parent_{document_id}_{i} / child_{document_id}_{i})
        document_id: Owning document (cascade delete)
        collection_id: Owning collection, denormalized for search filters
        content: Chunk text with image sentinels removed
        embedding: Vector for CHILD rows, null for PARENT rows
        chunk_index: Position within (document, chunk_type)
        chunk_type: PARENT or CHILD
        parent_id: PARENT row id for CHILD rows
        page_number: 1-based page of the chunk start, if known
        section: Detected section heading
        has_images: Whether image descriptions were attached
        image_desc: Image description text moved out of content
        chunk_metadata: {"start_char": int, "end_char": int}
        content_tsv: Generated tsvector over content
    """

    __tablename__ = "document_chunks"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    collection_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
    )

    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)

    chunk_type: Mapped[ChunkType] = mapped_column(
        Enum(ChunkType, native_enum=False),
        nullable=False,
    )

    parent_id: Mapped[str | None] = mapped_column(
        String(255),
        ForeignKey("document_chunks.id", ondelete="CASCADE"),
        nullable=True,
    )

    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    section: Mapped[str | None] = mapped_column(String(512), nullable=True)
    has_images: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    image_desc: Mapped[str | None] = mapped_column(Text, nullable=True)

    chunk_metadata: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    content_tsv = mapped_column(
        TSVECTOR,
        Computed(f"to_tsvector('{TEXT_SEARCH_CONFIG}', content)", persisted=True),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    # Relationships
    document = relationship("DocumentModel", back_populates="chunks")

    __table_args__ = (
        UniqueConstraint(
            "document_id", "chunk_type", "chunk_index", name="uq_chunk_position"
        ),
        Index("ix_document_chunks_collection_type", "collection_id", "chunk_type"),
        Index("ix_document_chunks_document_id", "document_id"),
        Index("ix_document_chunks_parent_id", "parent_id"),
        Index("ix_document_chunks_content_tsv", "content_tsv", postgresql_using="gin"),
        Index(
            "ix_document_chunks_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": 16, "ef_construction": 64},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )
