"""
Chunk store query schemas.

Pydantic models returned by chunk searches and parent lookups, so callers
never hold ORM rows outside their session.

Dependencies: pydantic
System role: Type definitions for chunk store reads
"""

from uuid import UUID

from pydantic import BaseModel, Field


class ScoredChunk(BaseModel):
    """Single CHILD chunk returned by a vector or lexical search."""

    chunk_id: str = Field(description="Chunk identifier")
    content: str = Field(description="Chunk text content")
    document_id: UUID
    document_name: str
    chunk_index: int
    parent_id: str | None = None
    page_number: int | None = None
    section: str | None = None
    has_images: bool = False
    image_desc: str | None = None
    score: float = Field(description="Raw similarity (vector) or rank (lexical)")


class ParentContext(BaseModel):
    """PARENT chunk content used to hydrate search results."""

    id: str
    content: str
    section: str | None = None
    page_number: int | None = None
