"""
Retrieval result models.

Dependencies: pydantic
System role: Types returned by hybrid search and reranking
"""

from uuid import UUID

from pydantic import BaseModel, Field

from classrag.boundary.db.schemas import ScoredChunk


class FusedChunk(BaseModel):
    """A child chunk with its normalized per-search scores and fused score."""

    chunk: ScoredChunk
    vector_score: float = Field(default=0.0, description="Normalized vector score, 0 if absent")
    bm25_score: float = Field(default=0.0, description="Normalized lexical score, 0 if absent")
    score: float = Field(description="Weighted combination of both scores")


class HierarchicalSearchResult(BaseModel):
    """Matched child chunk hydrated with its parent's context."""

    chunk_id: str
    content: str
    score: float
    document_id: UUID
    document_name: str
    chunk_index: int
    page_number: int | None = None
    section: str | None = None
    parent_content: str | None = None
    image_desc: str | None = None
    has_images: bool = False


class RerankedCandidate(BaseModel):
    """Position of a candidate in the reranker input and its 0-10 relevance score."""

    index: int
    score: float
