"""
Search request/response schemas.

Dependencies: pydantic, classrag.core.retrieval
System role: Search API contracts
"""

from pydantic import BaseModel, Field

from classrag.core.retrieval.models import HierarchicalSearchResult


class SearchRequest(BaseModel):
    """Request schema for RAG search over a collection."""

    query: str = Field(min_length=1, description="Search query text")
    final_k: int | None = Field(default=None, ge=1, le=50, description="Results to return")
    initial_k: int | None = Field(
        default=None, ge=1, le=200, description="Fused candidates before reranking"
    )
    use_reranking: bool | None = Field(default=None, description="Override reranking setting")


class SearchResponse(BaseModel):
    """Search results, best first. An empty list means nothing matched."""

    query: str
    results: list[HierarchicalSearchResult]
    total: int
