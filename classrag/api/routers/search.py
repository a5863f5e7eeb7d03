"""
Search API endpoints.

Routes: POST /collections/{id}/search

Dependencies: classrag.application.services, classrag.models
System role: RAG retrieval HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from classrag.api.deps import get_retrieval_service
from classrag.application.services.retrieval_service import RetrievalService
from classrag.core.exceptions import SearchError, ValidationError
from classrag.models.search import SearchRequest, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["search"])


@router.post("/{collection_id}/search", response_model=SearchResponse)
async def search_collection(
    collection_id: UUID,
    request: SearchRequest,
    retrieval_service: RetrievalService = Depends(get_retrieval_service),
) -> SearchResponse:
    """
    Retrieve the most relevant chunks of a collection.

    An empty result list means nothing matched; a failed search is a 502.

    Args:
        collection_id: Collection UUID
        request: Query and optional k / reranking overrides
        retrieval_service: Injected RetrievalService

    Returns:
        SearchResponse: Results, best first, each with its parent context

    Raises:
        HTTPException(400): Blank query
        HTTPException(502): Retrieval or reranking failed
    """
    try:
        results = await retrieval_service.rag_search(
            collection_id,
            request.query,
            initial_k=request.initial_k,
            final_k=request.final_k,
            use_reranking=request.use_reranking,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SearchError as e:
        logger.error(
            f"{__name__}:search_collection - Search failed: {e}",
            extra={"collection_id": str(collection_id)},
        )
        raise HTTPException(status_code=502, detail="Search failed")

    return SearchResponse(query=request.query, results=results, total=len(results))
