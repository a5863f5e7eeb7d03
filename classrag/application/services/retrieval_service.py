"""
Retrieval service.

RAG search over a collection: hybrid retrieval of initial_k fused
candidates, then optional LLM reranking down to final_k.

Dependencies: classrag.core.retrieval, classrag.configs
System role: Query-time entry point for RAG context retrieval
"""

import logging
from uuid import UUID

from classrag.configs.retrieval import RetrievalSettings
from classrag.core.retrieval.hybrid_retriever import HybridRetriever
from classrag.core.retrieval.models import HierarchicalSearchResult
from classrag.core.retrieval.reranker import MAX_RERANK_SCORE, LLMReranker

logger = logging.getLogger(__name__)


class RetrievalService:
    """Hybrid search plus optional reranking."""

    def __init__(
        self,
        retriever: HybridRetriever,
        reranker: LLMReranker | None = None,
        settings: RetrievalSettings | None = None,
    ) -> None:
        """
        Initialize retrieval service.

        Args:
            retriever: Hybrid retrieval engine
            reranker: LLM reranker (reranking is skipped when None)
            settings: Retrieval defaults (k values, weights, reranking flag)
        """
        self._retriever = retriever
        self._reranker = reranker
        self._settings = settings or RetrievalSettings()

    async def rag_search(
        self,
        collection_id: UUID,
        query: str,
        initial_k: int | None = None,
        final_k: int | None = None,
        use_reranking: bool | None = None,
    ) -> list[HierarchicalSearchResult]:
        """
        Retrieve the best chunks of a collection for a query.

        With reranking enabled and more than one candidate, the reranker's
        order replaces the fused order and each score becomes the rerank
        score divided by 10. Otherwise the fused list is cut to final_k.

        Args:
            collection_id: Collection to search
            query: Free-text query
            initial_k: Fused candidates to retrieve (settings default 30)
            final_k: Results to return (settings default 5)
            use_reranking: Override the configured reranking flag

        Returns:
            list[HierarchicalSearchResult]: At most final_k results, best first

        Raises:
            ValidationError: Blank query
            SearchError: Retrieval or reranking failed
        """
        initial_k = initial_k or self._settings.initial_k
        final_k = final_k or self._settings.final_k
        if use_reranking is None:
            use_reranking = self._settings.use_reranking
        initial_k = max(initial_k, final_k)

        candidates = await self._retriever.search(
            collection_id,
            query,
            top_k=initial_k,
            vector_weight=self._settings.vector_weight,
            bm25_weight=self._settings.bm25_weight,
        )

        if not use_reranking or self._reranker is None or len(candidates) <= 1:
            return candidates[:final_k]

        ranked = await self._reranker.rerank(query, candidates, final_k)
        results = [
            candidates[item.index].model_copy(update={"score": item.score / MAX_RERANK_SCORE})
            for item in ranked
        ]
        logger.info(
            f"{__name__}:rag_search - Reranked search results",
            extra={
                "collection_id": str(collection_id),
                "candidate_count": len(candidates),
                "result_count": len(results),
            },
        )
        return results
