"""
Hybrid retrieval engine.

Embeds the query once, runs vector and lexical searches over CHILD chunks
concurrently, fuses the max-normalized scores, and hydrates the survivors
with their parent chunk content.

Dependencies: sqlalchemy, classrag.boundary.db, classrag.core.document_processing
System role: First-pass retrieval for RAG search
"""

import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classrag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from classrag.boundary.db.schemas import ScoredChunk
from classrag.core.document_processing.tasks.embedding_task import EmbeddingTask
from classrag.core.exceptions import SearchError, ValidationError

from .models import FusedChunk, HierarchicalSearchResult
from .score_fusion import fuse_results

logger = logging.getLogger(__name__)


class HybridRetriever:
    """Vector + lexical search with weighted score fusion and parent hydration."""

    def __init__(
        self,
        embedding_task: EmbeddingTask,
        session_factory: async_sessionmaker[AsyncSession],
        chunk_repository: ChunkCRUD | None = None,
        overfetch_factor: int = 3,
        min_similarity: float = 0.5,
    ) -> None:
        """
        Initialize hybrid retriever.

        Args:
            embedding_task: Client used to embed the query
            session_factory: Factory for the per-search database sessions
            chunk_repository: Chunk store (module singleton if None)
            overfetch_factor: Candidates per search = top_k * overfetch_factor
            min_similarity: Cosine similarity floor for vector candidates
        """
        self._embedding_task = embedding_task
        self._session_factory = session_factory
        self._chunks = chunk_repository or chunk_crud
        self._overfetch_factor = max(1, overfetch_factor)
        self._min_similarity = min_similarity

    async def search(
        self,
        collection_id: UUID,
        query: str,
        top_k: int = 10,
        vector_weight: float = 0.7,
        bm25_weight: float = 0.3,
    ) -> list[HierarchicalSearchResult]:
        """
        Search a collection's child chunks.

        Args:
            collection_id: Collection to search
            query: Free-text query
            top_k: Number of fused results to return
            vector_weight: Weight of normalized vector similarity
            bm25_weight: Weight of normalized lexical rank

        Returns:
            list[HierarchicalSearchResult]: Highest combined score first;
            empty only when nothing matched

        Raises:
            ValidationError: Blank query or non-positive top_k
            SearchError: Embedding, database, or hydration failure
        """
        if not query or not query.strip():
            raise ValidationError("Query cannot be empty", field="query")
        if top_k <= 0:
            raise ValidationError("top_k must be positive", field="top_k")

        try:
            query_embedding = await self._embedding_task.embed_query(query)
            candidate_limit = top_k * self._overfetch_factor
            vector_results, lexical_results = await asyncio.gather(
                self._vector_search(collection_id, query_embedding, candidate_limit),
                self._lexical_search(collection_id, query, candidate_limit),
            )

            fused = fuse_results(
                vector_results,
                lexical_results,
                vector_weight=vector_weight,
                bm25_weight=bm25_weight,
                top_k=top_k,
            )
            results = await self._hydrate(fused)
        except Exception as e:
            logger.error(
                f"{__name__}:search - {type(e).__name__}: {e}",
                extra={"collection_id": str(collection_id)},
            )
            raise SearchError(
                f"Hybrid search failed: {e}",
                collection_id=str(collection_id),
            ) from e

        logger.info(
            f"{__name__}:search - Hybrid search complete",
            extra={
                "collection_id": str(collection_id),
                "vector_count": len(vector_results),
                "lexical_count": len(lexical_results),
                "result_count": len(results),
            },
        )
        return results

    async def _vector_search(
        self,
        collection_id: UUID,
        query_embedding: list[float],
        limit: int,
    ) -> list[ScoredChunk]:
        async with self._session_factory() as session:
            return await self._chunks.vector_search(
                session,
                collection_id,
                query_embedding,
                limit,
                min_similarity=self._min_similarity,
            )

    async def _lexical_search(
        self,
        collection_id: UUID,
        query: str,
        limit: int,
    ) -> list[ScoredChunk]:
        async with self._session_factory() as session:
            return await self._chunks.lexical_search(session, collection_id, query, limit)

    async def _hydrate(self, fused: list[FusedChunk]) -> list[HierarchicalSearchResult]:
        """Attach parent content with one batched lookup; dangling parents give None."""
        if not fused:
            return []

        parent_ids = [item.chunk.parent_id for item in fused if item.chunk.parent_id]
        async with self._session_factory() as session:
            parents = await self._chunks.get_parents(session, parent_ids)

        results = []
        for item in fused:
            chunk = item.chunk
            parent = parents.get(chunk.parent_id) if chunk.parent_id else None
            results.append(
                HierarchicalSearchResult(
                    chunk_id=chunk.chunk_id,
                    content=chunk.content,
                    score=item.score,
                    document_id=chunk.document_id,
                    document_name=chunk.document_name,
                    chunk_index=chunk.chunk_index,
                    page_number=chunk.page_number,
                    section=chunk.section or (parent.section if parent else None),
                    parent_content=parent.content if parent else None,
                    image_desc=chunk.image_desc,
                    has_images=chunk.has_images,
                )
            )
        return results
