"""
Chunk store operations.

Bulk persistence of the parent/child chunk hierarchy plus the two
retrieval primitives used by hybrid search: cosine similarity over CHILD
embeddings (pgvector) and ts_rank_cd over the generated tsvector.

Dependencies: sqlalchemy, pgvector, classrag.boundary.db.models
System role: Chunk persistence and search backing the retrieval engine
"""

import logging
import re
from typing import Sequence
from uuid import UUID

from sqlalchemy import cast, delete, func, insert, select
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from classrag.boundary.db.models.chunk_model import TEXT_SEARCH_CONFIG, ChunkModel, ChunkType
from classrag.boundary.db.models.document_model import DocumentModel
from classrag.boundary.db.schemas import ParentContext, ScoredChunk
from classrag.core.document_processing.models import ChildChunk, ParentChunk
from classrag.core.exceptions import StorageTransactionError

logger = logging.getLogger(__name__)

_TERM_PATTERN = re.compile(r"\w+", re.UNICODE)


def build_or_tsquery(query: str) -> str:
    """
    Turn free text into an OR-of-terms tsquery expression.

    Args:
        query: Raw user query

    Returns:
        str: e.g. "photosynthesis | light", empty when the query has no terms
    """
    terms = [term.lower() for term in _TERM_PATTERN.findall(query)]
    unique_terms = list(dict.fromkeys(terms))
    return " | ".join(unique_terms)


class ChunkCRUD:
    """Repository for ChunkModel rows."""

    def __init__(self) -> None:
        # Queries must stem with the same configuration as the generated tsvector
        self.text_search_config = TEXT_SEARCH_CONFIG

    async def insert_chunks(
        self,
        session: AsyncSession,
        document_id: UUID,
        collection_id: UUID,
        parents: list[ParentChunk],
        children: list[ChildChunk],
        embeddings: list[list[float]],
        dimension: int | None = None,
    ) -> int:
        """
        Insert all parents and children of a document in one transaction.

        Parents are inserted before children so every CHILD parent_id
        resolves. On success the transaction is committed; on any failure
        it is rolled back and nothing is left behind.

        Args:
            session: Async database session
            document_id: Owning document UUID
            collection_id: Owning collection UUID
            parents: Parent chunks
            children: Child chunks, aligned with embeddings
            embeddings: One vector per child
            dimension: Expected vector length, checked when given

        Returns:
            int: Total number of rows inserted

        Raises:
            StorageTransactionError: Invalid linkage or vectors, or the insert failed
        """
        self._validate(document_id, parents, children, embeddings, dimension)

        parent_rows = [
            {
                "id": parent.id,
                "document_id": document_id,
                "collection_id": collection_id,
                "content": parent.content,
                "embedding": None,
                "chunk_index": parent.index,
                "chunk_type": ChunkType.PARENT,
                "parent_id": None,
                "page_number": parent.page_number,
                "section": parent.section,
                "has_images": parent.has_images,
                "image_desc": parent.image_desc,
                "chunk_metadata": parent.metadata.as_dict(),
            }
            for parent in parents
        ]
        child_rows = [
            {
                "id": child.id,
                "document_id": document_id,
                "collection_id": collection_id,
                "content": child.content,
                "embedding": embedding,
                "chunk_index": child.index,
                "chunk_type": ChunkType.CHILD,
                "parent_id": child.parent_id,
                "page_number": child.page_number,
                "section": child.section,
                "has_images": child.has_images,
                "image_desc": child.image_desc,
                "chunk_metadata": child.metadata.as_dict(),
            }
            for child, embedding in zip(children, embeddings)
        ]

        try:
            await session.execute(insert(ChunkModel), parent_rows)
            if child_rows:
                await session.execute(insert(ChunkModel), child_rows)
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(
                f"{__name__}:insert_chunks - {type(e).__name__}: {e}",
                extra={"document_id": str(document_id)},
            )
            raise StorageTransactionError(
                f"Failed to store chunks: {e}",
                document_id=str(document_id),
            ) from e

        logger.info(
            f"{__name__}:insert_chunks - Stored chunks",
            extra={
                "document_id": str(document_id),
                "parent_count": len(parent_rows),
                "child_count": len(child_rows),
            },
        )
        return len(parent_rows) + len(child_rows)

    def _validate(
        self,
        document_id: UUID,
        parents: list[ParentChunk],
        children: list[ChildChunk],
        embeddings: list[list[float]],
        dimension: int | None,
    ) -> None:
        doc_id = str(document_id)
        if not parents:
            raise StorageTransactionError("No parent chunks to store", document_id=doc_id)
        if len(children) != len(embeddings):
            raise StorageTransactionError(
                f"Embedding count {len(embeddings)} does not match child count {len(children)}",
                document_id=doc_id,
            )
        parent_ids = {parent.id for parent in parents}
        for child in children:
            if child.parent_id not in parent_ids:
                raise StorageTransactionError(
                    f"Child {child.id} references unknown parent {child.parent_id}",
                    document_id=doc_id,
                )
        if dimension is not None:
            for embedding in embeddings:
                if len(embedding) != dimension:
                    raise StorageTransactionError(
                        f"Embedding dimension {len(embedding)} does not match {dimension}",
                        document_id=doc_id,
                    )

    async def delete_chunks_for_document(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> int:
        """
        Delete every chunk of a document. Safe to call when none exist.

        Children go first so no parent delete has to cascade.

        Returns:
            int: Number of rows deleted
        """
        children = await session.execute(
            delete(ChunkModel).where(
                ChunkModel.document_id == document_id,
                ChunkModel.chunk_type == ChunkType.CHILD,
            )
        )
        parents = await session.execute(
            delete(ChunkModel).where(ChunkModel.document_id == document_id)
        )
        return (children.rowcount or 0) + (parents.rowcount or 0)

    async def vector_search(
        self,
        session: AsyncSession,
        collection_id: UUID,
        query_embedding: list[float],
        limit: int,
        min_similarity: float = 0.0,
    ) -> list[ScoredChunk]:
        """
        Nearest CHILD chunks of a collection by cosine distance.

        Args:
            session: Async database session
            collection_id: Collection to search
            query_embedding: Query vector
            limit: Maximum rows
            min_similarity: Cosine similarity floor (1 - distance)

        Returns:
            list[ScoredChunk]: Ordered by similarity, highest first
        """
        distance = ChunkModel.embedding.cosine_distance(query_embedding)
        similarity = (1 - distance).label("similarity")
        stmt = (
            select(ChunkModel, DocumentModel.name, similarity)
            .join(DocumentModel, DocumentModel.id == ChunkModel.document_id)
            .where(
                ChunkModel.collection_id == collection_id,
                ChunkModel.chunk_type == ChunkType.CHILD,
                ChunkModel.embedding.is_not(None),
                (1 - distance) >= min_similarity,
            )
            .order_by(distance)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [
            self._to_scored(chunk, document_name, score)
            for chunk, document_name, score in result.all()
        ]

    async def lexical_search(
        self,
        session: AsyncSession,
        collection_id: UUID,
        query: str,
        limit: int,
    ) -> list[ScoredChunk]:
        """
        CHILD chunks of a collection ranked by ts_rank_cd.

        Any query term may match (OR semantics). A query without word
        characters returns no rows without touching the database.

        Returns:
            list[ScoredChunk]: Ordered by rank, highest first
        """
        tsquery_text = build_or_tsquery(query)
        if not tsquery_text:
            return []

        tsquery = func.to_tsquery(cast(self.text_search_config, REGCONFIG), tsquery_text)
        rank = func.ts_rank_cd(ChunkModel.content_tsv, tsquery).label("rank")
        stmt = (
            select(ChunkModel, DocumentModel.name, rank)
            .join(DocumentModel, DocumentModel.id == ChunkModel.document_id)
            .where(
                ChunkModel.collection_id == collection_id,
                ChunkModel.chunk_type == ChunkType.CHILD,
                ChunkModel.content_tsv.op("@@")(tsquery),
            )
            .order_by(rank.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [
            self._to_scored(chunk, document_name, score)
            for chunk, document_name, score in result.all()
        ]

    async def get_parents(
        self,
        session: AsyncSession,
        parent_ids: Sequence[str],
    ) -> dict[str, ParentContext]:
        """
        Fetch PARENT chunks by id in one query.

        Ids with no matching row are absent from the result.
        """
        unique_ids = list(dict.fromkeys(pid for pid in parent_ids if pid))
        if not unique_ids:
            return {}
        stmt = select(ChunkModel).where(
            ChunkModel.id.in_(unique_ids),
            ChunkModel.chunk_type == ChunkType.PARENT,
        )
        result = await session.execute(stmt)
        return {
            row.id: ParentContext(
                id=row.id,
                content=row.content,
                section=row.section,
                page_number=row.page_number,
            )
            for row in result.scalars().all()
        }

    async def count_for_document(
        self,
        session: AsyncSession,
        document_id: UUID,
        chunk_type: ChunkType | None = None,
    ) -> int:
        stmt = select(func.count(ChunkModel.id)).where(
            ChunkModel.document_id == document_id
        )
        if chunk_type is not None:
            stmt = stmt.where(ChunkModel.chunk_type == chunk_type)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def count_by_documents(
        self,
        session: AsyncSession,
        document_ids: Sequence[UUID],
    ) -> dict[UUID, int]:
        """CHILD chunk counts per document; documents without chunks are absent."""
        if not document_ids:
            return {}
        stmt = (
            select(ChunkModel.document_id, func.count(ChunkModel.id))
            .where(
                ChunkModel.document_id.in_(list(document_ids)),
                ChunkModel.chunk_type == ChunkType.CHILD,
            )
            .group_by(ChunkModel.document_id)
        )
        result = await session.execute(stmt)
        return {document_id: count for document_id, count in result.all()}

    @staticmethod
    def _to_scored(chunk: ChunkModel, document_name: str, score: float) -> ScoredChunk:
        return ScoredChunk(
            chunk_id=chunk.id,
            content=chunk.content,
            document_id=chunk.document_id,
            document_name=document_name,
            chunk_index=chunk.chunk_index,
            parent_id=chunk.parent_id,
            page_number=chunk.page_number,
            section=chunk.section,
            has_images=chunk.has_images,
            image_desc=chunk.image_desc,
            score=float(score),
        )


chunk_crud = ChunkCRUD()
