"""
Document CRUD operations.

Provides persistence for DocumentModel with lifecycle transitions
(PENDING → PROCESSING → COMPLETED/FAILED, FAILED → PENDING on retry)
and collection filtering.

Dependencies: sqlalchemy, classrag.boundary.db.models
System role: Document persistence operations
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from classrag.boundary.db.CRUD.base_crud import BaseCRUD
from classrag.boundary.db.models.document_model import (
    ERROR_MESSAGE_MAX_LENGTH,
    DocumentModel,
    DocumentStatus,
)


def truncate_error_message(error_message: str) -> str:
    """Clip an error message to the stored maximum length."""
    return error_message[:ERROR_MESSAGE_MAX_LENGTH]


class DocumentCRUD(BaseCRUD[DocumentModel]):
    """
    CRUD operations for DocumentModel.

    Extends BaseCRUD with collection queries and status transitions.
    """

    def __init__(self) -> None:
        """Initialize DocumentCRUD with DocumentModel."""
        super().__init__(DocumentModel)

    async def get_by_collection_id(
        self,
        session: AsyncSession,
        collection_id: UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[DocumentModel]:
        """
        Retrieve documents of a collection, newest first.

        Args:
            session: Async database session
            collection_id: Owning collection UUID
            limit: Maximum number of documents to return
            offset: Number of documents to skip

        Returns:
            Sequence of DocumentModels belonging to the collection
        """
        stmt = (
            select(DocumentModel)
            .where(DocumentModel.collection_id == collection_id)
            .order_by(DocumentModel.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def update_status(
        self,
        session: AsyncSession,
        id: UUID,
        status: DocumentStatus,
        error_message: str | None = None,
    ) -> DocumentModel | None:
        """
        Update document processing status.

        The error message is always written, so moving to a non-FAILED
        status clears any previous error.

        Args:
            session: Async database session
            id: Document UUID
            status: New processing status
            error_message: Error details if status is FAILED

        Returns:
            Updated DocumentModel if found, None otherwise
        """
        if error_message is not None:
            error_message = truncate_error_message(error_message)
        return await self.update_by_id(
            session, id, status=status, error_message=error_message
        )

    async def mark_processing(
        self,
        session: AsyncSession,
        id: UUID,
    ) -> DocumentModel | None:
        return await self.update_status(session, id, DocumentStatus.PROCESSING)

    async def mark_completed(
        self,
        session: AsyncSession,
        id: UUID,
    ) -> DocumentModel | None:
        return await self.update_status(session, id, DocumentStatus.COMPLETED)

    async def mark_failed(
        self,
        session: AsyncSession,
        id: UUID,
        error_message: str,
    ) -> DocumentModel | None:
        """
        Mark document as failed with error details.

        Args:
            session: Async database session
            id: Document UUID
            error_message: Human-readable error description (truncated to 2000 chars)

        Returns:
            Updated DocumentModel if found, None otherwise
        """
        return await self.update_status(
            session, id, DocumentStatus.FAILED, error_message
        )

    async def reset_for_retry(
        self,
        session: AsyncSession,
        id: UUID,
    ) -> DocumentModel | None:
        """Move a document back to PENDING with a cleared error."""
        return await self.update_status(session, id, DocumentStatus.PENDING)


document_crud = DocumentCRUD()
