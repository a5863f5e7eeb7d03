"""
Document service orchestrator.

Owns the document lifecycle: submission (single and batch), detached
processing through DocumentPipeline, retry, listing, and deletion.

State machine: PENDING → PROCESSING → COMPLETED | FAILED, and
FAILED → PENDING on explicit retry. Every processing failure ends in
FAILED with the exception message recorded on the document.

Dependencies: sqlalchemy, classrag.boundary.db, classrag.boundary.storage,
classrag.core.document_processing, classrag.core.background
System role: Document management orchestration
"""

import logging
from functools import partial
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classrag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from classrag.boundary.db.CRUD.document_crud import DocumentCRUD, document_crud
from classrag.boundary.db.models.document_model import DocumentModel, DocumentStatus
from classrag.boundary.storage.s3_content_store import S3ContentStore
from classrag.configs.pipeline import DocumentPipelineSettings
from classrag.core.background import BackgroundTaskRunner
from classrag.core.document_processing.entrypoint import DocumentPipeline
from classrag.core.document_processing.models import PipelineResult
from classrag.core.document_processing.tasks.extraction_task import (
    is_supported_mime_type,
    normalize_mime_type,
)
from classrag.core.exceptions import (
    ContentStoreError,
    DocumentNotFoundError,
    InvalidStateError,
    ValidationError,
)
from classrag.models.document import (
    BatchUploadResponse,
    DocumentFile,
    DocumentResponse,
    FailedUpload,
)
from classrag.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


def failure_message(exc: BaseException) -> str:
    """Message recorded on a FAILED document: str(exc), or its type when empty."""
    return str(exc) or type(exc).__name__


class DocumentService:
    """
    Document service orchestrator.

    Each database step opens its own session from the factory, so
    processing can outlive the request that scheduled it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        content_store: S3ContentStore,
        pipeline: DocumentPipeline,
        runner: BackgroundTaskRunner,
        settings: DocumentPipelineSettings | None = None,
        documents: DocumentCRUD | None = None,
        chunks: ChunkCRUD | None = None,
    ) -> None:
        """
        Initialize document service.

        Args:
            session_factory: Async session factory
            content_store: Raw document store
            pipeline: Per-document processing stages
            runner: Detached task runner
            settings: Pipeline settings (upload limits)
            documents: Document repository (module singleton if None)
            chunks: Chunk repository (module singleton if None)
        """
        self._session_factory = session_factory
        self._content_store = content_store
        self._pipeline = pipeline
        self._runner = runner
        self._settings = settings or DocumentPipelineSettings()
        self._documents = documents or document_crud
        self._chunks = chunks or chunk_crud
        self._in_flight: set[UUID] = set()

    def is_processing(self, document_id: UUID) -> bool:
        return document_id in self._in_flight

    def validate_file(self, file: DocumentFile) -> None:
        """
        Check type and size of an upload.

        Raises:
            ValidationError: Unsupported MIME type, empty file, or file too large
        """
        if not is_supported_mime_type(file.mime_type):
            raise ValidationError(
                f"Unsupported file type: {file.mime_type}. Supported types are PDF, DOCX and plain text.",
                field="mime_type",
            )
        if not file.data:
            raise ValidationError("File is empty", field="data")
        if len(file.data) > self._settings.max_file_size_bytes:
            limit_mb = self._settings.max_file_size_bytes // (1024 * 1024)
            raise ValidationError(
                f"File exceeds maximum size of {limit_mb}MB",
                field="data",
                details={"size_bytes": len(file.data)},
            )

    async def submit_document(
        self,
        collection_id: UUID,
        file: DocumentFile,
    ) -> DocumentResponse:
        """
        Store a file, create its PENDING document, and process it detached.

        Args:
            collection_id: Owning collection UUID
            file: Uploaded file

        Returns:
            DocumentResponse: The PENDING document; processing has not finished

        Raises:
            ValidationError: File rejected
            ContentStoreError: Upload to the content store failed
        """
        document = await self._create_document(collection_id, file)
        self._schedule([document.id])
        return document

    async def submit_batch(
        self,
        collection_id: UUID,
        files: list[DocumentFile],
    ) -> BatchUploadResponse:
        """
        Submit several files; accepted ones are processed one after another.

        A rejected or failed upload is reported in `failed` and does not stop
        the rest of the batch.

        Args:
            collection_id: Owning collection UUID
            files: Uploaded files in processing order

        Returns:
            BatchUploadResponse: Accepted (PENDING) documents and rejected files
        """
        result = BatchUploadResponse()
        for file in files:
            try:
                result.uploaded.append(await self._create_document(collection_id, file))
            except (ValidationError, ContentStoreError, SQLAlchemyError) as e:
                logger.warning(
                    f"{__name__}:submit_batch - Rejected file: {e}",
                    extra={"collection_id": str(collection_id), "document_name": file.name},
                )
                result.failed.append(FailedUpload(name=file.name, error=failure_message(e)))

        if result.uploaded:
            self._schedule([document.id for document in result.uploaded])
        return result

    async def _create_document(
        self,
        collection_id: UUID,
        file: DocumentFile,
    ) -> DocumentResponse:
        self.validate_file(file)
        mime_type = normalize_mime_type(file.mime_type)
        location = await self._content_store.put(
            collection_id, file.name, file.data, content_type=mime_type
        )

        try:
            async with self._session_factory() as session:
                document = await self._documents.create(
                    session,
                    collection_id=collection_id,
                    name=file.name,
                    mime_type=mime_type,
                    size_bytes=len(file.data),
                    content_url=location,
                    status=DocumentStatus.PENDING,
                )
                await session.commit()
        except SQLAlchemyError:
            await self._content_store.delete(location)
            raise

        logger.info(
            f"{__name__}:_create_document - Document created",
            extra={
                "document_id": str(document.id),
                "collection_id": str(collection_id),
                "document_name": file.name,
            },
        )
        return DocumentResponse.model_validate(document)

    def _schedule(self, document_ids: list[UUID]) -> None:
        self._runner.spawn(
            self.process_batch(document_ids),
            on_error=partial(self._on_background_error, document_ids),
            name=f"process-documents-{document_ids[0]}",
        )

    async def process_batch(self, document_ids: list[UUID]) -> None:
        """Process documents strictly in order; one failure does not stop the rest."""
        for document_id in document_ids:
            try:
                await self.process_document(document_id)
            except Exception as e:
                log_exception_with_context(
                    logger,
                    f"{__name__}:process_batch - Failure handling raised, continuing batch",
                    e,
                    document_id=str(document_id),
                )
                await self._on_background_error([document_id], e)

    async def process_document(self, document_id: UUID) -> PipelineResult | None:
        """
        Run the full pipeline for one document and record the outcome.

        Processing errors are recorded on the document (FAILED) rather than
        raised. A document already being processed by this service is skipped.

        Args:
            document_id: Document UUID

        Returns:
            PipelineResult | None: Result on success, None when failed or skipped
        """
        if document_id in self._in_flight:
            logger.warning(
                f"{__name__}:process_document - Already processing, skipped",
                extra={"document_id": str(document_id)},
            )
            return None

        self._in_flight.add(document_id)
        try:
            return await self._process(document_id)
        finally:
            self._in_flight.discard(document_id)

    async def _process(self, document_id: UUID) -> PipelineResult | None:
        async with self._session_factory() as session:
            try:
                document = await self._documents.get_by_id(session, document_id)
                if document is None:
                    raise DocumentNotFoundError(str(document_id))

                # Stale rows from an earlier attempt go first, in their own transaction
                await self._chunks.delete_chunks_for_document(session, document_id)
                await self._documents.mark_processing(session, document_id)
                await session.commit()

                data = await self._content_store.get(document.content_url)
                result = await self._pipeline.process(
                    session,
                    document_id,
                    document.collection_id,
                    data,
                    document.mime_type,
                )

                await self._documents.mark_completed(session, document_id)
                await session.commit()
            except DocumentNotFoundError:
                logger.warning(
                    f"{__name__}:process_document - Document no longer exists",
                    extra={"document_id": str(document_id)},
                )
                return None
            except Exception as e:
                await session.rollback()
                log_exception_with_context(
                    logger,
                    f"{__name__}:process_document - Document processing failed",
                    e,
                    document_id=str(document_id),
                )
                await self._record_failure(document_id, e)
                return None

        logger.info(
            f"{__name__}:process_document - Document completed",
            extra={"document_id": str(document_id), "child_count": result.child_count},
        )
        return result

    async def _record_failure(self, document_id: UUID, exc: BaseException) -> None:
        async with self._session_factory() as session:
            await self._documents.mark_failed(session, document_id, failure_message(exc))
            await session.commit()

    async def _on_background_error(self, document_ids: list[UUID], exc: Exception) -> None:
        """Error sink: any document of the batch not yet finished ends FAILED."""
        for document_id in document_ids:
            try:
                async with self._session_factory() as session:
                    document = await self._documents.get_by_id(session, document_id)
                    if document is None or document.status in (
                        DocumentStatus.COMPLETED,
                        DocumentStatus.FAILED,
                    ):
                        continue
                    await self._documents.mark_failed(
                        session, document_id, failure_message(exc)
                    )
                    await session.commit()
            except Exception as inner_e:
                logger.exception(
                    f"{__name__}:_on_background_error - Failed to record failure",
                    extra={"document_id": str(document_id), "inner_error": str(inner_e)},
                )

    async def retry_document(self, document_id: UUID) -> DocumentResponse:
        """
        Reset a FAILED document to PENDING and process it again, detached.

        Args:
            document_id: Document UUID

        Returns:
            DocumentResponse: The PENDING document

        Raises:
            DocumentNotFoundError: No such document
            InvalidStateError: Document is not FAILED, or is being processed
        """
        async with self._session_factory() as session:
            document = await self._documents.get_by_id(session, document_id)
            if document is None:
                raise DocumentNotFoundError(str(document_id))
            if document.status != DocumentStatus.FAILED or document_id in self._in_flight:
                raise InvalidStateError(
                    f"Only failed documents can be retried (status: {document.status.value})",
                    document_id=str(document_id),
                    status=document.status.value,
                )
            document = await self._documents.reset_for_retry(session, document_id)
            await session.commit()

        logger.info(
            f"{__name__}:retry_document - Document queued for retry",
            extra={"document_id": str(document_id)},
        )
        self._schedule([document_id])
        return DocumentResponse.model_validate(document)

    async def get_document(self, document_id: UUID) -> DocumentResponse:
        """
        Raises:
            DocumentNotFoundError: No such document
        """
        async with self._session_factory() as session:
            document = await self._documents.get_by_id(session, document_id)
            if document is None:
                raise DocumentNotFoundError(str(document_id))
            count = await self._chunks.count_by_documents(session, [document_id])
        return self._to_response(document, count.get(document_id, 0))

    async def list_documents(self, collection_id: UUID) -> list[DocumentResponse]:
        """Documents of a collection, newest first, with their child chunk counts."""
        async with self._session_factory() as session:
            documents = await self._documents.get_by_collection_id(session, collection_id)
            counts = await self._chunks.count_by_documents(
                session, [document.id for document in documents]
            )
        return [self._to_response(document, counts.get(document.id, 0)) for document in documents]

    async def delete_document(self, document_id: UUID) -> None:
        """
        Delete a document, its chunks, and (best-effort) its stored content.

        Args:
            document_id: Document UUID

        Raises:
            DocumentNotFoundError: No such document
        """
        async with self._session_factory() as session:
            document = await self._documents.get_by_id(session, document_id)
            if document is None:
                raise DocumentNotFoundError(str(document_id))
            content_url = document.content_url

            deleted_chunks = await self._chunks.delete_chunks_for_document(session, document_id)
            await self._documents.delete_by_id(session, document_id)
            await session.commit()

        await self._content_store.delete(content_url)
        logger.info(
            f"{__name__}:delete_document - Document deleted",
            extra={"document_id": str(document_id), "deleted_chunks": deleted_chunks},
        )

    @staticmethod
    def _to_response(document: DocumentModel, chunk_count: int) -> DocumentResponse:
        response = DocumentResponse.model_validate(document)
        return response.model_copy(update={"chunk_count": chunk_count})
