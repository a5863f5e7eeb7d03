"""
Test suite for DocumentService.

Tests submission, detached processing, failure recording, retry,
listing, and deletion. Uses mocked CRUD repositories backed by an
in-memory document dict, a mocked content store and pipeline, and the
real BackgroundTaskRunner (drained before assertions).

System role: Verification of document lifecycle orchestration
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from classrag.application.services.document_service import DocumentService, failure_message
from classrag.boundary.db.models import DocumentStatus
from classrag.configs.pipeline import DocumentPipelineSettings
from classrag.core.background import BackgroundTaskRunner
from classrag.core.document_processing.models import PipelineResult
from classrag.core.document_processing.tasks.extraction_task import NO_TEXT_MESSAGE
from classrag.core.exceptions import (
    ContentStoreError,
    DocumentNotFoundError,
    EmbeddingError,
    ExtractionError,
    InvalidStateError,
    ValidationError,
)
from classrag.models.document import DocumentFile


class InMemoryDocuments:
    """Wires the mocked DocumentCRUD methods to a dict of DocumentModels."""

    def __init__(self, crud: MagicMock, document_factory, call_log: list):
        self.rows: dict[uuid.UUID, object] = {}
        self._factory = document_factory
        self._log = call_log

        crud.create.side_effect = self._create
        crud.get_by_id.side_effect = lambda session, id: self.rows.get(id)
        crud.get_by_collection_id.side_effect = lambda session, collection_id: [
            row for row in self.rows.values() if row.collection_id == collection_id
        ]
        crud.delete_by_id.side_effect = lambda session, id: self.rows.pop(id, None) is not None
        crud.mark_processing.side_effect = self._transition(DocumentStatus.PROCESSING)
        crud.mark_completed.side_effect = self._transition(DocumentStatus.COMPLETED)
        crud.reset_for_retry.side_effect = self._transition(DocumentStatus.PENDING)
        crud.mark_failed.side_effect = self._fail

    def add(self, **values):
        row = self._factory(**values)
        self.rows[row.id] = row
        return row

    def _create(self, session, **values):
        return self.add(**values)

    def _transition(self, status: DocumentStatus):
        def apply(session, id):
            self._log.append((status.value, id))
            row = self.rows[id]
            row.status = status
            row.error_message = None
            return row

        return apply

    def _fail(self, session, id, error_message):
        self._log.append(("FAILED", id))
        row = self.rows[id]
        row.status = DocumentStatus.FAILED
        row.error_message = error_message
        return row


@pytest.fixture
def call_log() -> list:
    return []


@pytest.fixture
def documents(mock_document_crud, document_factory, call_log) -> InMemoryDocuments:
    return InMemoryDocuments(mock_document_crud, document_factory, call_log)


@pytest.fixture
def mock_pipeline(call_log) -> MagicMock:
    """Pipeline whose process call records the order documents are processed in."""

    def _process(session, document_id, collection_id, data, mime_type):
        call_log.append(("process", document_id))
        return PipelineResult(
            document_id=str(document_id),
            parent_count=1,
            child_count=3,
            image_count=0,
            processing_time_ms=12.5,
        )

    pipeline = MagicMock()
    pipeline.process = AsyncMock(side_effect=_process)
    return pipeline


@pytest.fixture
def runner() -> BackgroundTaskRunner:
    return BackgroundTaskRunner()


@pytest.fixture
def service(
    session_factory,
    mock_content_store,
    mock_pipeline,
    runner,
    mock_document_crud,
    mock_chunk_crud,
    documents,
    call_log,
) -> DocumentService:
    async def _delete_chunks(session, document_id):
        call_log.append(("delete_chunks", document_id))
        return 4

    mock_chunk_crud.delete_chunks_for_document.side_effect = _delete_chunks
    return DocumentService(
        session_factory=session_factory,
        content_store=mock_content_store,
        pipeline=mock_pipeline,
        runner=runner,
        settings=DocumentPipelineSettings(max_file_size_bytes=1024),
        documents=mock_document_crud,
        chunks=mock_chunk_crud,
    )


def _file(name: str = "notes.txt", data: bytes = b"Osmosis moves water.", mime_type="text/plain"):
    return DocumentFile(name=name, mime_type=mime_type, data=data)


def test_failure_message_should_fall_back_to_type_name():
    assert failure_message(RuntimeError("disk full")) == "disk full"
    assert failure_message(RuntimeError()) == "RuntimeError"


class TestValidateFile:
    """Test suite for upload validation."""

    def test_should_reject_unsupported_type(self, service) -> None:
        with pytest.raises(ValidationError, match="Unsupported file type"):
            service.validate_file(_file(name="photo.png", mime_type="image/png"))

    def test_should_reject_empty_file(self, service) -> None:
        with pytest.raises(ValidationError, match="empty"):
            service.validate_file(_file(data=b""))

    def test_should_reject_oversized_file(self, service) -> None:
        with pytest.raises(ValidationError, match="maximum size"):
            service.validate_file(_file(data=b"x" * 2048))

    def test_should_accept_mime_type_with_parameters(self, service) -> None:
        service.validate_file(_file(mime_type="text/plain; charset=utf-8"))


class TestSubmitDocument:
    """Test suite for DocumentService.submit_document and detached processing."""

    @pytest.mark.asyncio
    async def test_submit_should_return_pending_then_complete(
        self, service, runner, documents, mock_content_store, mock_pipeline, collection_id
    ) -> None:
        response = await service.submit_document(collection_id, _file())

        assert response.status == "PENDING"
        assert response.collection_id == collection_id
        mock_content_store.put.assert_awaited_once()

        await runner.drain()

        row = documents.rows[response.id]
        assert row.status == DocumentStatus.COMPLETED
        assert row.error_message is None
        _, document_id, stored_collection_id, data, mime_type = mock_pipeline.process.await_args.args
        assert (document_id, stored_collection_id) == (response.id, collection_id)
        assert data == b"Plain text body."
        assert mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_processing_should_clear_chunks_before_marking_processing(
        self, service, runner, call_log, collection_id
    ) -> None:
        response = await service.submit_document(collection_id, _file())
        await runner.drain()

        steps = [step for step, document_id in call_log if document_id == response.id]
        assert steps == ["delete_chunks", "PROCESSING", "process", "COMPLETED"]

    @pytest.mark.asyncio
    async def test_document_without_text_should_end_failed(
        self, service, runner, documents, mock_pipeline, mock_db_session, collection_id
    ) -> None:
        mock_pipeline.process.side_effect = ExtractionError(NO_TEXT_MESSAGE, "application/pdf")

        response = await service.submit_document(
            collection_id, _file(name="scan.pdf", data=b"%PDF-1.4", mime_type="application/pdf")
        )
        await runner.drain()

        row = documents.rows[response.id]
        assert row.status == DocumentStatus.FAILED
        assert row.error_message == NO_TEXT_MESSAGE
        mock_db_session.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_failure_message_should_be_recorded_verbatim(
        self, service, runner, documents, mock_pipeline, collection_id
    ) -> None:
        mock_pipeline.process.side_effect = EmbeddingError(
            "Failed to generate embeddings: 429 quota exceeded"
        )

        response = await service.submit_document(collection_id, _file())
        await runner.drain()

        assert documents.rows[response.id].error_message == (
            "Failed to generate embeddings: 429 quota exceeded"
        )

    @pytest.mark.asyncio
    async def test_content_download_failure_should_end_failed(
        self, service, runner, documents, mock_content_store, mock_pipeline, collection_id
    ) -> None:
        mock_content_store.get.side_effect = ContentStoreError("File not found in S3: key")

        response = await service.submit_document(collection_id, _file())
        await runner.drain()

        assert documents.rows[response.id].status == DocumentStatus.FAILED
        assert documents.rows[response.id].error_message == "File not found in S3: key"
        mock_pipeline.process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_failure_on_create_should_remove_stored_content(
        self, service, mock_document_crud, mock_content_store, runner, collection_id
    ) -> None:
        mock_document_crud.create.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(OperationalError):
            await service.submit_document(collection_id, _file())

        mock_content_store.delete.assert_awaited_once_with(
            "s3://classrag-test/class-files/doc.txt"
        )
        assert runner.pending_count == 0

    @pytest.mark.asyncio
    async def test_invalid_file_should_not_touch_storage(
        self, service, mock_content_store, collection_id
    ) -> None:
        with pytest.raises(ValidationError):
            await service.submit_document(collection_id, _file(data=b""))

        mock_content_store.put.assert_not_awaited()


class TestSubmitBatch:
    """Test suite for DocumentService.submit_batch."""

    @pytest.mark.asyncio
    async def test_batch_should_process_in_order_and_isolate_failures(
        self, service, runner, documents, mock_pipeline, call_log, collection_id
    ) -> None:
        original = mock_pipeline.process.side_effect

        def _process(session, document_id, collection_id, data, mime_type):
            if documents.rows[document_id].name == "b.txt":
                call_log.append(("process", document_id))
                raise EmbeddingError("Failed to generate embeddings: timeout")
            return original(session, document_id, collection_id, data, mime_type)

        mock_pipeline.process.side_effect = _process

        result = await service.submit_batch(
            collection_id, [_file("a.txt"), _file("b.txt"), _file("c.txt")]
        )
        await runner.drain()

        uploaded_ids = [document.id for document in result.uploaded]
        processed = [document_id for step, document_id in call_log if step == "process"]
        assert processed == uploaded_ids
        statuses = [documents.rows[document_id].status for document_id in uploaded_ids]
        assert statuses == [
            DocumentStatus.COMPLETED,
            DocumentStatus.FAILED,
            DocumentStatus.COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_batch_should_continue_when_recording_a_failure_raises(
        self, service, runner, documents, mock_pipeline, mock_document_crud, call_log, collection_id
    ) -> None:
        original_process = mock_pipeline.process.side_effect
        original_fail = mock_document_crud.mark_failed.side_effect
        fail_calls = []

        def _process(session, document_id, collection_id, data, mime_type):
            if documents.rows[document_id].name == "a.txt":
                call_log.append(("process", document_id))
                raise EmbeddingError("Failed to generate embeddings: timeout")
            return original_process(session, document_id, collection_id, data, mime_type)

        def _flaky_fail(session, id, error_message):
            fail_calls.append(id)
            if len(fail_calls) == 1:
                raise OperationalError("UPDATE", {}, Exception("connection reset"))
            return original_fail(session, id, error_message)

        mock_pipeline.process.side_effect = _process
        mock_document_crud.mark_failed.side_effect = _flaky_fail

        result = await service.submit_batch(collection_id, [_file("a.txt"), _file("b.txt")])
        await runner.drain()

        first, second = [document.id for document in result.uploaded]
        processed = [document_id for step, document_id in call_log if step == "process"]
        assert processed == [first, second]
        assert documents.rows[first].status == DocumentStatus.FAILED
        assert "connection reset" in documents.rows[first].error_message
        assert documents.rows[second].status == DocumentStatus.COMPLETED
        assert documents.rows[second].error_message is None

    @pytest.mark.asyncio
    async def test_batch_should_report_rejected_files(
        self, service, runner, mock_content_store, collection_id
    ) -> None:
        mock_content_store.put.side_effect = [
            "s3://classrag-test/a",
            ContentStoreError("Failed to upload to S3: AccessDenied"),
        ]

        result = await service.submit_batch(
            collection_id,
            [_file("a.txt"), _file("b.txt"), _file("photo.png", mime_type="image/png")],
        )
        await runner.drain()

        assert [document.name for document in result.uploaded] == ["a.txt"]
        assert [(failed.name, failed.error) for failed in result.failed] == [
            ("b.txt", "Failed to upload to S3: AccessDenied"),
            ("photo.png", "Unsupported file type: image/png. Supported types are PDF, DOCX and plain text."),
        ]

    @pytest.mark.asyncio
    async def test_batch_with_no_valid_files_should_schedule_nothing(
        self, service, runner, mock_pipeline, collection_id
    ) -> None:
        result = await service.submit_batch(collection_id, [_file(data=b"")])

        assert result.uploaded == []
        assert runner.pending_count == 0
        mock_pipeline.process.assert_not_awaited()


class TestProcessDocument:
    """Test suite for DocumentService.process_document edge cases."""

    @pytest.mark.asyncio
    async def test_should_skip_document_already_in_flight(
        self, service, documents, mock_pipeline
    ) -> None:
        row = documents.add(status=DocumentStatus.PENDING)
        service._in_flight.add(row.id)

        assert await service.process_document(row.id) is None
        mock_pipeline.process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_should_ignore_deleted_document(
        self, service, mock_pipeline, mock_document_crud
    ) -> None:
        assert await service.process_document(uuid.uuid4()) is None

        mock_pipeline.process.assert_not_awaited()
        mock_document_crud.mark_failed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_should_return_pipeline_result(self, service, documents) -> None:
        row = documents.add(status=DocumentStatus.PENDING)

        result = await service.process_document(row.id)

        assert result.child_count == 3
        assert not service.is_processing(row.id)

    @pytest.mark.asyncio
    async def test_error_sink_should_fail_unfinished_documents(
        self, service, documents
    ) -> None:
        processing = documents.add(status=DocumentStatus.PROCESSING)
        completed = documents.add(status=DocumentStatus.COMPLETED)

        await service._on_background_error(
            [processing.id, completed.id, uuid.uuid4()], RuntimeError("event loop closed")
        )

        assert processing.status == DocumentStatus.FAILED
        assert processing.error_message == "event loop closed"
        assert completed.status == DocumentStatus.COMPLETED


class TestRetryDocument:
    """Test suite for DocumentService.retry_document."""

    @pytest.mark.asyncio
    async def test_retry_should_reset_and_reprocess_failed_document(
        self, service, runner, documents, mock_chunk_crud
    ) -> None:
        row = documents.add(status=DocumentStatus.FAILED, error_message="Failed to store chunks: x")

        response = await service.retry_document(row.id)

        assert response.status == "PENDING"
        assert response.error_message is None
        await runner.drain()
        assert row.status == DocumentStatus.COMPLETED
        mock_chunk_crud.delete_chunks_for_document.assert_awaited()

    @pytest.mark.parametrize(
        "status",
        [DocumentStatus.PENDING, DocumentStatus.PROCESSING, DocumentStatus.COMPLETED],
    )
    @pytest.mark.asyncio
    async def test_retry_should_reject_non_failed_document(
        self, service, documents, status
    ) -> None:
        row = documents.add(status=status)

        with pytest.raises(InvalidStateError):
            await service.retry_document(row.id)

        assert row.status == status

    @pytest.mark.asyncio
    async def test_retry_should_reject_document_in_flight(self, service, documents) -> None:
        row = documents.add(status=DocumentStatus.FAILED)
        service._in_flight.add(row.id)

        with pytest.raises(InvalidStateError):
            await service.retry_document(row.id)

    @pytest.mark.asyncio
    async def test_retry_missing_document_should_raise_not_found(self, service) -> None:
        with pytest.raises(DocumentNotFoundError):
            await service.retry_document(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_reprocessing_twice_should_clear_chunks_each_time(
        self, service, runner, documents, call_log
    ) -> None:
        row = documents.add(status=DocumentStatus.PENDING)

        await service.process_document(row.id)
        row.status = DocumentStatus.FAILED
        await service.retry_document(row.id)
        await runner.drain()

        steps = [step for step, document_id in call_log if document_id == row.id]
        assert steps == [
            "delete_chunks",
            "PROCESSING",
            "process",
            "COMPLETED",
            "PENDING",
            "delete_chunks",
            "PROCESSING",
            "process",
            "COMPLETED",
        ]


class TestQueries:
    """Test suite for get/list/delete."""

    @pytest.mark.asyncio
    async def test_list_documents_should_include_chunk_counts(
        self, service, documents, mock_chunk_crud, collection_id
    ) -> None:
        first = documents.add(collection_id=collection_id, status=DocumentStatus.COMPLETED)
        second = documents.add(collection_id=collection_id, status=DocumentStatus.FAILED)
        documents.add(status=DocumentStatus.COMPLETED)
        mock_chunk_crud.count_by_documents.return_value = {first.id: 12}

        listed = await service.list_documents(collection_id)

        counts = {document.id: document.chunk_count for document in listed}
        assert counts == {first.id: 12, second.id: 0}

    @pytest.mark.asyncio
    async def test_get_document_should_raise_not_found(self, service) -> None:
        with pytest.raises(DocumentNotFoundError):
            await service.get_document(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_delete_should_remove_chunks_row_and_content(
        self, service, documents, mock_content_store, mock_document_crud, mock_db_session
    ) -> None:
        row = documents.add(status=DocumentStatus.COMPLETED)
        content_url = row.content_url

        await service.delete_document(row.id)

        assert row.id not in documents.rows
        mock_db_session.commit.assert_awaited()
        mock_content_store.delete.assert_awaited_once_with(content_url)

    @pytest.mark.asyncio
    async def test_delete_missing_document_should_raise_not_found(
        self, service, mock_content_store
    ) -> None:
        with pytest.raises(DocumentNotFoundError):
            await service.delete_document(uuid.uuid4())

        mock_content_store.delete.assert_not_awaited()
