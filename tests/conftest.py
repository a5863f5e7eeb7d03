"""
Shared test fixtures and configuration for entire test suite.

Provides: Session factory fakes, CRUD/store mocks, fake embeddings, model builders
Dependencies: pytest, sqlalchemy
System role: Test infrastructure and fixture management
"""

import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from classrag.boundary.db.base import utc_now
from classrag.boundary.db.models import DocumentModel, DocumentStatus
from classrag.boundary.db.schemas import ScoredChunk

EMBEDDING_DIMENSION = 8


class FakeEmbeddings:
    """Deterministic stand-in for a langchain Embeddings client."""

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        self.dimension = dimension
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        seed = float(len(text) % 7 + 1)
        return [seed / (i + 1) for i in range(self.dimension)]

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def aembed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)


class SessionFactoryStub:
    """Callable like an async_sessionmaker; every session it opens is the same mock."""

    def __init__(self, session: AsyncMock):
        self.session = session
        self.open_count = 0

    @asynccontextmanager
    async def _scope(self):
        self.open_count += 1
        yield self.session

    def __call__(self):
        return self._scope()


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Provide mock async database session."""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def session_factory(mock_db_session: AsyncMock) -> SessionFactoryStub:
    return SessionFactoryStub(mock_db_session)


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def collection_id() -> uuid.UUID:
    """Generate a test collection ID."""
    return uuid.uuid4()


@pytest.fixture
def document_id() -> uuid.UUID:
    """Generate a test document ID."""
    return uuid.uuid4()


def make_document(**overrides) -> DocumentModel:
    """Build an unsaved DocumentModel with sensible defaults."""
    now = utc_now()
    values = {
        "id": uuid.uuid4(),
        "collection_id": uuid.uuid4(),
        "name": "lecture-notes.txt",
        "mime_type": "text/plain",
        "size_bytes": 128,
        "status": DocumentStatus.PENDING,
        "content_url": "s3://classrag-test/class-files/notes.txt",
        "error_message": None,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return DocumentModel(**values)


def make_scored_chunk(chunk_id: str, score: float, **overrides) -> ScoredChunk:
    """Build a ScoredChunk for search and fusion tests."""
    values = {
        "chunk_id": chunk_id,
        "content": f"content of {chunk_id}",
        "document_id": uuid.UUID(int=1),
        "document_name": "biology.pdf",
        "chunk_index": 0,
        "parent_id": "parent_doc_0",
        "page_number": None,
        "section": None,
        "has_images": False,
        "image_desc": None,
        "score": score,
    }
    values.update(overrides)
    return ScoredChunk(**values)


@pytest.fixture
def mock_content_store() -> AsyncMock:
    """Mock S3ContentStore returning fixed locations and bytes."""
    store = AsyncMock()
    store.put = AsyncMock(return_value="s3://classrag-test/class-files/doc.txt")
    store.get = AsyncMock(return_value=b"Plain text body.")
    store.delete = AsyncMock(return_value=True)
    return store


@pytest.fixture
def mock_document_crud() -> MagicMock:
    """Mock DocumentCRUD; every method is async."""
    crud = MagicMock()
    for method in (
        "create",
        "get_by_id",
        "get_by_collection_id",
        "delete_by_id",
        "mark_processing",
        "mark_completed",
        "mark_failed",
        "reset_for_retry",
    ):
        setattr(crud, method, AsyncMock())
    return crud


@pytest.fixture
def mock_chunk_crud() -> MagicMock:
    """Mock ChunkCRUD; every method is async."""
    crud = MagicMock()
    for method in (
        "insert_chunks",
        "delete_chunks_for_document",
        "vector_search",
        "lexical_search",
        "get_parents",
        "count_for_document",
        "count_by_documents",
    ):
        setattr(crud, method, AsyncMock())
    crud.delete_chunks_for_document.return_value = 0
    crud.count_by_documents.return_value = {}
    crud.get_parents.return_value = {}
    return crud


@pytest.fixture
def document_factory():
    """Builder for unsaved DocumentModel instances."""
    return make_document


@pytest.fixture
def scored_chunk_factory():
    """Builder for ScoredChunk instances."""
    return make_scored_chunk
