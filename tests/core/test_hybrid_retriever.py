"""
Test suite for HybridRetriever.

Uses a mocked chunk repository and a session factory stub; the query is
embedded by a fake embeddings client.

System role: Verification of hybrid search and parent hydration
"""

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from classrag.boundary.db.schemas import ParentContext
from classrag.core.document_processing.tasks import EmbeddingTask
from classrag.core.exceptions import SearchError, ValidationError
from classrag.core.retrieval import HybridRetriever


@pytest.fixture
def retriever(fake_embeddings, session_factory, mock_chunk_crud) -> HybridRetriever:
    return HybridRetriever(
        embedding_task=EmbeddingTask(dimension=8, embeddings=fake_embeddings),
        session_factory=session_factory,
        chunk_repository=mock_chunk_crud,
        overfetch_factor=3,
        min_similarity=0.5,
    )


class TestSearchValidation:
    """Test suite for query validation."""

    @pytest.mark.asyncio
    async def test_blank_query_should_raise(self, retriever, collection_id) -> None:
        with pytest.raises(ValidationError):
            await retriever.search(collection_id, "   ")

    @pytest.mark.asyncio
    async def test_non_positive_top_k_should_raise(self, retriever, collection_id) -> None:
        with pytest.raises(ValidationError):
            await retriever.search(collection_id, "osmosis", top_k=0)


class TestSearch:
    """Test suite for HybridRetriever.search."""

    @pytest.mark.asyncio
    async def test_should_fuse_and_hydrate_results(
        self, retriever, mock_chunk_crud, collection_id, scored_chunk_factory
    ) -> None:
        mock_chunk_crud.vector_search.return_value = [
            scored_chunk_factory("child_d_0", 0.9, parent_id="parent_d_0"),
            scored_chunk_factory("child_d_1", 0.45, parent_id="parent_d_0", section="Own Heading"),
        ]
        mock_chunk_crud.lexical_search.return_value = [
            scored_chunk_factory("child_d_1", 2.0, parent_id="parent_d_0", section="Own Heading"),
            scored_chunk_factory("child_d_5", 1.0, parent_id="parent_d_1"),
        ]
        mock_chunk_crud.get_parents.return_value = {
            "parent_d_0": ParentContext(
                id="parent_d_0", content="Full parent context", section="CELLS", page_number=2
            ),
        }

        results = await retriever.search(collection_id, "what is osmosis", top_k=10)

        assert [r.chunk_id for r in results] == ["child_d_0", "child_d_1", "child_d_5"]
        assert results[0].parent_content == "Full parent context"
        assert results[0].section == "CELLS"
        assert results[1].section == "Own Heading"
        assert results[2].parent_content is None
        assert results[0].score == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_should_overfetch_and_hydrate_in_one_call(
        self, retriever, mock_chunk_crud, collection_id, scored_chunk_factory
    ) -> None:
        mock_chunk_crud.vector_search.return_value = [
            scored_chunk_factory(f"child_d_{i}", 0.9, parent_id="parent_d_0") for i in range(4)
        ]
        mock_chunk_crud.lexical_search.return_value = []

        results = await retriever.search(collection_id, "enzymes", top_k=2)

        assert len(results) == 2
        vector_args = mock_chunk_crud.vector_search.await_args
        assert vector_args.args[1] == collection_id
        assert vector_args.args[3] == 6
        assert vector_args.kwargs["min_similarity"] == 0.5
        lexical_args = mock_chunk_crud.lexical_search.await_args
        assert lexical_args.args[1:] == (collection_id, "enzymes", 6)
        mock_chunk_crud.get_parents.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_matches_should_return_empty_list(
        self, retriever, mock_chunk_crud, collection_id
    ) -> None:
        mock_chunk_crud.vector_search.return_value = []
        mock_chunk_crud.lexical_search.return_value = []

        results = await retriever.search(collection_id, "quantum chromodynamics")

        assert results == []
        mock_chunk_crud.get_parents.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_failure_should_raise_search_error(
        self, retriever, mock_chunk_crud, collection_id
    ) -> None:
        mock_chunk_crud.vector_search.side_effect = OperationalError("SELECT", {}, Exception("down"))
        mock_chunk_crud.lexical_search.return_value = []

        with pytest.raises(SearchError, match="Hybrid search failed"):
            await retriever.search(collection_id, "osmosis")

    @pytest.mark.asyncio
    async def test_embedding_failure_should_raise_search_error(
        self, session_factory, mock_chunk_crud, collection_id
    ) -> None:
        retriever = HybridRetriever(
            embedding_task=EmbeddingTask(dimension=16, embeddings=_WrongDimension()),
            session_factory=session_factory,
            chunk_repository=mock_chunk_crud,
        )

        with pytest.raises(SearchError) as exc_info:
            await retriever.search(uuid.uuid4(), "osmosis")

        assert exc_info.value.details["collection_id"]
        mock_chunk_crud.vector_search.assert_not_awaited()


class _WrongDimension:
    async def aembed_query(self, text):
        return [0.1, 0.2]
