"""
Test suite for DocumentPipeline.

Runs the real extraction, chunking, and annotation stages with a fake
embeddings client and a mocked chunk repository.

System role: Verification of per-document pipeline orchestration
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from classrag.configs.pipeline import DocumentPipelineSettings
from classrag.core.document_processing.entrypoint import DocumentPipeline, embedding_text
from classrag.core.document_processing.image_annotations import IMG_DESC_START
from classrag.core.document_processing.models import (
    ExtractedImage,
    ExtractionResult,
    PageText,
    build_full_text,
)
from classrag.core.document_processing.tasks import EmbeddingTask
from classrag.core.exceptions import ExtractionError, ImageDescriptionError

DESCRIPTION = "A labelled diagram of the light reactions inside a chloroplast."


@pytest.fixture
def pipeline_settings() -> DocumentPipelineSettings:
    return DocumentPipelineSettings(
        parent_min_tokens=20,
        parent_max_tokens=40,
        child_target_tokens=10,
        child_overlap_tokens=2,
        describe_images=False,
    )


@pytest.fixture
def embedding_task(fake_embeddings) -> EmbeddingTask:
    return EmbeddingTask(dimension=8, batch_delay_seconds=0, embeddings=fake_embeddings)


@pytest.fixture
def pipeline(pipeline_settings, embedding_task, mock_chunk_crud) -> DocumentPipeline:
    return DocumentPipeline(
        settings=pipeline_settings,
        embedding_task=embedding_task,
        chunk_repository=mock_chunk_crud,
    )


def _lecture_text(word_count: int = 1000) -> bytes:
    words = ["photosynthesis", "converts", "light", "energy", "into", "glucose"]
    sentences = []
    for i in range(0, word_count, 10):
        sentence = " ".join(words[(i + j) % len(words)] for j in range(10))
        sentences.append(sentence.capitalize() + ".")
    return " ".join(sentences).encode("utf-8")


def test_embedding_text_should_fall_back_to_description():
    assert embedding_text("Body text", "desc") == "Body text"
    assert embedding_text("  ", "desc") == "desc"
    assert embedding_text("", None) == ""


def test_pipeline_without_image_description_should_not_build_vision_task(pipeline_settings):
    pipeline = DocumentPipeline(
        settings=pipeline_settings,
        embedding_task=MagicMock(),
        chunk_repository=MagicMock(),
    )

    assert pipeline._image_description_task is None


@pytest.mark.asyncio
async def test_process_plain_text_should_store_all_chunks(
    pipeline, mock_chunk_crud, fake_embeddings
):
    document_id = uuid.uuid4()
    collection_id = uuid.uuid4()

    result = await pipeline.process(
        AsyncMock(), document_id, collection_id, _lecture_text(), "text/plain"
    )

    assert result.parent_count >= 1
    assert result.child_count >= 1
    assert result.image_count == 0
    mock_chunk_crud.insert_chunks.assert_awaited_once()
    args = mock_chunk_crud.insert_chunks.await_args
    _, stored_document_id, stored_collection_id, parents, children, embeddings = args.args
    assert stored_document_id == document_id
    assert stored_collection_id == collection_id
    assert len(parents) == result.parent_count
    assert len(children) == len(embeddings) == result.child_count
    assert all(embedding is not None and len(embedding) == 8 for embedding in embeddings)
    assert args.kwargs["dimension"] == 8
    assert children[0].id == f"child_{document_id}_0"


@pytest.mark.asyncio
async def test_process_empty_text_should_raise_before_embedding(
    pipeline, mock_chunk_crud, fake_embeddings
):
    with pytest.raises(ExtractionError, match="No text could be extracted"):
        await pipeline.process(AsyncMock(), uuid.uuid4(), uuid.uuid4(), b"   ", "text/plain")

    assert fake_embeddings.document_calls == []
    mock_chunk_crud.insert_chunks.assert_not_awaited()


def _pdf_extraction() -> ExtractionResult:
    pages = [
        PageText(page_number=1, text="Chloroplasts capture light. The thylakoid holds pigments."),
        PageText(page_number=2, text="The Calvin cycle fixes carbon dioxide into sugar."),
    ]
    full_text, page_map = build_full_text(pages)
    return ExtractionResult(
        full_text=full_text,
        mime_type="application/pdf",
        pages=pages,
        images=[ExtractedImage(page_number=1, data=b"png")],
        page_map=page_map,
    )


@pytest.mark.asyncio
async def test_prepare_pdf_should_fuse_image_descriptions(
    embedding_task, mock_chunk_crud, fake_embeddings
):
    settings = DocumentPipelineSettings(
        parent_min_tokens=50,
        parent_max_tokens=100,
        child_target_tokens=100,
        child_overlap_tokens=10,
    )
    extraction_task = MagicMock()
    extraction_task.extract = AsyncMock(return_value=_pdf_extraction())
    image_task = MagicMock()
    image_task.describe_all = AsyncMock(return_value=[(1, DESCRIPTION)])
    pipeline = DocumentPipeline(
        settings=settings,
        extraction_task=extraction_task,
        image_description_task=image_task,
        embedding_task=embedding_task,
        chunk_repository=mock_chunk_crud,
    )

    processed = await pipeline.prepare("doc-7", b"%PDF", "application/pdf")

    assert processed.image_count == 1
    assert all(IMG_DESC_START not in child.content for child in processed.children)
    assert [child.image_desc for child in processed.children] == [DESCRIPTION]
    assert processed.children[0].has_images is True
    assert processed.children[0].content.startswith("Chloroplasts capture light.")
    assert "Calvin cycle" in processed.children[0].content
    assert any(parent.has_images for parent in processed.parents)
    assert processed.parents[0].page_number == 1
    embedded_texts = fake_embeddings.document_calls[0]
    assert all(IMG_DESC_START not in text for text in embedded_texts)
    assert len(processed.embeddings) == len(processed.children)


@pytest.mark.asyncio
async def test_prepare_pdf_should_fail_when_any_description_fails(
    pipeline_settings, embedding_task, mock_chunk_crud
):
    extraction_task = MagicMock()
    extraction_task.extract = AsyncMock(return_value=_pdf_extraction())
    image_task = MagicMock()
    image_task.describe_all = AsyncMock(
        side_effect=ImageDescriptionError("Failed to describe image on page 1: timeout")
    )
    pipeline = DocumentPipeline(
        settings=pipeline_settings,
        extraction_task=extraction_task,
        image_description_task=image_task,
        embedding_task=embedding_task,
        chunk_repository=mock_chunk_crud,
    )

    with pytest.raises(ImageDescriptionError):
        await pipeline.prepare("doc-7", b"%PDF", "application/pdf")


@pytest.mark.asyncio
async def test_prepare_text_should_not_describe_images(
    pipeline_settings, embedding_task, mock_chunk_crud
):
    image_task = MagicMock()
    image_task.describe_all = AsyncMock()
    pipeline = DocumentPipeline(
        settings=pipeline_settings,
        image_description_task=image_task,
        embedding_task=embedding_task,
        chunk_repository=mock_chunk_crud,
    )

    await pipeline.prepare("doc-8", b"Enzymes lower activation energy.", "text/plain")

    image_task.describe_all.assert_not_awaited()
