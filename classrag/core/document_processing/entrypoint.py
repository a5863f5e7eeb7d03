"""
Document pipeline.

Runs the per-document stages: extract → describe images (PDF) → chunk →
fuse image descriptions → embed children → store. Status transitions
and scheduling live in DocumentService; this class only does the work.

Dependencies: All task modules, classrag.boundary.db, classrag.configs
System role: Pipeline orchestration (coordinates only)
"""

import logging
import time
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classrag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from classrag.configs.pipeline import DocumentPipelineSettings

from .image_annotations import annotate_extraction, apply_to_parents
from .models import PipelineResult, ProcessedDocument
from .tasks import (
    ChunkingTask,
    EmbeddingTask,
    ExtractionTask,
    ImageDescriptionTask,
    flatten_children,
)
from .tasks.extraction_task import PDF_MIME_TYPE, normalize_mime_type

logger = logging.getLogger(__name__)


def embedding_text(content: str, image_desc: str | None) -> str:
    """Text sent to the embedding model for a child chunk."""
    return content if content.strip() else (image_desc or content)


class DocumentPipeline:
    """Orchestrate document ingestion: extract -> describe -> chunk -> embed -> store."""

    def __init__(
        self,
        settings: DocumentPipelineSettings | None = None,
        extraction_task: ExtractionTask | None = None,
        image_description_task: ImageDescriptionTask | None = None,
        chunking_task: ChunkingTask | None = None,
        embedding_task: EmbeddingTask | None = None,
        chunk_repository: ChunkCRUD | None = None,
    ) -> None:
        """
        Initialize pipeline with configuration.

        Tasks are built from settings unless supplied.

        Args:
            settings: Pipeline settings (uses defaults if None)
            extraction_task: Text/image extractor
            image_description_task: Vision describer (None disables it when
                settings.describe_images is False)
            chunking_task: Hierarchical chunker
            embedding_task: Embedding client
            chunk_repository: Chunk store
        """
        self._settings = settings or DocumentPipelineSettings()

        self._extraction_task = extraction_task or ExtractionTask(
            extract_images=self._settings.describe_images,
        )
        if image_description_task is None and self._settings.describe_images:
            image_description_task = ImageDescriptionTask(
                model_id=self._settings.vision_model_id,
                max_concurrency=self._settings.image_description_concurrency,
            )
        self._image_description_task = image_description_task
        self._chunking_task = chunking_task or ChunkingTask(
            parent_min_tokens=self._settings.parent_min_tokens,
            parent_max_tokens=self._settings.parent_max_tokens,
            child_target_tokens=self._settings.child_target_tokens,
            child_overlap_tokens=self._settings.child_overlap_tokens,
        )
        self._embedding_task = embedding_task or EmbeddingTask(
            model_id=self._settings.embedding_model_id,
            dimension=self._settings.embedding_dimension,
            batch_size=self._settings.embedding_batch_size,
            batch_delay_seconds=self._settings.embedding_batch_delay_seconds,
            max_attempts=self._settings.embedding_max_attempts,
        )
        self._chunk_repository = chunk_repository or chunk_crud

    @property
    def embedding_task(self) -> EmbeddingTask:
        return self._embedding_task

    async def prepare(
        self,
        document_id: str,
        data: bytes,
        mime_type: str,
    ) -> ProcessedDocument:
        """
        Turn raw bytes into linked, embedded chunks without touching storage.

        Args:
            document_id: Document id used in chunk ids
            data: Raw file bytes
            mime_type: Declared MIME type

        Returns:
            ProcessedDocument: Parents, children, and one vector per child

        Raises:
            ExtractionError: Unsupported, unparseable, or empty document
            ImageDescriptionError: Any image description failed
            ChunkingError: No parent chunk produced
            EmbeddingError: Embedding failed or returned bad vectors
        """
        extraction = await self._extraction_task.extract(data, mime_type)

        image_count = 0
        if (
            self._image_description_task is not None
            and normalize_mime_type(mime_type) == PDF_MIME_TYPE
            and extraction.images
        ):
            descriptions = await self._image_description_task.describe_all(extraction.images)
            extraction = annotate_extraction(extraction, descriptions)
            image_count = len(descriptions)

        parents = self._chunking_task.chunk(
            extraction.full_text,
            document_id,
            page_map=extraction.page_map,
        )
        parents = apply_to_parents(parents)
        children = flatten_children(parents)

        embeddings = await self._embedding_task.embed_batch(
            [embedding_text(child.content, child.image_desc) for child in children]
        )

        return ProcessedDocument(
            document_id=document_id,
            parents=parents,
            children=children,
            embeddings=embeddings,
            image_count=image_count,
        )

    async def process(
        self,
        session: AsyncSession,
        document_id: UUID,
        collection_id: UUID,
        data: bytes,
        mime_type: str,
    ) -> PipelineResult:
        """
        Process document through the full pipeline and store its chunks.

        Args:
            session: Async database session used for the bulk insert
            document_id: Document UUID
            collection_id: Owning collection UUID
            data: Raw file bytes
            mime_type: Declared MIME type

        Returns:
            PipelineResult: Stored chunk counts and timing

        Raises:
            DocumentProcessingError: Any stage failed (see prepare), or
            StorageTransactionError from the bulk insert
        """
        start_time = time.perf_counter()
        doc_id = str(document_id)

        processed = await self.prepare(doc_id, data, mime_type)

        await self._chunk_repository.insert_chunks(
            session,
            document_id,
            collection_id,
            processed.parents,
            processed.children,
            processed.embeddings,
            dimension=self._embedding_task.dimension,
        )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{__name__}:process - Document processed",
            extra={
                "document_id": doc_id,
                "parent_count": len(processed.parents),
                "child_count": len(processed.children),
                "image_count": processed.image_count,
                "processing_time_ms": round(elapsed_ms, 1),
            },
        )
        return PipelineResult(
            document_id=doc_id,
            parent_count=len(processed.parents),
            child_count=len(processed.children),
            image_count=processed.image_count,
            processing_time_ms=elapsed_ms,
        )
