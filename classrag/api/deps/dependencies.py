"""
Dependency injection container.

Factory functions for FastAPI dependencies. Long-lived components
(session factory, content store, pipeline, background runner) are built
once per process and shared by every request.

Dependencies: classrag.configs, classrag.application, classrag.boundary, classrag.core
System role: DI container for service injection
"""

from functools import lru_cache

from classrag.application.services import DocumentService, RetrievalService
from classrag.configs import Settings, get_settings


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings
        self._session_factory = None
        self._content_store = None
        self._runner = None
        self._document_pipeline = None
        self._document_service = None
        self._retriever = None
        self._reranker = None
        self._retrieval_service = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def session_factory(self):
        """Get cached async session factory."""
        if self._session_factory is None:
            from classrag.boundary.db.connection import get_async_session_factory
            self._session_factory = get_async_session_factory()
        return self._session_factory

    @property
    def content_store(self):
        """Get cached S3 content store."""
        if self._content_store is None:
            from classrag.boundary.storage import S3ContentStore

            store_settings = self.settings.content_store
            self._content_store = S3ContentStore(
                bucket=store_settings.bucket,
                region=store_settings.region,
                key_prefix=store_settings.key_prefix,
            )
        return self._content_store

    @property
    def runner(self):
        """Get the process-wide background task runner."""
        if self._runner is None:
            from classrag.core.background import BackgroundTaskRunner
            self._runner = BackgroundTaskRunner()
        return self._runner

    @property
    def document_pipeline(self):
        """Get cached document pipeline."""
        if self._document_pipeline is None:
            from classrag.core.document_processing.entrypoint import DocumentPipeline
            self._document_pipeline = DocumentPipeline(settings=self.settings.pipeline)
        return self._document_pipeline

    @property
    def document_service(self) -> DocumentService:
        """Get cached document service (owns the in-flight set, so one per process)."""
        if self._document_service is None:
            self._document_service = DocumentService(
                session_factory=self.session_factory,
                content_store=self.content_store,
                pipeline=self.document_pipeline,
                runner=self.runner,
                settings=self.settings.pipeline,
            )
        return self._document_service

    @property
    def retriever(self):
        """Get cached hybrid retriever; shares the pipeline's embedding client."""
        if self._retriever is None:
            from classrag.boundary.db.CRUD.chunk_crud import ChunkCRUD
            from classrag.core.retrieval import HybridRetriever

            retrieval = self.settings.retrieval
            self._retriever = HybridRetriever(
                embedding_task=self.document_pipeline.embedding_task,
                session_factory=self.session_factory,
                chunk_repository=ChunkCRUD(),
                overfetch_factor=retrieval.overfetch_factor,
                min_similarity=retrieval.min_similarity,
            )
        return self._retriever

    @property
    def reranker(self):
        """Get cached LLM reranker, or None when reranking is disabled."""
        if self._reranker is None and self.settings.retrieval.use_reranking:
            from classrag.core.retrieval import LLMReranker
            self._reranker = LLMReranker(model_id=self.settings.retrieval.rerank_model_id)
        return self._reranker

    @property
    def retrieval_service(self) -> RetrievalService:
        """Get cached retrieval service."""
        if self._retrieval_service is None:
            self._retrieval_service = RetrievalService(
                retriever=self.retriever,
                reranker=self.reranker,
                settings=self.settings.retrieval,
            )
        return self._retrieval_service

    def clear(self) -> None:
        """Clear all cached instances."""
        self._session_factory = None
        self._content_store = None
        self._runner = None
        self._document_pipeline = None
        self._document_service = None
        self._retriever = None
        self._reranker = None
        self._retrieval_service = None


@lru_cache
def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return ServiceCache()


def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_service_cache().settings


def get_document_service() -> DocumentService:
    """
    Get document service instance.

    Returns:
        DocumentService: Process-wide service backed by the cached pipeline and runner
    """
    return get_service_cache().document_service


def get_retrieval_service() -> RetrievalService:
    """
    Get retrieval service instance.

    Returns:
        RetrievalService: Hybrid retriever plus reranker (when enabled)
    """
    return get_service_cache().retrieval_service
