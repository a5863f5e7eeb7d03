"""
Core business logic module.

Contains the document processing pipeline, the retrieval engine, and the
exception hierarchy shared across layers.
"""

from classrag.core.exceptions import (
    ClassRagException,
    ValidationError,
    DocumentNotFoundError,
    InvalidStateError,
    ContentStoreError,
    DocumentProcessingError,
    ExtractionError,
    ChunkingError,
    EmbeddingError,
    ImageDescriptionError,
    StorageTransactionError,
    SearchError,
)

__all__ = [
    "ClassRagException",
    "ValidationError",
    "DocumentNotFoundError",
    "InvalidStateError",
    "ContentStoreError",
    "DocumentProcessingError",
    "ExtractionError",
    "ChunkingError",
    "EmbeddingError",
    "ImageDescriptionError",
    "StorageTransactionError",
    "SearchError",
]
