"""
Task modules for document processing pipeline.

Exports: ExtractionTask, ChunkingTask, ImageDescriptionTask, EmbeddingTask
"""

from .chunking_task import ChunkingTask, flatten_children
from .embedding_task import EmbeddingTask
from .extraction_task import ExtractionTask, is_supported_mime_type
from .image_description_task import ImageDescriptionTask

__all__ = [
    "ExtractionTask",
    "is_supported_mime_type",
    "ChunkingTask",
    "flatten_children",
    "ImageDescriptionTask",
    "EmbeddingTask",
]
