"""
Models for document processing pipeline.

Exports: ChunkMetadata, ParentChunk, ChildChunk, PageText, ExtractedImage,
PageMap, ExtractionResult, PipelineResult, ProcessedDocument
"""

from .chunk import ChildChunk, ChunkMetadata, ParentChunk
from .extraction import (
    ExtractedImage,
    ExtractionResult,
    PageMap,
    PageSpan,
    PageText,
    build_full_text,
)
from .pipeline_result import PipelineResult, ProcessedDocument

__all__ = [
    "ChunkMetadata",
    "ParentChunk",
    "ChildChunk",
    "PageText",
    "ExtractedImage",
    "PageSpan",
    "PageMap",
    "ExtractionResult",
    "build_full_text",
    "PipelineResult",
    "ProcessedDocument",
]
