"""
Pipeline result model for document processing.

Represents the outcome of processing a document through the pipeline.

Dependencies: pydantic
System role: Return type for DocumentPipeline.process()
"""

from pydantic import BaseModel, Field

from .chunk import ChildChunk, ParentChunk


class PipelineResult(BaseModel):
    """Result of document processing pipeline execution."""

    document_id: str = Field(description="Unique document identifier")
    parent_count: int = Field(description="Number of parent chunks stored")
    child_count: int = Field(description="Number of embedded child chunks stored")
    image_count: int = Field(default=0, description="Number of images described")
    processing_time_ms: float = Field(description="Total processing time in milliseconds")


class ProcessedDocument(BaseModel):
    """Chunks and vectors of one document, ready for storage."""

    document_id: str
    parents: list[ParentChunk]
    children: list[ChildChunk]
    embeddings: list[list[float]]
    image_count: int = 0
