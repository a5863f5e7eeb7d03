"""
Configuration settings for the document processing pipeline.

Provides environment-based configuration for extraction, chunking,
image description, and embedding.

Dependencies: pydantic, pydantic_settings
System role: Centralized pipeline configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DocumentPipelineSettings(BaseSettings):
    """Settings for document ingestion pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="DOC_PIPELINE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Upload validation
    max_file_size_bytes: int = Field(
        default=25 * 1024 * 1024,
        description="Maximum accepted upload size (25MB)",
    )

    # Hierarchical chunking (1 token ~ 4 characters)
    parent_min_tokens: int = Field(
        default=2000,
        description="Minimum estimated tokens per parent chunk",
    )
    parent_max_tokens: int = Field(
        default=4000,
        description="Maximum estimated tokens per parent chunk",
    )
    child_target_tokens: int = Field(
        default=400,
        description="Target estimated tokens per child chunk",
    )
    child_overlap_tokens: int = Field(
        default=50,
        description="Overlap between consecutive child chunks in tokens",
    )

    # Embeddings
    embedding_model_id: str = Field(
        default="models/gemini-embedding-001",
        description="Google embedding model ID",
    )
    embedding_dimension: int = Field(
        default=1024,
        description="Embedding vector dimension (must match the chunk vector column)",
    )
    embedding_batch_size: int = Field(
        default=100,
        description="Texts per embedding API call",
    )
    embedding_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between consecutive embedding batches (rate limits)",
    )
    embedding_max_attempts: int = Field(
        default=3,
        description="Attempts per embedding batch before failing the document",
    )

    # Image descriptions (PDF only)
    describe_images: bool = Field(
        default=True,
        description="Describe embedded PDF images with the vision model",
    )
    vision_model_id: str = Field(
        default="gemini-2.5-flash",
        description="Vision model used for image descriptions",
    )
    image_description_concurrency: int = Field(
        default=8,
        description="Maximum concurrent image description calls per document",
    )
