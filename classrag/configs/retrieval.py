"""
Retrieval configuration settings.

Tunable parameters for hybrid search, score fusion, and reranking.

Dependencies: pydantic, pydantic_settings
System role: Retrieval engine configuration
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_CONFIG_NAME = re.compile(r"[a-z_][a-z0-9_]*")


class RetrievalSettings(BaseSettings):
    """Hybrid retrieval and reranking configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RAG_",
        case_sensitive=False,
        extra="ignore",
    )

    initial_k: int = Field(
        default=30,
        description="Fused candidates handed to the reranker",
    )
    final_k: int = Field(default=5, description="Results returned after reranking")
    overfetch_factor: int = Field(
        default=3,
        description="Per-search candidate multiplier applied before fusion",
    )

    vector_weight: float = Field(
        default=0.7,
        description="Weight of normalized vector similarity in the fused score",
    )
    bm25_weight: float = Field(
        default=0.3,
        description="Weight of normalized lexical rank in the fused score",
    )
    min_similarity: float = Field(
        default=0.5,
        description="Cosine similarity floor for vector candidates (0.0-1.0)",
    )
    text_search_config: str = Field(
        default="english",
        description="PostgreSQL text search configuration for the tsvector column and queries",
    )

    use_reranking: bool = Field(default=True, description="Enable LLM reranking")
    rerank_model_id: str = Field(
        default="gemini-2.5-flash",
        description="Chat model used to score candidates (0-10)",
    )

    @field_validator("text_search_config")
    @classmethod
    def _plain_identifier(cls, value: str) -> str:
        # Interpolated into the generated column DDL
        if not _CONFIG_NAME.fullmatch(value):
            raise ValueError(f"Invalid text search configuration: {value}")
        return value
