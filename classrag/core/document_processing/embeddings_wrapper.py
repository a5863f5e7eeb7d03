"""
Google Generative AI Embeddings wrapper with fixed output dimensionality.

Wraps GoogleGenerativeAIEmbeddings so every sync and async embedding call
requests the same vector size, which must match the pgvector column of
the chunk store.

Dependencies: langchain_google_genai
System role: Embedding dimension consistency for the chunk store
"""

import logging
from typing import List

from langchain_google_genai import GoogleGenerativeAIEmbeddings

logger = logging.getLogger(__name__)


class FixedDimensionEmbeddings(GoogleGenerativeAIEmbeddings):
    """
    GoogleGenerativeAIEmbeddings wrapper with fixed output dimensionality.

    The base class does not apply output_dimensionality from the
    constructor, so the embed methods are overridden to pass it on each call.
    """

    _output_dimensionality: int = 1024

    def __init__(
        self,
        model: str = "models/gemini-embedding-001",
        output_dimensionality: int = 1024,
        **kwargs,
    ) -> None:
        """
        Initialize embeddings with fixed output dimensionality.

        Args:
            model: Google embedding model ID
            output_dimensionality: Fixed dimension for all embeddings
            **kwargs: Additional arguments for GoogleGenerativeAIEmbeddings

        Note:
            gemini-embedding-001 supports up to 3072 dimensions, reducible to 1024.
        """
        super().__init__(model=model, **kwargs)
        self._output_dimensionality = output_dimensionality
        logger.info(
            f"{__name__}:__init__ - Initialized with model={model}, "
            f"output_dimensionality={output_dimensionality}"
        )

    @property
    def output_dimensionality(self) -> int:
        return self._output_dimensionality

    def embed_documents(
        self,
        texts: List[str],
        *,
        batch_size: int = 100,
        task_type: str | None = None,
        titles: List[str] | None = None,
        output_dimensionality: int | None = None,
    ) -> List[List[float]]:
        return super().embed_documents(
            texts,
            batch_size=batch_size,
            task_type=task_type or "RETRIEVAL_DOCUMENT",
            titles=titles,
            output_dimensionality=output_dimensionality or self._output_dimensionality,
        )

    async def aembed_documents(
        self,
        texts: List[str],
        *,
        batch_size: int = 100,
        task_type: str | None = None,
        titles: List[str] | None = None,
        output_dimensionality: int | None = None,
    ) -> List[List[float]]:
        """
        Embed documents asynchronously with the configured dimension.

        Args:
            texts: List of texts to embed
            batch_size: Texts per provider request
            task_type: Embedding task type (defaults to RETRIEVAL_DOCUMENT)
            titles: Optional titles for documents
            output_dimensionality: Override dimension (uses configured if None)

        Returns:
            List of embedding vectors
        """
        return await super().aembed_documents(
            texts,
            batch_size=batch_size,
            task_type=task_type or "RETRIEVAL_DOCUMENT",
            titles=titles,
            output_dimensionality=output_dimensionality or self._output_dimensionality,
        )

    def embed_query(
        self,
        text: str,
        task_type: str | None = None,
        title: str | None = None,
        output_dimensionality: int | None = None,
    ) -> List[float]:
        return super().embed_query(
            text,
            task_type=task_type or "RETRIEVAL_QUERY",
            title=title,
            output_dimensionality=output_dimensionality or self._output_dimensionality,
        )

    async def aembed_query(
        self,
        text: str,
        task_type: str | None = None,
        title: str | None = None,
        output_dimensionality: int | None = None,
    ) -> List[float]:
        """Embed a search query asynchronously with the configured dimension."""
        return await super().aembed_query(
            text,
            task_type=task_type or "RETRIEVAL_QUERY",
            title=title,
            output_dimensionality=output_dimensionality or self._output_dimensionality,
        )
