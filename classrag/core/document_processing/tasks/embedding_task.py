"""
Embedding generation task using Google Generative AI embeddings.

Embeds child chunk texts in fixed-size sub-batches with a pause between
batches (provider rate limits) and retries each sub-batch with
exponential backoff. Either every text gets a vector or the call fails.

Dependencies: langchain_google_genai, tenacity
System role: Third stage of document ingestion pipeline, and query embedding
"""

import asyncio
import logging

from langchain_core.embeddings import Embeddings
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from classrag.core.exceptions import EmbeddingError

from ..embeddings_wrapper import FixedDimensionEmbeddings

logger = logging.getLogger(__name__)


class EmbeddingTask:
    """Generate embeddings in rate-limited, retried sub-batches."""

    def __init__(
        self,
        model_id: str = "models/gemini-embedding-001",
        dimension: int = 1024,
        batch_size: int = 100,
        batch_delay_seconds: float = 1.0,
        max_attempts: int = 3,
        embeddings: Embeddings | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        """
        Initialize embedding task.

        Args:
            model_id: Google embedding model ID
            dimension: Required vector length
            batch_size: Texts per provider call
            batch_delay_seconds: Pause between consecutive sub-batches
            max_attempts: Attempts per sub-batch before giving up
            embeddings: Preconfigured embeddings client (created from model_id when omitted)
            retry_wait: Tenacity wait strategy between attempts

        Raises:
            ValueError: When model_id is empty or batch_size is not positive
        """
        if not model_id:
            raise ValueError("model_id cannot be empty")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self._embeddings = embeddings or FixedDimensionEmbeddings(
            model=model_id,
            output_dimensionality=dimension,
        )
        self._dimension = dimension
        self._batch_size = batch_size
        self._batch_delay_seconds = batch_delay_seconds
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait or wait_exponential_jitter(initial=1, max=30, jitter=5)

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts, preserving order.

        Args:
            texts: Texts to embed

        Returns:
            list[list[float]]: One vector per input text; [] for [] without a provider call

        Raises:
            EmbeddingError: When any sub-batch fails after retries or returns bad vectors
        """
        if not texts:
            return []

        vectors: list[list[float]] = []
        batch_count = (len(texts) + self._batch_size - 1) // self._batch_size
        for batch_number, start in enumerate(range(0, len(texts), self._batch_size)):
            if batch_number > 0 and self._batch_delay_seconds > 0:
                await asyncio.sleep(self._batch_delay_seconds)

            batch = texts[start:start + self._batch_size]
            batch_vectors = await self._embed_with_retry(batch, batch_number)
            if len(batch_vectors) != len(batch):
                raise EmbeddingError(
                    f"Embedding provider returned {len(batch_vectors)} vectors "
                    f"for {len(batch)} texts"
                )
            for vector in batch_vectors:
                self._check_dimension(vector)
            vectors.extend(batch_vectors)

        logger.info(
            f"{__name__}:embed_batch - Embedded texts",
            extra={"text_count": len(texts), "batch_count": batch_count},
        )
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """
        Embed a single search query.

        Raises:
            EmbeddingError: When the provider call fails or the vector is malformed
        """
        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as e:
            raise EmbeddingError(f"Failed to embed query: {e}") from e
        self._check_dimension(vector)
        return vector

    async def _embed_with_retry(self, batch: list[str], batch_number: int) -> list[list[float]]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._retry_wait,
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:embed_batch - Retry {retry_state.attempt_number}/"
                f"{self._max_attempts} for batch {batch_number}"
            ),
            reraise=True,
        )
        vectors: list[list[float]] = []
        try:
            async for attempt in retrying:
                with attempt:
                    vectors = await self._embeddings.aembed_documents(batch)
        except Exception as e:
            raise EmbeddingError(f"Failed to generate embeddings: {e}") from e
        return vectors

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self._dimension:
            raise EmbeddingError(
                f"Embedding dimension {len(vector)} does not match expected {self._dimension}"
            )
