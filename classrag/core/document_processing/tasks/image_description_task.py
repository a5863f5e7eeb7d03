"""
Image description task using a Gemini vision model.

Describes embedded PDF images so their content becomes searchable text.
Descriptions for one document are generated concurrently; the first
failure cancels the rest and fails the document.

Dependencies: langchain_google_genai, langchain_core
System role: Optional stage between extraction and chunking (PDF only)
"""

import asyncio
import base64
import logging

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from classrag.core.exceptions import ImageDescriptionError

from ..models import ExtractedImage

logger = logging.getLogger(__name__)

DESCRIPTION_PROMPT = (
    "You are helping index class materials for search. Describe this image "
    "from page {page_number} of a course document. Include any visible text, "
    "labels, numbers, and the concept the figure, chart, or diagram explains. "
    "Reply with the description only, in plain prose."
)


def _message_text(content) -> str:
    """Flatten a chat model response content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class ImageDescriptionTask:
    """Describe images with a multimodal chat model."""

    def __init__(
        self,
        model_id: str = "gemini-2.5-flash",
        max_concurrency: int = 8,
        model: ChatGoogleGenerativeAI | None = None,
    ) -> None:
        """
        Initialize image description task.

        Args:
            model_id: Gemini vision model ID
            max_concurrency: Maximum simultaneous model calls per document
            model: Preconfigured chat model (created from model_id when omitted)
        """
        self._model = model or ChatGoogleGenerativeAI(model=model_id, temperature=0)
        self._max_concurrency = max(1, max_concurrency)

    async def describe(
        self,
        image_bytes: bytes,
        page_number: int,
        mime_type: str = "image/png",
    ) -> str:
        """
        Describe one image.

        Args:
            image_bytes: Raw image payload
            page_number: Page the image was found on (used in the prompt)
            mime_type: Image MIME type for the data URL

        Returns:
            str: Trimmed description, possibly empty

        Raises:
            ImageDescriptionError: When the model call fails
        """
        encoded = base64.b64encode(image_bytes).decode("ascii")
        message = HumanMessage(
            content=[
                {"type": "text", "text": DESCRIPTION_PROMPT.format(page_number=page_number)},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                },
            ]
        )
        try:
            response = await self._model.ainvoke([message])
        except Exception as e:
            raise ImageDescriptionError(
                f"Failed to describe image on page {page_number}: {e}",
                page_number=page_number,
            ) from e
        return _message_text(response.content).strip()

    async def describe_all(self, images: list[ExtractedImage]) -> list[tuple[int, str]]:
        """
        Describe all images concurrently, bounded by max_concurrency.

        Args:
            images: Images extracted from a PDF

        Returns:
            list[tuple[int, str]]: (page_number, description) in image order;
            images with an empty description are left out

        Raises:
            ImageDescriptionError: On the first failed description; pending
            calls are cancelled
        """
        if not images:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(image: ExtractedImage) -> str:
            async with semaphore:
                return await self.describe(image.data, image.page_number, image.mime_type)

        tasks = [asyncio.create_task(_bounded(image)) for image in images]
        try:
            descriptions = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results = [
            (image.page_number, description)
            for image, description in zip(images, descriptions)
            if description
        ]
        logger.info(
            f"{__name__}:describe_all - Described images",
            extra={"image_count": len(images), "described_count": len(results)},
        )
        return results
