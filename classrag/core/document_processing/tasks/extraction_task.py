"""
Text and image extraction task.

Turns raw upload bytes into plain text. PDFs additionally yield per-page
text, a page map, and embedded raster images for description.

Dependencies: pypdf, python-docx, fastapi (run_in_threadpool)
System role: First stage of document ingestion pipeline
"""

import logging
import mimetypes
from io import BytesIO

from docx import Document as DocxDocument
from fastapi.concurrency import run_in_threadpool
from pypdf import PdfReader

from classrag.core.exceptions import ExtractionError

from ..models import ExtractedImage, ExtractionResult, PageText, build_full_text

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
TEXT_MIME_TYPE = "text/plain"
DOCX_MIME_TYPES = frozenset(
    {
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/docx",
    }
)
SUPPORTED_MIME_TYPES = frozenset({PDF_MIME_TYPE, TEXT_MIME_TYPE, *DOCX_MIME_TYPES})

NO_TEXT_MESSAGE = "No text could be extracted from the file"


def normalize_mime_type(mime_type: str) -> str:
    """Lower-case a MIME type and drop parameters such as charset."""
    return mime_type.split(";", 1)[0].strip().lower()


def is_supported_mime_type(mime_type: str) -> bool:
    return normalize_mime_type(mime_type) in SUPPORTED_MIME_TYPES


class ExtractionTask:
    """Extract text (and PDF images) from PDF, DOCX, and plain text buffers."""

    def __init__(self, extract_images: bool = True) -> None:
        """
        Initialize extraction task.

        Args:
            extract_images: Collect embedded PDF images for description
        """
        self._extract_images = extract_images

    async def extract(self, data: bytes, mime_type: str) -> ExtractionResult:
        """
        Extract text from a document buffer.

        Parsing is CPU-bound and blocking, so it runs in the threadpool.

        Args:
            data: Raw file bytes
            mime_type: Declared MIME type of the file

        Returns:
            ExtractionResult: Full text plus pages, page map, and images for PDFs

        Raises:
            ExtractionError: Unsupported type, unparseable buffer, or no text
        """
        return await run_in_threadpool(self.extract_sync, data, mime_type)

    def extract_sync(self, data: bytes, mime_type: str) -> ExtractionResult:
        normalized = normalize_mime_type(mime_type)
        if normalized == PDF_MIME_TYPE:
            result = self._extract_pdf(data)
        elif normalized in DOCX_MIME_TYPES:
            result = self._extract_docx(data, normalized)
        elif normalized == TEXT_MIME_TYPE:
            result = self._extract_text(data)
        else:
            raise ExtractionError(f"Unsupported file type: {mime_type}", mime_type)

        if not result.full_text.strip():
            raise ExtractionError(NO_TEXT_MESSAGE, normalized)

        logger.info(
            f"{__name__}:extract - Extracted text",
            extra={
                "mime_type": normalized,
                "char_count": len(result.full_text),
                "page_count": len(result.pages),
                "image_count": len(result.images),
            },
        )
        return result

    def _extract_text(self, data: bytes) -> ExtractionResult:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(
                f"Failed to decode text file as UTF-8: {e}", TEXT_MIME_TYPE
            ) from e
        return ExtractionResult(full_text=text, mime_type=TEXT_MIME_TYPE)

    def _extract_docx(self, data: bytes, mime_type: str) -> ExtractionResult:
        """
        Paragraph text joined by blank lines, followed by table cell text.

        Raises:
            ExtractionError: When the buffer is not a readable DOCX package
        """
        try:
            doc = DocxDocument(BytesIO(data))
        except Exception as e:
            raise ExtractionError(f"Failed to parse DOCX: {e}", mime_type) from e

        blocks = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))

        return ExtractionResult(full_text="\n\n".join(blocks), mime_type=mime_type)

    def _extract_pdf(self, data: bytes) -> ExtractionResult:
        """
        Per-page text with cumulative offsets, plus embedded images.

        Raises:
            ExtractionError: When the buffer is not a readable PDF
        """
        try:
            reader = PdfReader(BytesIO(data))
            raw_pages = list(reader.pages)
        except Exception as e:
            raise ExtractionError(f"Failed to parse PDF: {e}", PDF_MIME_TYPE) from e

        pages: list[PageText] = []
        images: list[ExtractedImage] = []
        for page_number, page in enumerate(raw_pages, start=1):
            try:
                text = page.extract_text() or ""
            except Exception as e:
                raise ExtractionError(
                    f"Failed to extract text from PDF page {page_number}: {e}",
                    PDF_MIME_TYPE,
                ) from e
            pages.append(PageText(page_number=page_number, text=text.strip()))

            if self._extract_images:
                images.extend(self._extract_page_images(page, page_number))

        full_text, page_map = build_full_text(pages)
        return ExtractionResult(
            full_text=full_text,
            mime_type=PDF_MIME_TYPE,
            pages=pages,
            images=images,
            page_map=page_map,
        )

    def _extract_page_images(self, page, page_number: int) -> list[ExtractedImage]:
        """Embedded images of one page; a page whose images cannot be listed has none."""
        extracted = []
        try:
            for image in page.images:
                mime_type, _ = mimetypes.guess_type(image.name or "")
                extracted.append(
                    ExtractedImage(
                        page_number=page_number,
                        data=image.data,
                        mime_type=mime_type or "image/png",
                    )
                )
        except Exception as e:
            logger.warning(
                f"{__name__}:_extract_page_images - Skipping images: {type(e).__name__}: {e}",
                extra={"page_number": page_number},
            )
            return []
        return extracted
