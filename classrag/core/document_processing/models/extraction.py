"""
Extraction result models.

Dependencies: pydantic
System role: Output of the extraction stage, input of annotation and chunking
"""

from bisect import bisect_right

from pydantic import BaseModel, ConfigDict, Field

PAGE_SEPARATOR = "\n\n"


class PageText(BaseModel):
    """Text of one PDF page (1-based page number)."""

    page_number: int
    text: str


class ExtractedImage(BaseModel):
    """Raw embedded raster image pulled from a PDF page."""

    page_number: int
    data: bytes
    mime_type: str = "image/png"


class PageSpan(BaseModel):
    """Half-open interval [start, end) of the full text belonging to a page."""

    model_config = ConfigDict(frozen=True)

    page_number: int
    start: int
    end: int


class PageMap(BaseModel):
    """
    Immutable, sorted interval list mapping full-text offsets to pages.

    Offsets falling in the separator between two pages resolve to the
    preceding page.
    """

    model_config = ConfigDict(frozen=True)

    spans: tuple[PageSpan, ...] = ()

    def page_for(self, offset: int) -> int | None:
        """
        Look up the page containing a character offset.

        Args:
            offset: Absolute offset into the full text

        Returns:
            int | None: 1-based page number, None when outside every page
        """
        if not self.spans or offset < 0 or offset > self.spans[-1].end:
            return None
        position = bisect_right([span.start for span in self.spans], offset) - 1
        if position < 0:
            return None
        return self.spans[position].page_number


def build_full_text(pages: list[PageText]) -> tuple[str, PageMap]:
    """
    Join page texts with blank lines and record each page's span.

    Args:
        pages: Pages in reading order

    Returns:
        tuple[str, PageMap]: Full text and its offset-to-page map
    """
    parts: list[str] = []
    spans: list[PageSpan] = []
    cursor = 0
    for i, page in enumerate(pages):
        if i > 0:
            parts.append(PAGE_SEPARATOR)
            cursor += len(PAGE_SEPARATOR)
        parts.append(page.text)
        spans.append(
            PageSpan(page_number=page.page_number, start=cursor, end=cursor + len(page.text))
        )
        cursor += len(page.text)
    return "".join(parts), PageMap(spans=tuple(spans))


class ExtractionResult(BaseModel):
    """Text (and, for PDFs, pages and images) extracted from one document."""

    full_text: str
    mime_type: str
    pages: list[PageText] = Field(default_factory=list)
    images: list[ExtractedImage] = Field(default_factory=list)
    page_map: PageMap | None = None
