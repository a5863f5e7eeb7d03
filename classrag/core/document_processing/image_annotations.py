"""
Image description fusion.

Descriptions of embedded PDF images are appended to their page text
wrapped in sentinels, so they flow through chunking with the page they
belong to. After chunking, the sentinel-wrapped text is moved out of each
child's content into its image_desc field, and parents get a readable
label in place of the raw sentinels.

Dependencies: re
System role: Bridges image description and chunk storage
"""

import re

from .models import (
    ChildChunk,
    ExtractionResult,
    PageText,
    ParentChunk,
    build_full_text,
)

IMG_DESC_START = "$$IMG_DESC_START$$"
IMG_DESC_END = "$$IMG_DESC_END$$"

_SENTINEL_PATTERN = re.compile(f"{re.escape(IMG_DESC_START)}|{re.escape(IMG_DESC_END)}")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")


def wrap_description(description: str) -> str:
    """Sentinel-wrapped description as appended after a page's text."""
    clean = _SENTINEL_PATTERN.sub("", description).strip()
    return f"\n\n{IMG_DESC_START}{clean}{IMG_DESC_END}"


def annotate_pages(
    pages: list[PageText],
    descriptions: list[tuple[int, str]],
) -> list[PageText]:
    """
    Append each non-empty description to the text of its page.

    Args:
        pages: Extracted pages
        descriptions: (page_number, description) pairs in image order

    Returns:
        list[PageText]: New page list; input pages are not modified
    """
    by_page: dict[int, list[str]] = {}
    for page_number, description in descriptions:
        if description and description.strip():
            by_page.setdefault(page_number, []).append(wrap_description(description))

    return [
        PageText(
            page_number=page.page_number,
            text=page.text + "".join(by_page.get(page.page_number, [])),
        )
        for page in pages
    ]


def annotate_extraction(
    result: ExtractionResult,
    descriptions: list[tuple[int, str]],
) -> ExtractionResult:
    """Rebuild full text and page map from annotated pages."""
    if not descriptions:
        return result
    pages = annotate_pages(result.pages, descriptions)
    full_text, page_map = build_full_text(pages)
    return result.model_copy(
        update={"pages": pages, "full_text": full_text, "page_map": page_map}
    )


def split_segments(content: str) -> list[tuple[bool, str]]:
    """
    Split content into (is_description, text) segments.

    A chunk boundary can cut a sentinel pair, so a leading END without a
    START means the chunk opens inside a description, and a START without
    an END means the description runs past the chunk's end.
    """
    markers = list(_SENTINEL_PATTERN.finditer(content))
    if not markers:
        return [(False, content)]

    inside = markers[0].group() == IMG_DESC_END
    segments: list[tuple[bool, str]] = []
    position = 0
    for marker in markers:
        segments.append((inside, content[position:marker.start()]))
        inside = marker.group() == IMG_DESC_START
        position = marker.end()
    segments.append((inside, content[position:]))
    return segments


def _normalize(text: str) -> str:
    return _EXCESS_BLANK_LINES.sub("\n\n", text).strip()


def extract_image_descriptions(content: str) -> tuple[str, str | None, bool]:
    """
    Move sentinel-wrapped descriptions out of chunk content.

    Args:
        content: Chunk text possibly containing sentinels

    Returns:
        tuple: (content without descriptions, joined descriptions or None,
        whether any sentinel was present)
    """
    segments = split_segments(content)
    if len(segments) == 1 and not segments[0][0]:
        return content, None, False

    text = "".join(part for is_description, part in segments if not is_description)
    descriptions = [
        part.strip() for is_description, part in segments if is_description and part.strip()
    ]
    return _normalize(text), "\n\n".join(descriptions) or None, True


def render_with_labels(content: str) -> str:
    """Replace sentinel-wrapped descriptions with "[Image description: ...]" labels."""
    segments = split_segments(content)
    if len(segments) == 1 and not segments[0][0]:
        return content
    rendered = []
    for is_description, part in segments:
        if not is_description:
            rendered.append(part)
        elif part.strip():
            rendered.append(f"[Image description: {part.strip()}]")
    return _normalize("".join(rendered))


def apply_to_child(child: ChildChunk) -> ChildChunk:
    content, image_desc, found = extract_image_descriptions(child.content)
    if not found:
        return child
    return child.model_copy(
        update={"content": content, "image_desc": image_desc, "has_images": image_desc is not None}
    )


def apply_to_parents(parents: list[ParentChunk]) -> list[ParentChunk]:
    """
    Post-process every parent and child of a chunked document.

    Children lose the description text from content and carry it in
    image_desc. Parents keep the description inline as a label so the
    context handed to a reader stays complete.

    Args:
        parents: Chunker output

    Returns:
        list[ParentChunk]: New parent list with processed children
    """
    processed = []
    for parent in parents:
        _, parent_desc, found = extract_image_descriptions(parent.content)
        update = {"children": [apply_to_child(child) for child in parent.children]}
        if found:
            update.update(
                content=render_with_labels(parent.content),
                image_desc=parent_desc,
                has_images=parent_desc is not None,
            )
        processed.append(parent.model_copy(update=update))
    return processed
