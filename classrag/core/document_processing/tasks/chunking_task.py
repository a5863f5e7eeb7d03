"""
Hierarchical text chunking task.

Builds large parent chunks from whole sentences, then splits each parent
into small overlapping children with RecursiveCharacterTextSplitter.
Children are embedded and searched; parents are returned as context.

Dependencies: langchain_text_splitters
System role: Second stage of document ingestion pipeline
"""

import logging
import math
import re

from langchain_text_splitters import RecursiveCharacterTextSplitter

from classrag.core.exceptions import ChunkingError

from ..models import ChildChunk, ChunkMetadata, PageMap, ParentChunk

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4

# Sentence = optional non-terminal run + terminal punctuation, or the trailing unterminated run
_SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+|[^.!?]+\Z")
_CHAPTER_PATTERN = re.compile(r"^(chapter|section|part)\s+\d+", re.IGNORECASE)
_NUMBERED_PATTERN = re.compile(r"^\d+(\.\d+)*\.?\s+[A-Z]")
_TERMINAL_PUNCTUATION = (".", "!", "?", ",", ";", ":")
_MINOR_WORDS = frozenset({"a", "an", "and", "as", "at", "by", "for", "in", "of", "on", "or", "the", "to", "with"})


def estimate_tokens(text: str) -> int:
    """Rough token estimate: 1 token ~ 4 characters."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def parent_chunk_id(document_id: str, index: int) -> str:
    return f"parent_{document_id}_{index}"


def child_chunk_id(document_id: str, index: int) -> str:
    return f"child_{document_id}_{index}"


def _is_title_case(line: str) -> bool:
    words = line.split()
    if not words or len(words) > 10 or len(line) > 80:
        return False
    if line.endswith(_TERMINAL_PUNCTUATION) or not any(c.isalpha() for c in line):
        return False
    for position, word in enumerate(words):
        if not word[0].isalpha():
            continue
        if position > 0 and word.lower() in _MINOR_WORDS:
            continue
        if not word[0].isupper():
            return False
    return True


def detect_section_heading(text: str) -> str | None:
    """
    Heuristic heading detection over the first three non-empty lines.

    Recognizes ALL-CAPS lines, "Chapter/Section/Part N" lines, numbered
    sections ("1.2 Title", "3. Results"), and short title-cased lines
    without terminal punctuation.

    Args:
        text: Chunk text

    Returns:
        str | None: The heading line, or None when nothing looks like one
    """
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    for line in lines[:3]:
        if (
            line == line.upper()
            and any(c.isalpha() for c in line)
            and 3 < len(line) < 100
        ):
            return line
        if _CHAPTER_PATTERN.match(line):
            return line
        if _NUMBERED_PATTERN.match(line):
            return line
        if _is_title_case(line):
            return line
    return None


def _trimmed_span(text: str, start: int, end: int) -> tuple[int, int]:
    """Shrink [start, end) so it excludes leading and trailing whitespace."""
    raw = text[start:end]
    stripped = raw.strip()
    if not stripped:
        return start, start
    lead = len(raw) - len(raw.lstrip())
    return start + lead, start + lead + len(stripped)


class ChunkingTask:
    """Split full document text into linked parent and child chunks."""

    def __init__(
        self,
        parent_min_tokens: int = 2000,
        parent_max_tokens: int = 4000,
        child_target_tokens: int = 400,
        child_overlap_tokens: int = 50,
    ) -> None:
        """
        Initialize chunking task with window sizes (in estimated tokens).

        Args:
            parent_min_tokens: Size after which a parent may close at a paragraph break
            parent_max_tokens: Size a parent never grows beyond (unless one sentence does)
            child_target_tokens: Child chunk size
            child_overlap_tokens: Overlap between consecutive children

        Raises:
            ValueError: When the window sizes are inconsistent
        """
        if parent_min_tokens <= 0 or parent_min_tokens > parent_max_tokens:
            raise ValueError("parent_min_tokens must be positive and <= parent_max_tokens")
        if child_overlap_tokens >= child_target_tokens:
            raise ValueError("child_overlap_tokens must be smaller than child_target_tokens")

        self._parent_min_tokens = parent_min_tokens
        self._parent_max_tokens = parent_max_tokens
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=child_target_tokens * CHARS_PER_TOKEN,
            chunk_overlap=child_overlap_tokens * CHARS_PER_TOKEN,
            add_start_index=True,
            length_function=len,
        )

    def chunk(
        self,
        full_text: str,
        document_id: str,
        page_map: PageMap | None = None,
    ) -> list[ParentChunk]:
        """
        Build the parent/child hierarchy for a document.

        Args:
            full_text: Extracted (and possibly annotated) document text
            document_id: Document id used in deterministic chunk ids
            page_map: Offset-to-page map for PDFs

        Returns:
            list[ParentChunk]: Parents in document order, children attached

        Raises:
            ChunkingError: When no parent chunk can be produced
        """
        parents: list[ParentChunk] = []
        for index, (start, end) in enumerate(self._parent_spans(full_text)):
            content = full_text[start:end]
            parents.append(
                ParentChunk(
                    id=parent_chunk_id(document_id, index),
                    index=index,
                    content=content,
                    metadata=ChunkMetadata(start_char=start, end_char=end),
                    page_number=page_map.page_for(start) if page_map else None,
                    section=detect_section_heading(content),
                )
            )

        if not parents:
            raise ChunkingError("Chunking produced no parent chunks", document_id=document_id)

        child_index = 0
        for parent in parents:
            for start, end in self._child_spans(parent):
                content = full_text[start:end]
                parent.children.append(
                    ChildChunk(
                        id=child_chunk_id(document_id, child_index),
                        index=child_index,
                        parent_id=parent.id,
                        content=content,
                        metadata=ChunkMetadata(start_char=start, end_char=end),
                        page_number=page_map.page_for(start) if page_map else None,
                        section=detect_section_heading(content) or parent.section,
                    )
                )
                child_index += 1

        logger.info(
            f"{__name__}:chunk - Hierarchical chunking complete",
            extra={
                "document_id": document_id,
                "parent_count": len(parents),
                "child_count": child_index,
            },
        )
        return parents

    def _parent_spans(self, text: str) -> list[tuple[int, int]]:
        """
        Accumulate sentences into parent windows.

        A window closes when the next sentence would push it past
        parent_max_tokens, or when it has reached parent_min_tokens and the
        sentence ends a paragraph. A single sentence larger than the
        maximum becomes its own window.
        """
        spans: list[tuple[int, int]] = []
        current_start: int | None = None
        current_end = 0

        def close(start: int, end: int) -> None:
            trimmed = _trimmed_span(text, start, end)
            if trimmed[1] > trimmed[0]:
                spans.append(trimmed)

        for match in _SENTENCE_PATTERN.finditer(text):
            sentence_start, sentence_end = match.span()
            window_start = sentence_start if current_start is None else current_start
            proposed_tokens = estimate_tokens(text[window_start:sentence_end])

            if proposed_tokens > self._parent_max_tokens:
                if current_start is not None:
                    close(current_start, current_end)
                    window_start = sentence_start
                if estimate_tokens(text[window_start:sentence_end]) > self._parent_max_tokens:
                    close(window_start, sentence_end)
                    current_start = None
                    continue
                proposed_tokens = estimate_tokens(text[window_start:sentence_end])

            current_start = window_start
            current_end = sentence_end
            at_paragraph_break = text.startswith("\n\n", sentence_end) or sentence_end == len(text)
            if proposed_tokens >= self._parent_min_tokens and at_paragraph_break:
                close(current_start, current_end)
                current_start = None

        if current_start is not None:
            close(current_start, current_end)
        return spans

    def _child_spans(self, parent: ParentChunk) -> list[tuple[int, int]]:
        """Absolute spans of the splitter's pieces of one parent."""
        spans = []
        search_from = 0
        for piece in self._splitter.create_documents([parent.content]):
            text = piece.page_content
            offset = piece.metadata.get("start_index", -1)
            if offset < 0:
                offset = parent.content.find(text, search_from)
            search_from = max(offset, 0) + 1
            start = parent.metadata.start_char + offset
            spans.append((start, start + len(text)))
        return spans


def flatten_children(parents: list[ParentChunk]) -> list[ChildChunk]:
    """All children of all parents, in document order."""
    return [child for parent in parents for child in parent.children]
