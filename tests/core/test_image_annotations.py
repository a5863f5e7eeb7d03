"""
Tests for image description fusion: sentinel wrapping, page annotation,
and moving descriptions out of chunk content (including cut pairs).
"""

from classrag.core.document_processing.image_annotations import (
    IMG_DESC_END,
    IMG_DESC_START,
    annotate_extraction,
    annotate_pages,
    apply_to_parents,
    extract_image_descriptions,
    render_with_labels,
    wrap_description,
)
from classrag.core.document_processing.models import (
    ChildChunk,
    ChunkMetadata,
    ExtractionResult,
    PageText,
    ParentChunk,
    build_full_text,
)

DESCRIPTION = "A labelled diagram of a plant cell showing the chloroplasts."


def _wrapped(text: str) -> str:
    return f"{IMG_DESC_START}{text}{IMG_DESC_END}"


def test_wrap_description_should_strip_nested_sentinels():
    wrapped = wrap_description(f"  {IMG_DESC_END}A chart{IMG_DESC_START} ")

    assert wrapped == f"\n\n{IMG_DESC_START}A chart{IMG_DESC_END}"


def test_annotate_pages_should_append_to_matching_page():
    pages = [
        PageText(page_number=1, text="Cells are small."),
        PageText(page_number=2, text="Plants make sugar."),
    ]

    annotated = annotate_pages(pages, [(2, DESCRIPTION), (1, "   ")])

    assert annotated[0].text == "Cells are small."
    assert annotated[1].text == f"Plants make sugar.\n\n{_wrapped(DESCRIPTION)}"
    assert pages[1].text == "Plants make sugar."


def test_annotate_extraction_should_rebuild_page_map():
    pages = [
        PageText(page_number=1, text="Cells are small."),
        PageText(page_number=2, text="Plants make sugar."),
    ]
    full_text, page_map = build_full_text(pages)
    result = ExtractionResult(
        full_text=full_text, mime_type="application/pdf", pages=pages, page_map=page_map
    )

    annotated = annotate_extraction(result, [(1, DESCRIPTION)])

    assert DESCRIPTION in annotated.full_text
    page_two_start = annotated.full_text.index("Plants")
    assert annotated.page_map.page_for(page_two_start) == 2
    assert annotated.page_map.page_for(annotated.full_text.index(DESCRIPTION)) == 1


def test_annotate_extraction_without_descriptions_should_return_input():
    result = ExtractionResult(full_text="Some text", mime_type="application/pdf")

    assert annotate_extraction(result, []) is result


class TestExtractImageDescriptions:
    """Test suite for moving descriptions out of chunk content."""

    def test_no_sentinels_should_leave_content_unchanged(self):
        content, image_desc, found = extract_image_descriptions("Plain paragraph.")

        assert (content, image_desc, found) == ("Plain paragraph.", None, False)

    def test_complete_pair_should_round_trip(self):
        page = PageText(page_number=1, text="Photosynthesis converts light.")
        annotated = annotate_pages([page], [(1, DESCRIPTION)])[0]

        content, image_desc, found = extract_image_descriptions(annotated.text)

        assert content == "Photosynthesis converts light."
        assert image_desc == DESCRIPTION
        assert found is True

    def test_leading_end_marker_should_treat_prefix_as_description(self):
        chunk = f"showing the chloroplasts.{IMG_DESC_END}\n\nNext paragraph here."

        content, image_desc, found = extract_image_descriptions(chunk)

        assert content == "Next paragraph here."
        assert image_desc == "showing the chloroplasts."
        assert found is True

    def test_trailing_start_marker_should_treat_suffix_as_description(self):
        chunk = f"Some text.\n\n{IMG_DESC_START}A chart showing"

        content, image_desc, found = extract_image_descriptions(chunk)

        assert content == "Some text."
        assert image_desc == "A chart showing"
        assert found is True

    def test_multiple_descriptions_should_be_joined(self):
        chunk = f"Intro.{_wrapped('First figure.')}Middle.{_wrapped('Second figure.')}"

        content, image_desc, _ = extract_image_descriptions(chunk)

        assert content == "Intro.Middle."
        assert image_desc == "First figure.\n\nSecond figure."

    def test_description_only_chunk_should_have_empty_content(self):
        content, image_desc, found = extract_image_descriptions(_wrapped(DESCRIPTION))

        assert content == ""
        assert image_desc == DESCRIPTION
        assert found is True


def test_render_with_labels_should_replace_sentinels():
    rendered = render_with_labels(f"Intro.\n\n{_wrapped(DESCRIPTION)}")

    assert rendered == f"Intro.\n\n[Image description: {DESCRIPTION}]"
    assert IMG_DESC_START not in rendered


def test_apply_to_parents_should_process_parents_and_children():
    parent_content = f"Intro text.\n\n{_wrapped(DESCRIPTION)}"
    parent = ParentChunk(
        id="parent_doc_0",
        index=0,
        content=parent_content,
        metadata=ChunkMetadata(start_char=0, end_char=len(parent_content)),
        children=[
            ChildChunk(
                id="child_doc_0",
                index=0,
                parent_id="parent_doc_0",
                content="Intro text.",
                metadata=ChunkMetadata(start_char=0, end_char=11),
            ),
            ChildChunk(
                id="child_doc_1",
                index=1,
                parent_id="parent_doc_0",
                content=_wrapped(DESCRIPTION),
                metadata=ChunkMetadata(start_char=13, end_char=len(parent_content)),
            ),
        ],
    )

    [processed] = apply_to_parents([parent])

    assert processed.has_images is True
    assert processed.image_desc == DESCRIPTION
    assert processed.content == f"Intro text.\n\n[Image description: {DESCRIPTION}]"
    plain_child, image_child = processed.children
    assert plain_child.has_images is False
    assert plain_child.image_desc is None
    assert image_child.has_images is True
    assert image_child.image_desc == DESCRIPTION
    assert image_child.content == ""
    assert parent.content == parent_content
