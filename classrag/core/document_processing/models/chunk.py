"""
Chunk domain models for the document processing pipeline.

Parents are large context windows built from whole sentences; children are
the small, embedded retrieval units carved out of each parent.

Dependencies: pydantic
System role: Data structures passed between chunking, annotation, and storage
"""

from pydantic import BaseModel, ConfigDict, Field


class ChunkMetadata(BaseModel):
    """Absolute character span of a chunk within the extracted full text."""

    model_config = ConfigDict(frozen=True)

    start_char: int = Field(ge=0, description="Offset of the first character")
    end_char: int = Field(ge=0, description="Offset one past the last character")

    def as_dict(self) -> dict[str, int]:
        return {"start_char": self.start_char, "end_char": self.end_char}


class ChildChunk(BaseModel):
    """Embedded retrieval unit linked to exactly one parent."""

    id: str = Field(description="Deterministic id: child_{document_id}_{index}")
    index: int = Field(description="Position among all children of the document")
    parent_id: str = Field(description="Id of the enclosing parent chunk")
    content: str
    metadata: ChunkMetadata
    page_number: int | None = None
    section: str | None = None
    has_images: bool = False
    image_desc: str | None = None


class ParentChunk(BaseModel):
    """Context window returned alongside matching children."""

    id: str = Field(description="Deterministic id: parent_{document_id}_{index}")
    index: int
    content: str
    metadata: ChunkMetadata
    page_number: int | None = None
    section: str | None = None
    has_images: bool = False
    image_desc: str | None = None
    children: list[ChildChunk] = Field(default_factory=list)
