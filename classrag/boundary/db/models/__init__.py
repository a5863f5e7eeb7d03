"""
ORM models for the document ingestion pipeline.
"""

from classrag.boundary.db.models.chunk_model import ChunkModel, ChunkType
from classrag.boundary.db.models.document_model import DocumentModel, DocumentStatus

__all__ = ["ChunkModel", "ChunkType", "DocumentModel", "DocumentStatus"]
