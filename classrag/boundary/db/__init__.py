"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - DocumentModel, ChunkModel: Core domain entities
  - DocumentStatus, ChunkType: Enum types
  - document_crud, chunk_crud: CRUD operation singletons

Dependencies: sqlalchemy, pgvector, classrag.configs
System role: Database adapter providing persistent storage for documents
and their searchable chunk hierarchy.
"""

from classrag.boundary.db.base import Base, TimestampMixin, UUIDMixin
from classrag.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from classrag.boundary.db.models import (
    ChunkModel,
    ChunkType,
    DocumentModel,
    DocumentStatus,
)
from classrag.boundary.db.CRUD import (
    BaseCRUD,
    ChunkCRUD,
    DocumentCRUD,
    chunk_crud,
    document_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "ChunkModel",
    "ChunkType",
    "DocumentModel",
    "DocumentStatus",
    # CRUD classes
    "BaseCRUD",
    "ChunkCRUD",
    "DocumentCRUD",
    # CRUD singletons
    "chunk_crud",
    "document_crud",
]
