"""
CRUD operations for database models.

Usage:
    from classrag.boundary.db.CRUD import document_crud, chunk_crud

    document = await document_crud.get_by_id(db, document_id)
    parents = await chunk_crud.get_parents(db, parent_ids)
"""

from classrag.boundary.db.CRUD.base_crud import BaseCRUD
from classrag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from classrag.boundary.db.CRUD.document_crud import DocumentCRUD, document_crud

__all__ = [
    "BaseCRUD",
    "ChunkCRUD",
    "chunk_crud",
    "DocumentCRUD",
    "document_crud",
]
