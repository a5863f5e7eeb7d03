"""
Base CRUD operations for SQLAlchemy models.

Generic create/read/update/delete helpers shared by the model-specific
repositories. None of these methods commit; the caller owns the
transaction boundary.

Dependencies: sqlalchemy
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from classrag.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic repository bound to one UUID-keyed model class.

    Type Parameters:
        ModelT: SQLAlchemy model class inheriting from Base
    """

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        """
        Insert a row and return it with server-side defaults loaded.

        Args:
            session: Async database session
            **values: Column values for the new row

        Returns:
            The flushed model instance
        """
        instance = self.model(**values)
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        return instance

    async def get_by_id(self, session: AsyncSession, id: UUID) -> ModelT | None:
        result = await session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update_by_id(
        self,
        session: AsyncSession,
        id: UUID,
        **values: Any,
    ) -> ModelT | None:
        """
        Apply column updates to one row.

        Args:
            session: Async database session
            id: Primary key of the row to update
            **values: Columns to overwrite

        Returns:
            The updated row, or None when no row has that id
        """
        stmt = (
            update(self.model)
            .where(self.model.id == id)
            .values(**values)
            .returning(self.model)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_by_id(self, session: AsyncSession, id: UUID) -> bool:
        """Delete one row; True when a row was removed."""
        result = await session.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0
