"""
Database table creation script.

Enables the pgvector extension and creates all tables and indexes
(HNSW cosine index on embeddings, GIN index on the tsvector column)
defined in the ORM models.

Dependencies: sqlalchemy, asyncpg, pgvector
System role: Database schema initialization

Usage:
    python -m classrag.boundary.db.create_tables
"""

import asyncio
import logging

from sqlalchemy import text

from classrag.boundary.db.base import Base
from classrag.boundary.db.connection import get_async_engine

# Import all models to register them with Base.metadata
from classrag.boundary.db.models import ChunkModel, DocumentModel  # noqa: F401

logger = logging.getLogger(__name__)


async def create_all_tables() -> None:
    """
    Create the vector extension and all tables from registered ORM models.

    Idempotent: existing extension, tables, and indexes are left unchanged.

    Raises:
        SQLAlchemyError: If the connection fails or the extension is unavailable
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{__name__}:create_all_tables - All tables created successfully")


async def drop_all_tables() -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info(f"{__name__}:drop_all_tables - All tables dropped")


def main() -> None:
    """Console entry point: create the schema against the configured database."""
    from classrag.observability import configure_logging

    configure_logging()
    asyncio.run(create_all_tables())


if __name__ == "__main__":
    main()
