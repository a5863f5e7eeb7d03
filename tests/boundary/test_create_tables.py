"""
Tests for schema creation.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from classrag.boundary.db import create_tables
from classrag.boundary.db.base import Base


@pytest.mark.asyncio
async def test_create_all_tables_should_enable_vector_extension_first():
    conn = AsyncMock()

    @asynccontextmanager
    async def begin():
        yield conn

    engine = MagicMock()
    engine.begin = begin

    with patch.object(create_tables, "get_async_engine", return_value=engine):
        await create_tables.create_all_tables()

    extension_sql = conn.execute.await_args.args[0]
    assert str(extension_sql) == "CREATE EXTENSION IF NOT EXISTS vector"
    conn.run_sync.assert_awaited_once_with(Base.metadata.create_all)


def test_metadata_should_register_both_tables():
    assert {"documents", "document_chunks"} <= set(Base.metadata.tables)
