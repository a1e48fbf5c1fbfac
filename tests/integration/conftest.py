"""
Integration fixtures: a real SQLAlchemy async engine over SQLite (aiosqlite).

Each test gets a fresh database file under ``tmp_path``; the tables are
created through ``DatabaseService.create_all`` and the engine is disposed
afterwards so the class-level singleton starts clean for the next test.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio

from arise.core.database.service import DatabaseService
from arise.modules.game.repository import SqlGameStateRepository


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    url = f"sqlite+aiosqlite:///{tmp_path / 'arise-test.db'}"
    await DatabaseService.initialize(url)
    await DatabaseService.create_all()
    try:
        yield url
    finally:
        await DatabaseService.shutdown()


@pytest_asyncio.fixture
async def sql_repository(database) -> SqlGameStateRepository:
    return SqlGameStateRepository()
