"""
Pytest Configuration and Fixtures for the Arise test suite
==========================================================

Purpose
-------
Shared fixtures for engine, service and client tests.

Responsibilities
----------------
- Force the testing environment before any arise module reads Config
- Deterministic clock for passive-income math
- In-memory repository and GameService wiring

Architecture Notes
------------------
- Unit tests run against ``InMemoryGameStateRepository``
- Integration tests build their own SQLite database under ``tmp_path``
- Scenario builders live in ``tests.factories``
"""

from __future__ import annotations

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from typing import Any

import pytest

from arise.domain.models import GameState
from arise.modules.game.repository import InMemoryGameStateRepository
from arise.modules.game.service import GameService
from tests.factories import FakeClock, make_state

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryGameStateRepository:
    return InMemoryGameStateRepository()


@pytest.fixture
def game_service(repository, clock) -> GameService:
    return GameService(repository, clock=clock)


@pytest.fixture
def seed_state(repository):
    """Persist a state built by ``make_state``; returns the stored GameState."""

    async def _seed(**kwargs: Any) -> GameState:
        state = make_state(**kwargs)
        return await repository.create(state.user_id, state)

    return _seed
