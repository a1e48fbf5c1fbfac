"""
Database Models Package
=======================

SQLAlchemy ORM models for the Arise economy. Schema only; mapping to and
from domain objects lives in ``arise.modules.game.repository``.

- game_states: one row per player (GameStateRow)
- game_transactions: append-only idempotency log (GameTransactionRow)
"""

from arise.core.database.base import Base
from arise.database.models.game_state import GameStateRow
from arise.database.models.transaction import GameTransactionRow

__all__ = ["Base", "GameStateRow", "GameTransactionRow"]
