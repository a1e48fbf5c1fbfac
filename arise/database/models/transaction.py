"""
GameTransactionRow: append-only idempotency log.
Pure schema only.

One row per committed mutation, unique on ``(user_id, client_tx_id)``.
Rows are never updated after insert.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from arise.core.database.base import Base, IdMixin


class GameTransactionRow(Base, IdMixin):
    """Committed mutation with the resulting full-state snapshot."""

    __tablename__ = "game_transactions"
    __table_args__ = (
        UniqueConstraint("user_id", "client_tx_id", name="uq_game_transactions_user_tx"),
        Index("ix_game_transactions_user_time", "user_id", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    client_tx_id: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    state_after: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
