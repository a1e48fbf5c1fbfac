"""
GameStateRow: one authoritative economy row per player.
Pure schema only.

Resources and cached caps are flat float columns; the building and research
maps and the peripheral collections are JSON documents. ``version`` is
checked and incremented on every write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from arise.core.database.base import Base, TimestampMixin


class GameStateRow(Base, TimestampMixin):
    """Persisted GameState aggregate."""

    # ========================================================================
    # TABLE CONFIGURATION
    # ========================================================================

    __tablename__ = "game_states"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Optimistic locking version for concurrent updates",
    )

    # ========================================================================
    # RESOURCES
    # ========================================================================

    essence: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    crystals: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    gold: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    souls: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    attraction: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    gems: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    knowledge: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # ========================================================================
    # CACHED CAPS (last computed value, never an input)
    # ========================================================================

    cap_essence: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    cap_crystals: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    cap_gold: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    cap_souls: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    cap_attraction: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    cap_gems: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    cap_knowledge: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # ========================================================================
    # HUNTER
    # ========================================================================

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    xp: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    xp_to_next_level: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    rank: Mapped[str] = mapped_column(String(4), nullable=False, default="E")
    stats: Mapped[Dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
    stat_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hp: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    max_hp: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    mana: Mapped[float] = mapped_column(Float, nullable=False, default=50)
    max_mana: Mapped[float] = mapped_column(Float, nullable=False, default=50)

    # ========================================================================
    # DOCUMENTS
    # ========================================================================

    buildings: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    research: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    dungeons: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    active_dungeons: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    allies: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    shadows: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    artifacts: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    last_update: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="As-of time for passive income accrual",
    )
