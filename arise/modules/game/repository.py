"""
Game-state persistence port and its implementations.

Purpose
-------
Load and store the GameState aggregate and the append-only transaction log
used for idempotency. Every write is guarded by the row version: the caller
passes the version it loaded and the repository refuses the write with
``ConcurrentModificationError`` if the stored row has moved on.

Responsibilities
----------------
- Map GameState <-> ``game_states`` rows and snapshots
- Optimistic version check-and-increment on every save
- Atomic state update plus transaction-log insert
- Refuse to persist a state with a negative or NaN resource channel

Non-Responsibilities
--------------------
- Game rules and passive income (see reconciliation)
- Retrying conflicts (the reconciliation envelope retries)

Implementations
---------------
- ``SqlGameStateRepository``: SQLAlchemy async, via ``DatabaseService``
- ``InMemoryGameStateRepository``: process-local, for tests and tooling
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arise.core.database.service import DatabaseService
from arise.core.exceptions import ConcurrentModificationError, DatabaseError
from arise.core.logging.logger import get_logger
from arise.database.models import GameStateRow, GameTransactionRow
from arise.domain.models import (
    CHANNELS,
    Building,
    GameState,
    Hunter,
    HunterStats,
    Research,
    ResourceVector,
    utc_now,
)
from arise.domain.models.game_state import ensure_utc

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionRecord:
    """One committed mutation, keyed by ``(user_id, client_tx_id)``."""

    user_id: str
    client_tx_id: str
    type: str
    payload: Dict[str, Any]
    state_after: Dict[str, Any]
    created_at: datetime = field(default_factory=utc_now)


class GameStateRepository(Protocol):
    async def load(self, user_id: str) -> Optional[GameState]: ...

    async def create(self, user_id: str, state: GameState) -> GameState: ...

    async def save(self, user_id: str, state: GameState, expected_version: int) -> GameState: ...

    async def append_transaction(self, record: TransactionRecord) -> None: ...

    async def find_transaction(
        self, user_id: str, client_tx_id: str
    ) -> Optional[TransactionRecord]: ...

    async def save_with_transaction(
        self,
        user_id: str,
        state: GameState,
        expected_version: int,
        client_tx_id: str,
        tx_type: str,
        payload: Dict[str, Any],
    ) -> Tuple[GameState, TransactionRecord]: ...


def _check_persistable(state: GameState) -> None:
    state.resources.validate_at_rest()


# ============================================================================
# In-memory implementation
# ============================================================================


class InMemoryGameStateRepository:
    """
    Snapshot-backed repository living in process memory.

    States are stored as snapshots so callers never share mutable maps with
    the store. Reads yield to the event loop once, like a real driver, so
    concurrent callers interleave the way they would against a database.
    """

    def __init__(self) -> None:
        self._states: Dict[str, Dict[str, Any]] = {}
        self._transactions: Dict[Tuple[str, str], TransactionRecord] = {}
        self._write_lock = asyncio.Lock()

    async def load(self, user_id: str) -> Optional[GameState]:
        await asyncio.sleep(0)
        snapshot = self._states.get(user_id)
        return GameState.from_snapshot(snapshot) if snapshot is not None else None

    async def create(self, user_id: str, state: GameState) -> GameState:
        _check_persistable(state)
        async with self._write_lock:
            if user_id in self._states:
                raise ConcurrentModificationError(
                    user_id, 0, self._states[user_id]["version"]
                )
            created = state.evolve(version=1)
            self._states[user_id] = created.to_snapshot()
        logger.debug("Game state created", extra={"user_id": user_id})
        return created

    def _write(self, user_id: str, state: GameState, expected_version: int) -> GameState:
        current = self._states.get(user_id)
        actual = current["version"] if current is not None else None
        if actual != expected_version:
            raise ConcurrentModificationError(user_id, expected_version, actual)
        saved = state.evolve(version=expected_version + 1)
        self._states[user_id] = saved.to_snapshot()
        return saved

    async def save(self, user_id: str, state: GameState, expected_version: int) -> GameState:
        _check_persistable(state)
        async with self._write_lock:
            return self._write(user_id, state, expected_version)

    async def append_transaction(self, record: TransactionRecord) -> None:
        async with self._write_lock:
            key = (record.user_id, record.client_tx_id)
            if key in self._transactions:
                raise ConcurrentModificationError(record.user_id, 0)
            self._transactions[key] = record

    async def find_transaction(
        self, user_id: str, client_tx_id: str
    ) -> Optional[TransactionRecord]:
        await asyncio.sleep(0)
        return self._transactions.get((user_id, client_tx_id))

    async def save_with_transaction(
        self,
        user_id: str,
        state: GameState,
        expected_version: int,
        client_tx_id: str,
        tx_type: str,
        payload: Dict[str, Any],
    ) -> Tuple[GameState, TransactionRecord]:
        _check_persistable(state)
        async with self._write_lock:
            key = (user_id, client_tx_id)
            if key in self._transactions:
                raise ConcurrentModificationError(user_id, expected_version)
            saved = self._write(user_id, state, expected_version)
            record = TransactionRecord(
                user_id=user_id,
                client_tx_id=client_tx_id,
                type=tx_type,
                payload=dict(payload),
                state_after=saved.to_snapshot(),
            )
            self._transactions[key] = record
        return saved, record

    def transaction_count(self, user_id: Optional[str] = None) -> int:
        if user_id is None:
            return len(self._transactions)
        return sum(1 for uid, _ in self._transactions if uid == user_id)


# ============================================================================
# SQL implementation
# ============================================================================


def _state_from_row(row: GameStateRow) -> GameState:
    stats = HunterStats.from_dict(row.stats)
    return GameState(
        user_id=row.user_id,
        version=row.version,
        resources=ResourceVector(**{ch: getattr(row, ch) for ch in CHANNELS}),
        resource_caps=ResourceVector(**{ch: getattr(row, f"cap_{ch}") for ch in CHANNELS}),
        hunter=Hunter(
            level=row.level,
            xp=row.xp,
            xp_to_next_level=row.xp_to_next_level,
            rank=row.rank,
            stats=stats,
            stat_points=row.stat_points,
            hp=row.hp,
            max_hp=row.max_hp,
            mana=row.mana,
            max_mana=row.max_mana,
        ),
        buildings={bid: Building.from_dict(b) for bid, b in (row.buildings or {}).items()},
        research={rid: Research.from_dict(r) for rid, r in (row.research or {}).items()},
        dungeons=list(row.dungeons or []),
        active_dungeons=list(row.active_dungeons or []),
        allies=list(row.allies or []),
        shadows=list(row.shadows or []),
        artifacts=dict(row.artifacts or {}),
        last_update=ensure_utc(row.last_update),
    )


def _row_values(state: GameState) -> Dict[str, Any]:
    hunter = state.hunter
    values: Dict[str, Any] = {
        "level": hunter.level,
        "xp": hunter.xp,
        "xp_to_next_level": hunter.xp_to_next_level,
        "rank": hunter.rank,
        "stats": hunter.stats.to_dict(),
        "stat_points": hunter.stat_points,
        "hp": hunter.hp,
        "max_hp": hunter.max_hp,
        "mana": hunter.mana,
        "max_mana": hunter.max_mana,
        "buildings": {bid: b.to_dict() for bid, b in state.buildings.items()},
        "research": {rid: r.to_dict() for rid, r in state.research.items()},
        "dungeons": [dict(d) for d in state.dungeons],
        "active_dungeons": [dict(d) for d in state.active_dungeons],
        "allies": [dict(a) for a in state.allies],
        "shadows": [dict(s) for s in state.shadows],
        "artifacts": dict(state.artifacts),
        "last_update": ensure_utc(state.last_update),
    }
    for ch in CHANNELS:
        values[ch] = state.resources.get(ch)
        values[f"cap_{ch}"] = state.resource_caps.get(ch)
    return values


def _is_unique_violation(exc: DatabaseError) -> bool:
    return isinstance(exc.original_error, IntegrityError)


def _record_from_row(row: GameTransactionRow) -> TransactionRecord:
    return TransactionRecord(
        user_id=row.user_id,
        client_tx_id=row.client_tx_id,
        type=row.type,
        payload=dict(row.payload or {}),
        state_after=dict(row.state_after),
        created_at=ensure_utc(row.created_at),
    )


class SqlGameStateRepository:
    """
    Repository over ``game_states`` / ``game_transactions``.

    Saves are conditional UPDATEs on ``version = expected_version`` so a
    stale writer is detected on every backend without relying on row locks.
    """

    async def load(self, user_id: str) -> Optional[GameState]:
        async with DatabaseService.get_session() as session:
            row = await session.get(GameStateRow, user_id)
            found = row is not None
            logger.debug(
                "Repository.load: GameStateRow",
                extra={"user_id": user_id, "found": found},
            )
            return _state_from_row(row) if row is not None else None

    async def create(self, user_id: str, state: GameState) -> GameState:
        _check_persistable(state)
        created = state.evolve(version=1)
        try:
            async with DatabaseService.get_transaction() as session:
                session.add(GameStateRow(user_id=user_id, version=1, **_row_values(created)))
                await session.flush()
        except DatabaseError as exc:
            if _is_unique_violation(exc):
                raise ConcurrentModificationError(user_id, 0) from exc
            raise
        logger.debug("Repository.create: GameStateRow", extra={"user_id": user_id})
        return created

    async def _conditional_update(
        self,
        session: AsyncSession,
        user_id: str,
        state: GameState,
        expected_version: int,
    ) -> GameState:
        stmt = (
            update(GameStateRow)
            .where(GameStateRow.user_id == user_id, GameStateRow.version == expected_version)
            .values(version=expected_version + 1, **_row_values(state))
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            actual = await session.scalar(
                select(GameStateRow.version).where(GameStateRow.user_id == user_id)
            )
            raise ConcurrentModificationError(user_id, expected_version, actual)

        logger.debug(
            "Repository.save: GameStateRow",
            extra={"user_id": user_id, "version": expected_version + 1},
        )
        return state.evolve(version=expected_version + 1)

    async def save(self, user_id: str, state: GameState, expected_version: int) -> GameState:
        _check_persistable(state)
        async with DatabaseService.get_transaction() as session:
            return await self._conditional_update(session, user_id, state, expected_version)

    async def append_transaction(self, record: TransactionRecord) -> None:
        try:
            async with DatabaseService.get_transaction() as session:
                session.add(self._transaction_row(record))
                await session.flush()
        except DatabaseError as exc:
            if _is_unique_violation(exc):
                raise ConcurrentModificationError(record.user_id, 0) from exc
            raise

    async def find_transaction(
        self, user_id: str, client_tx_id: str
    ) -> Optional[TransactionRecord]:
        async with DatabaseService.get_session() as session:
            row = await session.scalar(
                select(GameTransactionRow).where(
                    GameTransactionRow.user_id == user_id,
                    GameTransactionRow.client_tx_id == client_tx_id,
                )
            )
            return _record_from_row(row) if row is not None else None

    async def save_with_transaction(
        self,
        user_id: str,
        state: GameState,
        expected_version: int,
        client_tx_id: str,
        tx_type: str,
        payload: Dict[str, Any],
    ) -> Tuple[GameState, TransactionRecord]:
        """
        Update the state row and insert the log row in one transaction.

        A duplicate ``(user_id, client_tx_id)`` surfaces as
        ``ConcurrentModificationError`` so the caller's retry finds the
        committed record and replays it.
        """
        _check_persistable(state)
        try:
            async with DatabaseService.get_transaction() as session:
                saved = await self._conditional_update(session, user_id, state, expected_version)
                record = TransactionRecord(
                    user_id=user_id,
                    client_tx_id=client_tx_id,
                    type=tx_type,
                    payload=dict(payload),
                    state_after=saved.to_snapshot(),
                )
                session.add(self._transaction_row(record))
                await session.flush()
        except DatabaseError as exc:
            if _is_unique_violation(exc):
                raise ConcurrentModificationError(user_id, expected_version) from exc
            raise
        return saved, record

    @staticmethod
    def _transaction_row(record: TransactionRecord) -> GameTransactionRow:
        return GameTransactionRow(
            user_id=record.user_id,
            client_tx_id=record.client_tx_id,
            type=record.type,
            payload=record.payload,
            state_after=record.state_after,
            created_at=record.created_at,
        )
