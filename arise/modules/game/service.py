"""
GameService: the operations a route layer calls.

Purpose
-------
One entry point per game operation. Mutations go through the
reconciliation envelope; reads go through the state service. Both share a
single per-user lock registry so a sync and a purchase for the same user
never interleave.

Usage Example
-------------
>>> service = await GameService.create_default()
>>> view = await service.get_state(user_id)
>>> result = await service.purchase_building(user_id, client_tx_id, "essenceExtractor")
>>> result.success, result.state["buildings"]["essenceExtractor"]["count"]
(True, 1)
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from arise.core.cache.game_state import GameStateCache, build_game_state_cache
from arise.core.database.service import DatabaseService
from arise.core.redis.service import RedisService
from arise.domain.models import utc_now
from arise.modules.game.locks import NoLockRegistry, UserLockRegistry
from arise.modules.game.mutations import (
    AllocateStat,
    CancelDungeon,
    CompleteDungeon,
    ExtractShadow,
    GatherResource,
    Mutation,
    PurchaseBuilding,
    PurchaseBuildingBulk,
    PurchaseResearch,
    RecruitAlly,
    ResetGame,
    StartDungeon,
)
from arise.modules.game.reconciliation import Clock, ReconciliationService, TransactionResult
from arise.modules.game.repository import GameStateRepository, SqlGameStateRepository
from arise.modules.game.state_service import GameStateService, StateView


class GameService:
    """
    Args:
        repository: Persistence port
        cache: Snapshot cache; no-op when omitted
        clock: Source of "now"
        serialize_per_user: Hold a per-user lock around every operation.
            Disable only when another mechanism serializes requests; the
            version check still prevents lost updates.
    """

    def __init__(
        self,
        repository: GameStateRepository,
        cache: Optional[GameStateCache] = None,
        clock: Clock = utc_now,
        serialize_per_user: bool = True,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.repository = repository
        self.locks: UserLockRegistry = UserLockRegistry() if serialize_per_user else NoLockRegistry()
        self.reconciliation = ReconciliationService(
            repository, cache=cache, locks=self.locks, clock=clock, max_attempts=max_attempts
        )
        self.states = GameStateService(
            repository, cache=cache, locks=self.locks, clock=clock, max_attempts=max_attempts
        )

    @classmethod
    async def create_default(cls) -> "GameService":
        """SQL repository plus Redis cache when ``REDIS_URL`` is configured."""
        await DatabaseService.initialize()
        if RedisService.is_configured():
            await RedisService.initialize()
        return cls(SqlGameStateRepository(), cache=build_game_state_cache())

    async def execute(self, user_id: str, client_tx_id: str, mutation: Mutation) -> TransactionResult:
        return await self.reconciliation.execute(user_id, client_tx_id, mutation)

    # ========================================================================
    # Mutations
    # ========================================================================

    async def gather_resource(
        self, user_id: str, client_tx_id: str, resource: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, GatherResource(resource))

    async def purchase_building(
        self, user_id: str, client_tx_id: str, building_id: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, PurchaseBuilding(building_id))

    async def purchase_building_bulk(
        self, user_id: str, client_tx_id: str, building_id: str, quantity: int
    ) -> TransactionResult:
        return await self.execute(
            user_id, client_tx_id, PurchaseBuildingBulk(building_id, quantity)
        )

    async def purchase_research(
        self, user_id: str, client_tx_id: str, research_id: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, PurchaseResearch(research_id))

    async def allocate_stat(self, user_id: str, client_tx_id: str, stat: str) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, AllocateStat(stat))

    async def reset_game(self, user_id: str, client_tx_id: str) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, ResetGame())

    async def start_dungeon(
        self,
        user_id: str,
        client_tx_id: str,
        dungeon_id: str,
        party_ids: Sequence[str] = (),
    ) -> TransactionResult:
        return await self.execute(
            user_id, client_tx_id, StartDungeon(dungeon_id, tuple(party_ids))
        )

    async def complete_dungeon(
        self, user_id: str, client_tx_id: str, active_dungeon_id: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, CompleteDungeon(active_dungeon_id))

    async def cancel_dungeon(
        self, user_id: str, client_tx_id: str, active_dungeon_id: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, CancelDungeon(active_dungeon_id))

    async def recruit_ally(
        self, user_id: str, client_tx_id: str, name: str, rank: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, RecruitAlly(name, rank))

    async def extract_shadow(
        self, user_id: str, client_tx_id: str, name: str, dungeon_id: str
    ) -> TransactionResult:
        return await self.execute(user_id, client_tx_id, ExtractShadow(name, dungeon_id))

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_state(self, user_id: str) -> StateView:
        return await self.states.get_state(user_id)

    async def get_cached_snapshot(self, user_id: str) -> Dict[str, Any]:
        return await self.states.get_cached_snapshot(user_id)
