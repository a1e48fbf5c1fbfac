"""
GameClient: optimistic mirror of the server operations.

For every action the client

1. validates locally with the same mutation code the server runs (nothing is
   sent when the action is already invalid locally),
2. applies the resulting state to the store immediately,
3. sends the request with a fresh ``client_tx_id``,
4. on success replaces the store wholesale with the authoritative snapshot,
   on failure restores the pre-action snapshot and notifies the user.

Responses may land out of order; the last one to arrive wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Sequence

from arise.client.notifications import LoggingNotifier, Notifier
from arise.client.store import ClientStore
from arise.client.transaction import OptimisticTransaction
from arise.client.transport import GameTransport, TransportError, new_client_tx_id
from arise.core.config.config import Config
from arise.core.logging.logger import get_logger
from arise.domain.models import utc_now
from arise.engine.caps import compute_caps
from arise.engine.constants import BASE_RESOURCE_CAPS
from arise.engine.offline import OfflineGains, apply_passive_income
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
from arise.modules.shared.exceptions import AriseDomainException, InsufficientResourcesError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActionOutcome:
    success: bool
    error: Optional[str] = None
    missing: Optional[Dict[str, float]] = None
    sent: bool = True


class GameClient:
    def __init__(
        self,
        store: ClientStore,
        transport: GameTransport,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
        tx_id_factory: Callable[[], str] = new_client_tx_id,
    ) -> None:
        self.store = store
        self.transport = transport
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.tx_id_factory = tx_id_factory

    @classmethod
    async def connect(
        cls,
        user_id: str,
        transport: GameTransport,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> "GameClient":
        snapshot = await transport.fetch_state(user_id)
        store = ClientStore.from_snapshot(snapshot, synced_at=clock())
        return cls(store, transport, notifier=notifier, clock=clock)

    # ========================================================================
    # Actions
    # ========================================================================

    async def gather_resource(self, resource: str) -> ActionOutcome:
        return await self.run(GatherResource(resource))

    async def purchase_building(self, building_id: str) -> ActionOutcome:
        return await self.run(PurchaseBuilding(building_id))

    async def purchase_building_bulk(self, building_id: str, quantity: int) -> ActionOutcome:
        return await self.run(PurchaseBuildingBulk(building_id, quantity))

    async def purchase_research(self, research_id: str) -> ActionOutcome:
        return await self.run(PurchaseResearch(research_id))

    async def allocate_stat(self, stat: str) -> ActionOutcome:
        return await self.run(AllocateStat(stat))

    async def reset_game(self) -> ActionOutcome:
        return await self.run(ResetGame())

    async def start_dungeon(self, dungeon_id: str, party_ids: Sequence[str] = ()) -> ActionOutcome:
        return await self.run(StartDungeon(dungeon_id, tuple(party_ids)))

    async def complete_dungeon(self, active_dungeon_id: str) -> ActionOutcome:
        outcome = await self.run(CompleteDungeon(active_dungeon_id))
        if outcome.success:
            self.notifier.success("Dungeon cleared")
        return outcome

    async def cancel_dungeon(self, active_dungeon_id: str) -> ActionOutcome:
        return await self.run(CancelDungeon(active_dungeon_id))

    async def recruit_ally(self, name: str, rank: str) -> ActionOutcome:
        return await self.run(RecruitAlly(name, rank))

    async def extract_shadow(self, name: str, dungeon_id: str) -> ActionOutcome:
        return await self.run(ExtractShadow(name, dungeon_id))

    async def run(self, mutation: Mutation) -> ActionOutcome:
        now = self.clock()
        try:
            mutation.validate_request()
            caught_up = apply_passive_income(
                self.store.to_game_state(), now, Config.MAX_OFFLINE_SECONDS
            ).state
            local = mutation.apply(caught_up, now)
        except AriseDomainException as exc:
            self.notifier.error(exc.message)
            missing = exc.missing if isinstance(exc, InsufficientResourcesError) else None
            return ActionOutcome(success=False, error=exc.message, missing=missing, sent=False)

        local = local.evolve(
            resource_caps=compute_caps(
                BASE_RESOURCE_CAPS,
                local.buildings,
                local.research,
                local.hunter.level,
                local.hunter.stats,
            ),
            last_update=now,
        )

        client_tx_id = self.tx_id_factory()
        try:
            async with OptimisticTransaction(self.store, label=mutation.type):
                self.store.apply_state(local)
                snapshot = await self.transport.mutate(self.store.user_id, client_tx_id, mutation)
                self.store.apply_snapshot(snapshot, self.clock())
        except TransportError as exc:
            logger.info(
                "Optimistic update rolled back",
                extra={"tx_type": mutation.type, "error_code": exc.error_code},
            )
            self.notifier.error(exc.message)
            return ActionOutcome(success=False, error=exc.message, missing=exc.missing)

        return ActionOutcome(success=True)

    # ========================================================================
    # Local simulation and sync
    # ========================================================================

    def tick(self, now: Optional[datetime] = None) -> OfflineGains:
        """Advance the local copy to ``now``: gains clamped to caps, XP processed."""
        result = apply_passive_income(
            self.store.to_game_state(), now or self.clock(), Config.MAX_OFFLINE_SECONDS
        )
        self.store.apply_state(result.state)
        return result.gains

    async def sync(self) -> bool:
        """
        Pull the authoritative state unless mutations are in flight.

        Returns:
            True when the store was replaced
        """
        if self.store.pending_mutations > 0:
            logger.debug(
                "Resync skipped; mutations in flight",
                extra={"pending": self.store.pending_mutations},
            )
            return False
        snapshot = await self.transport.fetch_state(self.store.user_id)
        if self.store.pending_mutations > 0:
            return False
        self.store.apply_snapshot(snapshot, self.clock())
        return True
