"""
Client-side state store.

An explicit state object instead of module-level singletons. It holds the
speculative copy of the player's economy, the pending-mutation counter and
the time of the last authoritative sync. Authoritative snapshots always
replace the slices wholesale; they are never merged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from arise.domain.models import Building, GameState, Hunter, Research, ResourceVector
from arise.domain.models.game_state import ensure_utc


@dataclass(frozen=True)
class StoreSnapshot:
    """Every slice an optimistic action may touch."""

    resources: ResourceVector
    resource_caps: ResourceVector
    hunter: Hunter
    buildings: Dict[str, Building]
    research: Dict[str, Research]
    last_update: datetime
    version: int


@dataclass
class ClientStore:
    user_id: str
    resources: ResourceVector
    resource_caps: ResourceVector
    hunter: Hunter
    buildings: Dict[str, Building]
    research: Dict[str, Research]
    last_update: datetime
    version: int = 0
    dungeons: List[Dict[str, Any]] = field(default_factory=list)
    active_dungeons: List[Dict[str, Any]] = field(default_factory=list)
    pending_mutations: int = 0
    last_server_sync: Optional[datetime] = None

    @classmethod
    def from_snapshot(
        cls, snapshot: Mapping[str, Any], synced_at: Optional[datetime] = None
    ) -> "ClientStore":
        state = GameState.from_snapshot(snapshot)
        return cls(
            user_id=state.user_id,
            resources=state.resources,
            resource_caps=state.resource_caps,
            hunter=state.hunter,
            buildings=dict(state.buildings),
            research=dict(state.research),
            last_update=state.last_update,
            version=state.version,
            dungeons=list(state.dungeons),
            active_dungeons=list(state.active_dungeons),
            last_server_sync=synced_at,
        )

    def apply_snapshot(self, snapshot: Mapping[str, Any], synced_at: datetime) -> None:
        """Overwrite every slice with the authoritative snapshot."""
        state = GameState.from_snapshot(snapshot)
        self.apply_state(state)
        self.version = state.version
        self.dungeons = list(state.dungeons)
        self.active_dungeons = list(state.active_dungeons)
        self.last_server_sync = ensure_utc(synced_at)

    def to_game_state(self) -> GameState:
        return GameState(
            user_id=self.user_id,
            resources=self.resources,
            resource_caps=self.resource_caps,
            hunter=self.hunter,
            buildings=dict(self.buildings),
            research=dict(self.research),
            last_update=self.last_update,
            version=self.version,
            dungeons=list(self.dungeons),
            active_dungeons=list(self.active_dungeons),
        )

    def apply_state(self, state: GameState) -> None:
        """Write the economy slices of a locally computed state."""
        self.resources = state.resources
        self.resource_caps = state.resource_caps
        self.hunter = state.hunter
        self.buildings = dict(state.buildings)
        self.research = dict(state.research)
        self.last_update = state.last_update

    # Snapshot/restore used by OptimisticTransaction

    def capture(self) -> StoreSnapshot:
        return StoreSnapshot(
            resources=self.resources,
            resource_caps=self.resource_caps,
            hunter=self.hunter,
            buildings=dict(self.buildings),
            research=dict(self.research),
            last_update=self.last_update,
            version=self.version,
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        self.resources = snapshot.resources
        self.resource_caps = snapshot.resource_caps
        self.hunter = snapshot.hunter
        self.buildings = dict(snapshot.buildings)
        self.research = dict(snapshot.research)
        self.last_update = snapshot.last_update
        self.version = snapshot.version
