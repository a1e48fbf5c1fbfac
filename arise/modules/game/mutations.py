"""
State-changing game actions.

Each mutation is a small value object with two steps:

- ``validate_request()`` checks the request shape and raises
  ``ValidationError`` before any state is loaded.
- ``apply(state, now)`` takes the caught-up state (passive income already
  applied, caps freshly computed) and returns the mutated state, or raises
  ``InsufficientResourcesError`` / ``PreconditionError``.

``apply`` is pure and uses only the engine, so the server envelope and the
client's optimistic mirror run the same code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Iterable, Mapping, Optional, Tuple

from arise.content.loader import ContentRegistry
from arise.core.config.config import Config
from arise.domain.models import STAT_NAMES, GameState
from arise.domain.models.game_state import to_epoch_ms
from arise.engine import resources as algebra
from arise.engine.constants import ALLY_RANK_COSTS, NECROMANCER_LEVEL, SHADOW_EXTRACTION_COST
from arise.engine.costs import bulk_cost
from arise.engine.dungeons import (
    add_companion_xp,
    companion_xp_share,
    find_companion,
    new_companion,
    party_effectiveness,
    run_duration_seconds,
    run_rewards,
)
from arise.engine.gathering import GATHERABLE_CHANNELS, gather_amount, gather_xp
from arise.engine.progression import allocate_stat, process_xp_gain
from arise.modules.game.migrations import refresh_dungeons
from arise.modules.shared.exceptions import (
    InsufficientResourcesError,
    PreconditionError,
    ValidationError,
)


class Mutation(ABC):
    type: ClassVar[str]

    def validate_request(self) -> None:
        """Reject malformed requests. Default: nothing to check."""

    @abstractmethod
    def apply(self, state: GameState, now: datetime) -> GameState:
        raise NotImplementedError

    def payload(self) -> Dict[str, Any]:
        return {}


def _require_affordable(state: GameState, cost: Any) -> None:
    missing = algebra.missing(state.resources, cost)
    if missing:
        raise InsufficientResourcesError(missing)


@dataclass(frozen=True)
class GatherResource(Mutation):
    resource: str

    type: ClassVar[str] = "gather_resource"

    def validate_request(self) -> None:
        if self.resource not in GATHERABLE_CHANNELS:
            raise ValidationError(
                "resource",
                f"{self.resource!r} cannot be gathered; choose one of {', '.join(GATHERABLE_CHANNELS)}",
            )

    def apply(self, state: GameState, now: datetime) -> GameState:
        stats = state.hunter.stats
        gained = gather_amount(self.resource, stats, state.research)
        current = state.resources.get(self.resource)
        cap = state.resource_caps.get(self.resource)
        resources = state.resources.with_channel(self.resource, min(current + gained, cap))
        hunter = process_xp_gain(state.hunter, gather_xp(self.resource, stats)).hunter
        return state.evolve(resources=resources, hunter=hunter)

    def payload(self) -> Dict[str, Any]:
        return {"resource": self.resource}


@dataclass(frozen=True)
class PurchaseBuilding(Mutation):
    """
    Buy ``quantity`` units of a building at the iterative bulk price.

    ``max_quantity`` defaults to ``Config.MAX_BULK_PURCHASE``.
    """

    building_id: str
    quantity: int = 1
    max_quantity: Optional[int] = None

    type: ClassVar[str] = "purchase_building"

    def validate_request(self) -> None:
        if not isinstance(self.building_id, str) or not self.building_id:
            raise ValidationError("building_id", "building_id must be a non-empty string")
        limit = self.max_quantity if self.max_quantity is not None else Config.MAX_BULK_PURCHASE
        if (
            isinstance(self.quantity, bool)
            or not isinstance(self.quantity, int)
            or not 1 <= self.quantity <= limit
        ):
            raise ValidationError("quantity", f"quantity must be between 1 and {limit}")

    def apply(self, state: GameState, now: datetime) -> GameState:
        building = state.buildings.get(self.building_id)
        if building is None:
            raise PreconditionError("purchase_building", f"Unknown building: {self.building_id}")
        if ContentRegistry.is_building_locked(self.building_id, state.research):
            gates = ContentRegistry.unlocking_research(self.building_id, state.research)
            raise PreconditionError(
                "purchase_building",
                f"{building.name} is locked; research {' or '.join(gates)} first",
            )

        cost = bulk_cost(building, self.quantity)
        _require_affordable(state, cost)

        buildings = dict(state.buildings)
        buildings[self.building_id] = building.with_count(building.count + self.quantity)
        return state.evolve(resources=algebra.subtract(state.resources, cost), buildings=buildings)

    def payload(self) -> Dict[str, Any]:
        return {"building_id": self.building_id, "quantity": self.quantity}


@dataclass(frozen=True)
class PurchaseBuildingBulk(PurchaseBuilding):
    type: ClassVar[str] = "purchase_building_bulk"


@dataclass(frozen=True)
class PurchaseResearch(Mutation):
    research_id: str

    type: ClassVar[str] = "purchase_research"

    def validate_request(self) -> None:
        if not isinstance(self.research_id, str) or not self.research_id:
            raise ValidationError("research_id", "research_id must be a non-empty string")

    def apply(self, state: GameState, now: datetime) -> GameState:
        item = state.research.get(self.research_id)
        if item is None:
            raise PreconditionError("purchase_research", f"Unknown research: {self.research_id}")
        if item.researched:
            raise PreconditionError("purchase_research", f"{item.name} is already researched")

        unmet = [
            rid
            for rid in item.requires
            if rid not in state.research or not state.research[rid].researched
        ]
        if unmet:
            raise PreconditionError("purchase_research", f"Requires: {', '.join(unmet)}")

        cost = {"knowledge": item.cost}
        _require_affordable(state, cost)

        research = dict(state.research)
        research[self.research_id] = item.mark_researched()
        return state.evolve(resources=algebra.subtract(state.resources, cost), research=research)

    def payload(self) -> Dict[str, Any]:
        return {"research_id": self.research_id}


@dataclass(frozen=True)
class AllocateStat(Mutation):
    stat: str

    type: ClassVar[str] = "allocate_stat"

    def validate_request(self) -> None:
        if self.stat not in STAT_NAMES:
            raise ValidationError("stat", f"stat must be one of {', '.join(STAT_NAMES)}")

    def apply(self, state: GameState, now: datetime) -> GameState:
        hunter = allocate_stat(state.hunter, self.stat)
        if hunter is None:
            raise PreconditionError("allocate_stat", "No stat points available")
        return state.evolve(hunter=hunter)

    def payload(self) -> Dict[str, Any]:
        return {"stat": self.stat}


@dataclass(frozen=True)
class ResetGame(Mutation):
    """Replace the aggregate with defaults; the row version sequence continues."""

    type: ClassVar[str] = "reset_game"

    def apply(self, state: GameState, now: datetime) -> GameState:
        fresh = ContentRegistry.new_game_state(state.user_id, now)
        return fresh.evolve(version=state.version)


# ============================================================================
# Dungeons & companions
# ============================================================================


def _unique_id(prefix: str, now: datetime, existing: Iterable[Mapping[str, Any]]) -> str:
    """``prefix-<epoch ms>-<n>`` with the smallest ``n`` not already taken."""
    taken = {item.get("id") for item in existing}
    stamp = to_epoch_ms(now)
    n = 1
    while f"{prefix}-{stamp}-{n}" in taken:
        n += 1
    return f"{prefix}-{stamp}-{n}"


def _find_dungeon(state: GameState, dungeon_id: str) -> Optional[Dict[str, Any]]:
    for dungeon in state.dungeons:
        if dungeon.get("id") == dungeon_id:
            return dungeon
    return None


def _find_run(state: GameState, run_id: str) -> Optional[Dict[str, Any]]:
    for run in state.active_dungeons:
        if run.get("id") == run_id:
            return run
    return None


def _require_text(field_name: str, value: Any) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field_name, f"{field_name} must be a non-empty string")


@dataclass(frozen=True)
class StartDungeon(Mutation):
    """
    Send the hunter (and optionally a party of allies and shadows) into an
    unlocked dungeon. A companion can only be in one run at a time.
    """

    dungeon_id: str
    party_ids: Tuple[str, ...] = ()

    type: ClassVar[str] = "start_dungeon"

    def validate_request(self) -> None:
        _require_text("dungeon_id", self.dungeon_id)
        for companion_id in self.party_ids:
            _require_text("party_ids", companion_id)
        if len(set(self.party_ids)) != len(self.party_ids):
            raise ValidationError("party_ids", "party_ids must not repeat a companion")

    def apply(self, state: GameState, now: datetime) -> GameState:
        dungeon = _find_dungeon(state, self.dungeon_id)
        if dungeon is None:
            raise PreconditionError("start_dungeon", f"Unknown dungeon: {self.dungeon_id}")
        unlocked = dungeon.get("unlocked") or state.hunter.level >= int(
            dungeon.get("required_level", 1)
        )
        if not unlocked:
            raise PreconditionError("start_dungeon", f"{dungeon.get('name', self.dungeon_id)} is locked")

        roster = [*state.allies, *state.shadows]
        unknown = [cid for cid in self.party_ids if find_companion(roster, cid) is None]
        if unknown:
            raise PreconditionError("start_dungeon", f"Unknown companion(s): {', '.join(unknown)}")
        busy = [
            cid
            for cid in self.party_ids
            if any(cid in (run.get("party_ids") or ()) for run in state.active_dungeons)
        ]
        if busy:
            raise PreconditionError(
                "start_dungeon", "Some companions are already in another dungeon"
            )

        start_ms = to_epoch_ms(now)
        duration_ms = round(run_duration_seconds(dungeon, state.research) * 1000)
        run = {
            "id": _unique_id(self.dungeon_id, now, state.active_dungeons),
            "dungeon_id": self.dungeon_id,
            "start_time": start_ms,
            "end_time": start_ms + duration_ms,
            "party_ids": list(self.party_ids),
        }
        return state.evolve(active_dungeons=[*state.active_dungeons, run])

    def payload(self) -> Dict[str, Any]:
        return {"dungeon_id": self.dungeon_id, "party_ids": list(self.party_ids)}


@dataclass(frozen=True)
class CompleteDungeon(Mutation):
    """
    Claim a finished run: rewards scaled by party effectiveness and research,
    clamped to caps; hunter XP through the leveling transition; a share of
    the base experience for every party member.
    """

    active_dungeon_id: str

    type: ClassVar[str] = "complete_dungeon"

    def validate_request(self) -> None:
        _require_text("active_dungeon_id", self.active_dungeon_id)

    def apply(self, state: GameState, now: datetime) -> GameState:
        run = _find_run(state, self.active_dungeon_id)
        if run is None:
            raise PreconditionError("complete_dungeon", "Active dungeon not found")
        if to_epoch_ms(now) < int(run.get("end_time", 0)):
            raise PreconditionError("complete_dungeon", "Dungeon not complete yet")
        dungeon = _find_dungeon(state, run.get("dungeon_id", ""))
        if dungeon is None:
            raise PreconditionError("complete_dungeon", f"Unknown dungeon: {run.get('dungeon_id')}")

        party = list(run.get("party_ids") or ())
        effectiveness = party_effectiveness(
            party, [*state.allies, *state.shadows], state.hunter.level
        )
        base_rewards = dungeon.get("rewards") or {}
        rewards = run_rewards(base_rewards, effectiveness, state.research)

        resources = algebra.clamp_to_caps(
            algebra.add(state.resources, rewards.resources), state.resource_caps
        )
        hunter = process_xp_gain(state.hunter, rewards.experience).hunter

        share = companion_xp_share(base_rewards.get("experience") or 0, state.research)
        allies = [add_companion_xp(a, share) if a.get("id") in party else a for a in state.allies]
        shadows = [add_companion_xp(s, share) if s.get("id") in party else s for s in state.shadows]

        remaining = [r for r in state.active_dungeons if r.get("id") != self.active_dungeon_id]
        dungeons, _ = refresh_dungeons(state.dungeons, hunter.level)
        return state.evolve(
            resources=resources,
            hunter=hunter,
            allies=allies,
            shadows=shadows,
            active_dungeons=remaining,
            dungeons=dungeons,
        )

    def payload(self) -> Dict[str, Any]:
        return {"active_dungeon_id": self.active_dungeon_id}


@dataclass(frozen=True)
class CancelDungeon(Mutation):
    """Abandon an active run without rewards; its party is free again."""

    active_dungeon_id: str

    type: ClassVar[str] = "cancel_dungeon"

    def validate_request(self) -> None:
        _require_text("active_dungeon_id", self.active_dungeon_id)

    def apply(self, state: GameState, now: datetime) -> GameState:
        if _find_run(state, self.active_dungeon_id) is None:
            raise PreconditionError("cancel_dungeon", "Active dungeon not found")
        remaining = [r for r in state.active_dungeons if r.get("id") != self.active_dungeon_id]
        return state.evolve(active_dungeons=remaining)

    def payload(self) -> Dict[str, Any]:
        return {"active_dungeon_id": self.active_dungeon_id}


@dataclass(frozen=True)
class RecruitAlly(Mutation):
    """Recruit a level-1 ally for attraction; the price depends on its rank."""

    name: str
    rank: str

    type: ClassVar[str] = "recruit_ally"

    def validate_request(self) -> None:
        _require_text("name", self.name)
        if self.rank not in ALLY_RANK_COSTS:
            raise ValidationError("rank", f"rank must be one of {', '.join(ALLY_RANK_COSTS)}")

    def apply(self, state: GameState, now: datetime) -> GameState:
        cost = {"attraction": ALLY_RANK_COSTS[self.rank]}
        _require_affordable(state, cost)

        ally = new_companion(
            _unique_id("ally", now, state.allies), self.name, "ally", "recruitment", rank=self.rank
        )
        return state.evolve(
            resources=algebra.subtract(state.resources, cost),
            allies=[*state.allies, ally],
        )

    def payload(self) -> Dict[str, Any]:
        return {"name": self.name, "rank": self.rank}


@dataclass(frozen=True)
class ExtractShadow(Mutation):
    """Bind a defeated enemy from a known dungeon as a shadow, paid in souls."""

    name: str
    dungeon_id: str

    type: ClassVar[str] = "extract_shadow"

    def validate_request(self) -> None:
        _require_text("name", self.name)
        _require_text("dungeon_id", self.dungeon_id)

    def apply(self, state: GameState, now: datetime) -> GameState:
        if state.hunter.level < NECROMANCER_LEVEL:
            raise PreconditionError(
                "extract_shadow", f"Shadow extraction unlocks at level {NECROMANCER_LEVEL}"
            )
        if _find_dungeon(state, self.dungeon_id) is None:
            raise PreconditionError("extract_shadow", f"Unknown dungeon: {self.dungeon_id}")

        cost = {"souls": SHADOW_EXTRACTION_COST}
        _require_affordable(state, cost)

        shadow = new_companion(
            _unique_id("shadow", now, state.shadows), self.name, "shadow", self.dungeon_id
        )
        return state.evolve(
            resources=algebra.subtract(state.resources, cost),
            shadows=[*state.shadows, shadow],
        )

    def payload(self) -> Dict[str, Any]:
        return {"name": self.name, "dungeon_id": self.dungeon_id}
