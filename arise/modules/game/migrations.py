"""
Additive schema migration for loaded game states.

New content is merged in, never overwritten: building and research ids
missing from a stored state are backfilled from the defaults, counts and
``researched`` flags already present are kept, and research items stored
before gating existed get their ``unlocks`` list filled in. Finished runs left
unclaimed past the retention window are dropped and dungeon unlock flags
follow the hunter's level.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Tuple

from arise.content.loader import ContentRegistry
from arise.domain.models import Building, GameState, Research
from arise.domain.models.game_state import to_epoch_ms
from arise.engine.constants import UNCLAIMED_RUN_RETENTION_SECONDS


def backfill_buildings(stored: Dict[str, Building]) -> Tuple[Dict[str, Building], bool]:
    merged = dict(stored)
    changed = False
    for bid, default in ContentRegistry.default_buildings().items():
        if bid not in merged:
            merged[bid] = default
            changed = True
    return merged, changed


def backfill_research(stored: Dict[str, Research]) -> Tuple[Dict[str, Research], bool]:
    merged = dict(stored)
    changed = False
    for rid, default in ContentRegistry.default_research().items():
        current = merged.get(rid)
        if current is None:
            merged[rid] = default
            changed = True
        elif not current.unlocks and default.unlocks:
            merged[rid] = replace(current, unlocks=default.unlocks)
            changed = True
    return merged, changed


def refresh_dungeons(
    dungeons: List[Dict[str, Any]], hunter_level: int
) -> Tuple[List[Dict[str, Any]], bool]:
    if not dungeons:
        dungeons = ContentRegistry.default_dungeons()
        changed = True
    else:
        dungeons = [dict(d) for d in dungeons]
        changed = False

    for dungeon in dungeons:
        unlocked = hunter_level >= int(dungeon.get("required_level", 1))
        if unlocked and not dungeon.get("unlocked"):
            dungeon["unlocked"] = True
            changed = True
    return dungeons, changed


def drop_unclaimed_runs(
    active: List[Dict[str, Any]],
    now: datetime,
    retention_seconds: int = UNCLAIMED_RUN_RETENTION_SECONDS,
) -> Tuple[List[Dict[str, Any]], bool]:
    """Discard runs that finished more than ``retention_seconds`` ago without a claim."""
    cutoff_ms = to_epoch_ms(now) - retention_seconds * 1000
    kept = [d for d in active if int(d.get("end_time", 0)) > cutoff_ms]
    return kept, len(kept) != len(active)


def migrate_state(state: GameState, now: datetime) -> Tuple[GameState, bool]:
    """
    Returns:
        The migrated state and whether anything changed
    """
    buildings, buildings_changed = backfill_buildings(state.buildings)
    research, research_changed = backfill_research(state.research)
    dungeons, dungeons_changed = refresh_dungeons(state.dungeons, state.hunter.level)
    active, active_changed = drop_unclaimed_runs(state.active_dungeons, now)

    changed = buildings_changed or research_changed or dungeons_changed or active_changed
    if not changed:
        return state, False
    return (
        state.evolve(
            buildings=buildings,
            research=research,
            dungeons=dungeons,
            active_dungeons=active,
        ),
        True,
    )
