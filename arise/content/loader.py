"""
Static game content.

Purpose
-------
Load the packaged YAML tables (buildings, research, dungeons) with
``yaml.safe_load`` and turn them into domain objects. Tables are parsed once
per process; every accessor hands out fresh containers so callers can never
mutate the cached defaults.

Responsibilities
----------------
- Seed new game states (zero resources, level-1 hunter, default tables)
- Provide the default tables used to backfill existing states on load
- Answer whether a building is gated behind unresearched research

Usage Example
-------------
>>> state = ContentRegistry.new_game_state("user-1", utc_now())
>>> state.buildings["essenceExtractor"].count
0
"""

from __future__ import annotations

import copy
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from arise.domain.models import Building, GameState, Research, ResourceVector
from arise.engine.caps import compute_caps
from arise.engine.constants import BASE_RESOURCE_CAPS
from arise.engine.progression import new_hunter

DATA_DIR = Path(__file__).parent / "data"


class ContentError(Exception):
    """Raised when a packaged content table is missing or malformed."""


@lru_cache(maxsize=None)
def _load_table(name: str) -> Any:
    path = DATA_DIR / name
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ContentError(f"Failed to load content table {name}: {exc}") from exc


@lru_cache(maxsize=None)
def _building_table() -> Tuple[Building, ...]:
    raw = _load_table("buildings.yaml") or {}
    return tuple(Building.from_dict({"id": bid, **entry}) for bid, entry in raw.items())


@lru_cache(maxsize=None)
def _research_table() -> Tuple[Research, ...]:
    raw = _load_table("research.yaml") or {}
    return tuple(Research.from_dict({"id": rid, **entry}) for rid, entry in raw.items())


class ContentRegistry:
    """Read-only access to the packaged content tables."""

    @staticmethod
    def default_buildings() -> Dict[str, Building]:
        return {b.id: b for b in _building_table()}

    @staticmethod
    def default_research() -> Dict[str, Research]:
        return {r.id: r for r in _research_table()}

    @staticmethod
    def default_dungeons() -> List[Dict[str, Any]]:
        return copy.deepcopy(_load_table("dungeons.yaml") or [])

    @staticmethod
    def unlocking_research(building_id: str, research: Mapping[str, Research]) -> List[str]:
        """Ids of research items whose ``unlocks`` list ``building_id``."""
        return [rid for rid, item in research.items() if building_id in item.unlocks]

    @classmethod
    def is_building_locked(cls, building_id: str, research: Mapping[str, Research]) -> bool:
        """
        True when some research gates the building and none of the gating
        items is researched yet.
        """
        gates = cls.unlocking_research(building_id, research)
        return bool(gates) and not any(research[rid].researched for rid in gates)

    @classmethod
    def new_game_state(cls, user_id: str, now: datetime) -> GameState:
        buildings = cls.default_buildings()
        research = cls.default_research()
        hunter = new_hunter()
        caps = compute_caps(BASE_RESOURCE_CAPS, buildings, research, hunter.level, hunter.stats)
        return GameState(
            user_id=user_id,
            resources=ResourceVector.zero(),
            resource_caps=caps,
            hunter=hunter,
            buildings=buildings,
            research=research,
            last_update=now,
            version=1,
            dungeons=cls.default_dungeons(),
        )
