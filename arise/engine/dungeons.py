"""
Dungeon run and companion math.

Dungeon definitions, active runs and companions (allies and shadows) are
stored on the game state as plain dicts. A run's duration shrinks with the
researched speed bonus. Its rewards scale with the party's effectiveness
(companion level over hunter level, summed) and with the researched reward
bonus, and are floored per channel. Party members level on the same curve
as the hunter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from arise.domain.models.research import Research
from arise.domain.models.resources import CHANNELS, ResourceVector
from arise.engine.constants import COMPANION_XP_SHARE
from arise.engine.progression import xp_to_next_level


@dataclass(frozen=True)
class RunRewards:
    resources: ResourceVector
    experience: int
    multiplier: float


def research_bonus(research: Mapping[str, Research], effect: str) -> float:
    """Sum of a scalar research effect over researched items."""
    return sum(
        getattr(item.effects, effect) for item in research.values() if item.researched
    )


def run_duration_seconds(dungeon: Mapping[str, Any], research: Mapping[str, Research]) -> float:
    """
    Example:
        >>> # 30 s dungeon, dungeonEfficiency (0.2) researched
        >>> run_duration_seconds(dungeon, research)
        24.0
    """
    speed = research_bonus(research, "dungeon_speed_bonus")
    return float(dungeon.get("duration", 0)) * max(0.0, 1 - speed)


def find_companion(
    companions: Iterable[Dict[str, Any]], companion_id: str
) -> Optional[Dict[str, Any]]:
    for companion in companions:
        if companion.get("id") == companion_id:
            return companion
    return None


def party_effectiveness(
    party_ids: Sequence[str],
    companions: Sequence[Dict[str, Any]],
    hunter_level: int,
) -> float:
    if hunter_level <= 0:
        return 0.0
    total = 0.0
    for companion_id in party_ids:
        companion = find_companion(companions, companion_id)
        if companion is not None:
            total += int(companion.get("level", 1)) / hunter_level
    return total


def run_rewards(
    rewards: Mapping[str, Any],
    effectiveness: float,
    research: Mapping[str, Research],
) -> RunRewards:
    """
    Rewards for one cleared run, before clamping to caps.

    Example:
        >>> # gold 100, one level-5 companion with a level-10 hunter, no research
        >>> run_rewards({"gold": 100, "experience": 100}, 0.5, {}).resources.gold
        150.0
    """
    multiplier = (1 + effectiveness) * (1 + research_bonus(research, "dungeon_reward_bonus"))
    scaled = {ch: float(math.floor((rewards.get(ch) or 0) * multiplier)) for ch in CHANNELS}
    experience = math.floor((rewards.get("experience") or 0) * multiplier)
    return RunRewards(resources=ResourceVector(**scaled), experience=experience, multiplier=multiplier)


def companion_xp_share(base_experience: float, research: Mapping[str, Research]) -> int:
    bonus = research_bonus(research, "companion_xp_bonus")
    return math.floor(base_experience * COMPANION_XP_SHARE * (1 + bonus))


def new_companion(companion_id: str, name: str, kind: str, origin: str, **fields: Any) -> Dict[str, Any]:
    return {
        "id": companion_id,
        "name": name,
        "type": kind,
        "origin_dungeon_id": origin,
        "level": 1,
        "xp": 0,
        "xp_to_next_level": xp_to_next_level(1),
        **fields,
    }


def add_companion_xp(companion: Mapping[str, Any], xp: float) -> Dict[str, Any]:
    """Return a copy of ``companion`` with ``xp`` added and level-ups resolved."""
    updated = dict(companion)
    level = int(updated.get("level", 1))
    current = float(updated.get("xp", 0)) + xp
    required = xp_to_next_level(level)
    while current >= required:
        current -= required
        level += 1
        required = xp_to_next_level(level)
    updated.update(level=level, xp=current, xp_to_next_level=required)
    return updated
