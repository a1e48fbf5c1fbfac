"""
Production engine.

Turns buildings, research, hunter level/stats and elapsed time into resource
gains and hunter XP. The multiplier order per produced channel is fixed:

    amount * count * per_second * dt
        * building efficiency (product over researched techs)
        * synergy (table-driven, see ``SYNERGIES``)
        * global multiplier (shadow economy, knowledge loop, transcendence)
        * hunter-stat elasticity (1 + stat / 200)

Knowledge from the training ground is added separately, and XP is the plain
sum of ``count * xp_per_second * dt``. Nothing here clamps to caps; callers
clamp against freshly computed caps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from arise.domain.models.building import Building
from arise.domain.models.hunter import HunterStats
from arise.domain.models.research import Research
from arise.domain.models.resources import CHANNELS, ResourceVector
from arise.engine.caps import is_researched, stat_multiplier
from arise.engine.constants import (
    COMPOUNDED_LEARNING_BASE,
    KNOWLEDGE_BUILDING,
    KNOWLEDGE_LOOP_BONUS,
    KNOWLEDGE_LOOP_STEP,
    KNOWLEDGE_PER_BUILDING_SECOND,
    PRODUCTION_STAT_DIVISOR,
    RESEARCH_COMPOUNDED_LEARNING,
    RESEARCH_KNOWLEDGE_GENERATION,
    RESEARCH_KNOWLEDGE_LOOP,
    RESEARCH_SHADOW_ECONOMY,
    RESEARCH_TRANSCENDENCE,
    SHADOW_ECONOMY_PER_SOUL,
    SYNERGIES,
    TRANSCENDENCE_PRODUCTION_PER_LEVEL,
    SynergyRule,
)


@dataclass(frozen=True)
class TickGains:
    resource_gains: ResourceVector
    xp_gain: float


def global_multiplier(
    research: Mapping[str, Research],
    resources: ResourceVector,
    hunter_level: int,
) -> float:
    multiplier = 1.0
    if is_researched(research, RESEARCH_SHADOW_ECONOMY):
        multiplier *= 1 + resources.souls * SHADOW_ECONOMY_PER_SOUL
    if is_researched(research, RESEARCH_KNOWLEDGE_LOOP):
        multiplier *= 1 + math.floor(resources.knowledge / KNOWLEDGE_LOOP_STEP) * KNOWLEDGE_LOOP_BONUS
    if is_researched(research, RESEARCH_TRANSCENDENCE):
        multiplier *= 1 + hunter_level * TRANSCENDENCE_PRODUCTION_PER_LEVEL
    return multiplier


def building_efficiency(building_id: str, research: Mapping[str, Research]) -> float:
    efficiency = 1.0
    for item in research.values():
        if item.researched:
            factor = item.effects.building_efficiency.get(building_id)
            if factor:
                efficiency *= factor
    return efficiency


def synergy_multiplier(
    building_id: str,
    buildings: Mapping[str, Building],
    research: Mapping[str, Research],
    synergies: Sequence[SynergyRule] = SYNERGIES,
) -> float:
    """
    Product of every active synergy rule targeting ``building_id``.

    Example:
        >>> # manaResonance researched, 3 crystal mines
        >>> synergy_multiplier("essenceExtractor", buildings, research)
        1.75
    """
    synergy = 1.0
    for rule in synergies:
        if rule.building != building_id or not is_researched(research, rule.research):
            continue
        partner = buildings.get(rule.partner)
        partner_count = partner.count if partner is not None else 0
        if rule.exclude_self:
            partner_count -= 1
        synergy *= 1 + partner_count * rule.per_unit
    return synergy


def building_production(
    buildings: Mapping[str, Building],
    research: Mapping[str, Research],
    delta_seconds: float,
    multiplier: float,
    hunter_stats: Optional[HunterStats] = None,
    synergies: Sequence[SynergyRule] = SYNERGIES,
) -> Dict[str, float]:
    gains: Dict[str, float] = {ch: 0.0 for ch in CHANNELS}

    for building in buildings.values():
        if not building.produces or not building.per_second:
            continue
        for channel, amount in building.produces.items():
            if not amount:
                continue
            production = amount * building.count * building.per_second * delta_seconds
            production *= building_efficiency(building.id, research)
            production *= synergy_multiplier(building.id, buildings, research, synergies)
            production *= multiplier
            if hunter_stats is not None:
                production *= stat_multiplier(hunter_stats, channel, PRODUCTION_STAT_DIVISOR)
            gains[channel] = gains[channel] + production

    return gains


def knowledge_production(
    buildings: Mapping[str, Building],
    research: Mapping[str, Research],
    delta_seconds: float,
) -> float:
    source = buildings.get(KNOWLEDGE_BUILDING)
    if source is None or not is_researched(research, RESEARCH_KNOWLEDGE_GENERATION):
        return 0.0

    produced = source.count * KNOWLEDGE_PER_BUILDING_SECOND * delta_seconds
    if is_researched(research, RESEARCH_COMPOUNDED_LEARNING):
        produced *= COMPOUNDED_LEARNING_BASE**source.count
    return produced


def building_xp(buildings: Mapping[str, Building], delta_seconds: float) -> float:
    xp = 0.0
    for building in buildings.values():
        if building.xp_per_second:
            xp += building.count * building.xp_per_second * delta_seconds
    return xp


def tick_gains(
    buildings: Mapping[str, Building],
    research: Mapping[str, Research],
    resources: ResourceVector,
    hunter_level: int,
    delta_seconds: float,
    hunter_stats: Optional[HunterStats] = None,
    synergies: Sequence[SynergyRule] = SYNERGIES,
) -> TickGains:
    """
    Resource and XP gains for ``delta_seconds`` of production.

    Args:
        buildings: Building map
        research: Research map
        resources: Current resources (feeds the souls/knowledge multipliers)
        hunter_level: Current hunter level
        delta_seconds: Elapsed time; non-positive values yield zero gains
        hunter_stats: Stat elasticity is skipped when None
        synergies: Synergy table

    Returns:
        Unclamped gains

    Example:
        >>> # one extractor producing essence 1 at per_second 1, 10 seconds
        >>> tick_gains(buildings, {}, ResourceVector(), 1, 10).resource_gains.essence
        10.0
    """
    if delta_seconds <= 0:
        return TickGains(resource_gains=ResourceVector.zero(), xp_gain=0.0)

    multiplier = global_multiplier(research, resources, hunter_level)
    gains = building_production(
        buildings, research, delta_seconds, multiplier, hunter_stats, synergies
    )
    gains["knowledge"] = gains["knowledge"] + knowledge_production(buildings, research, delta_seconds)

    return TickGains(
        resource_gains=ResourceVector(**gains),
        xp_gain=building_xp(buildings, delta_seconds),
    )
