"""
Dynamic resource caps.

Caps are derived on demand and never read back from storage for
computation. The pipeline order is fixed:

1. copy the base caps
2. add per-unit building bonuses (``increases_caps * count``)
3. per researched item, in map order: ``cap_multiplier`` then ``cap_increase``
4. transcendence: every channel times ``1 + level * 0.1``
5. hunter stats: mapped channels times ``1 + stat / 100``, the rest times
   ``1 + average(core stats) / 100``

Flat building bonuses therefore get multiplied by research and stats.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Union

from arise.domain.models.building import Building
from arise.domain.models.hunter import HunterStats
from arise.domain.models.research import Research
from arise.domain.models.resources import CHANNELS, ResourceVector
from arise.engine.constants import (
    AVERAGED_STATS,
    CAP_STAT_DIVISOR,
    RESEARCH_TRANSCENDENCE,
    STAT_CHANNEL_ELASTICITY,
    TRANSCENDENCE_CAP_PER_LEVEL,
)


def is_researched(research: Mapping[str, Research], research_id: str) -> bool:
    item = research.get(research_id)
    return item is not None and item.researched


def average_stat(stats: HunterStats) -> float:
    return sum(stats.get(name) for name in AVERAGED_STATS) / len(AVERAGED_STATS)


def stat_multiplier(stats: HunterStats, channel: str, divisor: float) -> float:
    """``1 + stat / divisor`` for the stat mapped to ``channel``."""
    stat = STAT_CHANNEL_ELASTICITY.get(channel)
    value = stats.get(stat) if stat else average_stat(stats)
    return 1 + value / divisor


def compute_caps(
    base_caps: Union[ResourceVector, Mapping[str, float]],
    buildings: Mapping[str, Building],
    research: Mapping[str, Research],
    hunter_level: int = 1,
    hunter_stats: Optional[HunterStats] = None,
) -> ResourceVector:
    """
    Compute caps from base caps and the player's current holdings.

    Args:
        base_caps: Caps before any bonus
        buildings: Building map (only ``count > 0`` with ``increases_caps`` count)
        research: Research map (only ``researched`` items count)
        hunter_level: Used by transcendence
        hunter_stats: Stat elasticity is skipped when None

    Returns:
        Caps vector

    Example:
        >>> # base 100, vault +50 essence x2, deepStorage x2, strength 50
        >>> compute_caps(base, buildings, research, 1, stats).essence
        600.0
    """
    if isinstance(base_caps, ResourceVector):
        caps: Dict[str, float] = base_caps.to_dict()
    else:
        caps = {ch: base_caps.get(ch) or 0 for ch in CHANNELS}

    for building in buildings.values():
        if building.increases_caps and building.count > 0:
            for channel, increase in building.increases_caps.items():
                if increase:
                    caps[channel] = caps[channel] + increase * building.count

    for item in research.values():
        if not item.researched:
            continue
        for channel, multiplier in item.effects.cap_multiplier.items():
            if multiplier:
                caps[channel] *= multiplier
        for channel, increase in item.effects.cap_increase.items():
            if increase:
                caps[channel] += increase

    if is_researched(research, RESEARCH_TRANSCENDENCE):
        level_multiplier = 1 + hunter_level * TRANSCENDENCE_CAP_PER_LEVEL
        for channel in CHANNELS:
            caps[channel] *= level_multiplier

    if hunter_stats is not None:
        for channel in CHANNELS:
            caps[channel] *= stat_multiplier(hunter_stats, channel, CAP_STAT_DIVISOR)

    return ResourceVector(**caps)
