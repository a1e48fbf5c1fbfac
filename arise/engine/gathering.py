"""
Manual gathering formulas.

Only essence, crystals and gold can be gathered by hand. The amount scales
with one hunter stat per channel and with every researched gathering bonus.
"""

from __future__ import annotations

from typing import Mapping, Tuple

from arise.domain.models.hunter import HunterStats
from arise.domain.models.research import Research
from arise.engine.constants import GATHER_BASE_AMOUNTS, GATHER_BASE_XP, GATHER_STATS

GATHERABLE_CHANNELS: Tuple[str, ...] = tuple(GATHER_BASE_AMOUNTS)


def gather_amount(
    channel: str,
    stats: HunterStats,
    research: Mapping[str, Research],
) -> float:
    """
    Example:
        >>> gather_amount("gold", HunterStats(agility=50), {})
        3.0
    """
    amount = GATHER_BASE_AMOUNTS[channel] * (1 + stats.get(GATHER_STATS[channel]) / 100)
    for item in research.values():
        if item.researched:
            bonus = item.effects.gathering_bonus.get(channel)
            if bonus:
                amount *= 1 + bonus
    return amount


def gather_xp(channel: str, stats: HunterStats) -> float:
    return GATHER_BASE_XP * (1 + stats.get(GATHER_STATS[channel]) / 200)
