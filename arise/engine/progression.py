"""
Hunter progression math.

Pure functions for the leveling curve, rank mapping, derived HP/mana maxima
and stat allocation. Every function returns a new Hunter; nothing mutates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from arise.domain.models.hunter import STAT_NAMES, Hunter, HunterStats
from arise.engine.constants import (
    BASE_HP,
    BASE_MANA,
    HP_PER_LEVEL,
    HP_PER_VITALITY,
    MANA_PER_INTELLIGENCE,
    MANA_PER_LEVEL,
    RANK_TABLE,
    STARTING_STAT_VALUE,
    STAT_POINTS_PER_LEVEL,
    XP_BASE,
    XP_GROWTH,
)


@dataclass(frozen=True)
class XpGainResult:
    hunter: Hunter
    levels_gained: int

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0


def xp_to_next_level(level: int) -> int:
    """
    XP needed to go from ``level`` to ``level + 1``.

    Example:
        >>> xp_to_next_level(1), xp_to_next_level(2), xp_to_next_level(3)
        (100, 150, 225)
    """
    return math.floor(XP_BASE * XP_GROWTH ** (level - 1))


def rank_from_level(
    level: int,
    rank_table: Sequence[Tuple[int, str]] = RANK_TABLE,
) -> str:
    for threshold, rank in rank_table:
        if level >= threshold:
            return rank
    return rank_table[-1][1]


def max_hp(vitality: int, level: int) -> int:
    return BASE_HP + vitality * HP_PER_VITALITY + level * HP_PER_LEVEL


def max_mana(intelligence: int, level: int) -> int:
    return BASE_MANA + intelligence * MANA_PER_INTELLIGENCE + level * MANA_PER_LEVEL


def new_hunter() -> Hunter:
    """Level-1 hunter with starting stats and full pools."""
    stats = HunterStats(**{name: STARTING_STAT_VALUE for name in STAT_NAMES})
    hp = max_hp(stats.vitality, 1)
    mana = max_mana(stats.intelligence, 1)
    return Hunter(
        level=1,
        xp=0,
        xp_to_next_level=xp_to_next_level(1),
        rank=rank_from_level(1),
        stats=stats,
        stat_points=0,
        hp=hp,
        max_hp=hp,
        mana=mana,
        max_mana=mana,
    )


def process_xp_gain(hunter: Hunter, xp_amount: float) -> XpGainResult:
    """
    Add XP and resolve every level-up it pays for.

    Each level: subtract the requirement, +3 stat points, recompute the next
    requirement and rank, and fully restore HP/mana to the new maxima.

    Args:
        hunter: Current hunter
        xp_amount: Non-negative XP to add

    Returns:
        XpGainResult with the updated hunter and number of levels gained

    Example:
        >>> process_xp_gain(new_hunter(), 250).hunter.level
        3
    """
    level = hunter.level
    xp = hunter.xp + xp_amount
    required = hunter.xp_to_next_level
    stat_points = hunter.stat_points
    levels_gained = 0

    while xp >= required:
        xp -= required
        level += 1
        levels_gained += 1
        stat_points += STAT_POINTS_PER_LEVEL
        required = xp_to_next_level(level)

    if levels_gained == 0:
        return XpGainResult(hunter=replace(hunter, xp=xp), levels_gained=0)

    hp = max_hp(hunter.stats.vitality, level)
    mana = max_mana(hunter.stats.intelligence, level)
    updated = replace(
        hunter,
        level=level,
        xp=xp,
        xp_to_next_level=required,
        rank=rank_from_level(level),
        stat_points=stat_points,
        hp=hp,
        max_hp=hp,
        mana=mana,
        max_mana=mana,
    )
    return XpGainResult(hunter=updated, levels_gained=levels_gained)


def allocate_stat(hunter: Hunter, stat: str) -> Optional[Hunter]:
    """
    Spend one stat point on ``stat``.

    Returns None when the hunter has no stat points. Vitality restores HP to
    the new maximum and intelligence restores mana; other stats leave the
    current pools as they are, clamped to the recomputed maxima.
    """
    if hunter.stat_points <= 0:
        return None

    stats = hunter.stats.incremented(stat)
    new_max_hp = max_hp(stats.vitality, hunter.level)
    new_max_mana = max_mana(stats.intelligence, hunter.level)

    hp = new_max_hp if stat == "vitality" else min(hunter.hp, new_max_hp)
    mana = new_max_mana if stat == "intelligence" else min(hunter.mana, new_max_mana)

    return replace(
        hunter,
        stats=stats,
        stat_points=hunter.stat_points - 1,
        max_hp=new_max_hp,
        hp=hp,
        max_mana=new_max_mana,
        mana=mana,
    )
