"""
Arise Economy Constants

Purpose
-------
Canonical gameplay tables shared by the authoritative server path and the
client's optimistic mirror: base caps, the stat-to-channel elasticity map,
the building synergy table, the hunter rank table, and the research and
building ids that switch on special engine behavior.

IMPORTANT:
This module contains GAMEPLAY constants only. Infrastructure limits (offline
window, bulk purchase limit, cache TTLs) live in arise.core.config.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- No side effects at import time; pure data only
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Final, Tuple

# ============================================================================
# RESOURCE CAPS
# ============================================================================

BASE_RESOURCE_CAPS: Final[Dict[str, float]] = {
    "essence": 100,
    "crystals": 100,
    "gold": 200,
    "souls": 50,
    "attraction": 5,
    "gems": 1,
    "knowledge": 100,
}

# ============================================================================
# STAT ELASTICITY
# ============================================================================

# Channel -> stat whose points scale it. Caps scale by (1 + stat/100),
# production by (1 + stat/200).
STAT_CHANNEL_ELASTICITY: Final[Dict[str, str]] = {
    "essence": "strength",
    "crystals": "sense",
    "gold": "agility",
    "souls": "vitality",
    "knowledge": "intelligence",
}

# Channels not listed above scale with the average of these stats
AVERAGED_STATS: Final[Tuple[str, ...]] = (
    "strength",
    "agility",
    "intelligence",
    "vitality",
    "sense",
)

CAP_STAT_DIVISOR: Final[float] = 100.0
PRODUCTION_STAT_DIVISOR: Final[float] = 200.0

# ============================================================================
# SPECIAL RESEARCH / BUILDINGS
# ============================================================================

RESEARCH_SHADOW_ECONOMY: Final[str] = "shadowEconomy"
RESEARCH_KNOWLEDGE_LOOP: Final[str] = "knowledgeLoop"
RESEARCH_TRANSCENDENCE: Final[str] = "transcendence"
RESEARCH_KNOWLEDGE_GENERATION: Final[str] = "knowledgeGeneration"
RESEARCH_COMPOUNDED_LEARNING: Final[str] = "compoundedLearning"

KNOWLEDGE_BUILDING: Final[str] = "trainingGround"

SHADOW_ECONOMY_PER_SOUL: Final[float] = 0.01
KNOWLEDGE_LOOP_STEP: Final[float] = 100.0
KNOWLEDGE_LOOP_BONUS: Final[float] = 0.05
TRANSCENDENCE_PRODUCTION_PER_LEVEL: Final[float] = 0.01
TRANSCENDENCE_CAP_PER_LEVEL: Final[float] = 0.1
KNOWLEDGE_PER_BUILDING_SECOND: Final[float] = 0.1
COMPOUNDED_LEARNING_BASE: Final[float] = 1.1

# ============================================================================
# SYNERGIES
# ============================================================================


@dataclass(frozen=True)
class SynergyRule:
    """
    ``building`` production is multiplied by ``1 + n * per_unit`` where ``n``
    is the owned count of ``partner`` (minus one when ``exclude_self``),
    while ``research`` is researched.
    """

    building: str
    partner: str
    per_unit: float
    research: str
    exclude_self: bool = False


SYNERGIES: Final[Tuple[SynergyRule, ...]] = (
    SynergyRule("essenceExtractor", "crystalMine", 0.25, "manaResonance"),
    SynergyRule("crystalMine", "essenceVault", 0.10, "crystalSynergy"),
    SynergyRule("hunterGuild", "hunterGuild", 0.05, "guildNetwork", exclude_self=True),
)

# ============================================================================
# GATHERING
# ============================================================================

GATHER_BASE_AMOUNTS: Final[Dict[str, float]] = {
    "essence": 1,
    "crystals": 0.5,
    "gold": 2,
}

GATHER_STATS: Final[Dict[str, str]] = {
    "essence": "sense",
    "crystals": "intelligence",
    "gold": "agility",
}

GATHER_BASE_XP: Final[float] = 0.1

# ============================================================================
# HUNTER PROGRESSION
# ============================================================================

XP_BASE: Final[int] = 100
XP_GROWTH: Final[float] = 1.5
STAT_POINTS_PER_LEVEL: Final[int] = 3

BASE_HP: Final[int] = 100
HP_PER_VITALITY: Final[int] = 10
HP_PER_LEVEL: Final[int] = 5
BASE_MANA: Final[int] = 50
MANA_PER_INTELLIGENCE: Final[int] = 5
MANA_PER_LEVEL: Final[int] = 3

STARTING_STAT_VALUE: Final[int] = 10

# Highest threshold first; the first row whose level is reached wins.
RANK_TABLE: Final[Tuple[Tuple[int, str], ...]] = (
    (100, "S"),
    (80, "A"),
    (60, "B"),
    (40, "C"),
    (20, "D"),
    (1, "E"),
)

# ============================================================================
# PURCHASING
# ============================================================================

MAX_AFFORDABLE_SEARCH_LIMIT: Final[int] = 1000

# ============================================================================
# DUNGEONS & COMPANIONS
# ============================================================================

# Party members earn this share of a run's base experience
COMPANION_XP_SHARE: Final[float] = 0.5

# Finished runs stay claimable this long before a sync discards them
UNCLAIMED_RUN_RETENTION_SECONDS: Final[int] = 24 * 60 * 60

# Attraction paid to recruit an ally of each rank
ALLY_RANK_COSTS: Final[Dict[str, int]] = {
    "E": 100,
    "D": 300,
    "C": 1000,
    "B": 3000,
    "A": 10000,
    "S": 30000,
}

SHADOW_EXTRACTION_COST: Final[int] = 1000
NECROMANCER_LEVEL: Final[int] = 40
