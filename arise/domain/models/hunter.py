"""
Hunter value objects.

The hunter is the player character: a level/XP track, a derived rank, six
allocatable stats, and HP/mana pools whose maxima derive from vitality,
intelligence and level. All transitions live in ``arise.engine.progression``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Tuple

from arise.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_positive,
)

STAT_NAMES: Tuple[str, ...] = (
    "strength",
    "agility",
    "intelligence",
    "vitality",
    "sense",
    "authority",
)


@dataclass(frozen=True)
class HunterStats:
    strength: int = 0
    agility: int = 0
    intelligence: int = 0
    vitality: int = 0
    sense: int = 0
    authority: int = 0

    def __post_init__(self) -> None:
        for name in STAT_NAMES:
            validate_non_negative(getattr(self, name), name)

    def get(self, stat: str) -> int:
        if stat not in STAT_NAMES:
            raise DomainValidationError(f"Unknown stat: {stat}", field="stat")
        return getattr(self, stat)

    def incremented(self, stat: str, amount: int = 1) -> "HunterStats":
        return replace(self, **{stat: self.get(stat) + amount})

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "HunterStats":
        data = data or {}
        return cls(**{name: int(data.get(name, 0)) for name in STAT_NAMES})


@dataclass(frozen=True)
class Hunter:
    """
    Invariant: ``0 <= xp < xp_to_next_level`` after every leveling transition.
    """

    level: int = 1
    xp: float = 0
    xp_to_next_level: int = 100
    rank: str = "E"
    stats: HunterStats = field(default_factory=HunterStats)
    stat_points: int = 0
    hp: float = 100
    max_hp: float = 100
    mana: float = 50
    max_mana: float = 50

    def __post_init__(self) -> None:
        validate_positive(self.level, "level")
        validate_non_negative(self.xp, "xp")
        validate_non_negative(self.stat_points, "stat_points")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "xp": self.xp,
            "xp_to_next_level": self.xp_to_next_level,
            "rank": self.rank,
            "stats": self.stats.to_dict(),
            "stat_points": self.stat_points,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "mana": self.mana,
            "max_mana": self.max_mana,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Hunter":
        return cls(
            level=int(data.get("level", 1)),
            xp=data.get("xp", 0),
            xp_to_next_level=int(data.get("xp_to_next_level", 100)),
            rank=data.get("rank", "E"),
            stats=HunterStats.from_dict(data.get("stats")),
            stat_points=int(data.get("stat_points", 0)),
            hp=data.get("hp", 100),
            max_hp=data.get("max_hp", 100),
            mana=data.get("mana", 50),
            max_mana=data.get("max_mana", 50),
        )
