"""
Research value objects.

Research is bought once with knowledge and never reverts. Its ``effects`` bag
is typed: the per-channel maps feed the caps and production pipelines, the
dungeon and companion bonuses feed ``arise.engine.dungeons``. The blacksmith
and artifact bonuses are carried through unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Tuple

from arise.domain.models.base import DomainValidationError, validate_non_negative

_MAP_EFFECTS = (
    "production_multiplier",
    "building_efficiency",
    "cap_multiplier",
    "cap_increase",
    "gathering_bonus",
)


@dataclass(frozen=True)
class ResearchEffects:
    production_multiplier: Dict[str, float] = field(default_factory=dict)
    building_efficiency: Dict[str, float] = field(default_factory=dict)
    cap_multiplier: Dict[str, float] = field(default_factory=dict)
    cap_increase: Dict[str, float] = field(default_factory=dict)
    gathering_bonus: Dict[str, float] = field(default_factory=dict)
    companion_xp_bonus: float = 0.0
    blacksmith_xp_bonus: float = 0.0
    artifact_stat_bonus: float = 0.0
    dungeon_speed_bonus: float = 0.0
    dungeon_reward_bonus: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value:
                data[f.name] = dict(value) if f.name in _MAP_EFFECTS else value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ResearchEffects":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise DomainValidationError(
                f"Unknown research effect(s): {sorted(unknown)}", field="effects"
            )
        kwargs: Dict[str, Any] = {}
        for name, value in data.items():
            kwargs[name] = dict(value) if name in _MAP_EFFECTS else float(value)
        return cls(**kwargs)


@dataclass(frozen=True)
class Research:
    """
    Attributes
    ----------
    cost : float
        Knowledge required to research
    researched : bool
        One-way flag, false until purchased
    requires : Tuple[str, ...]
        Research ids that must all be researched first
    unlocks : Tuple[str, ...]
        Building ids gated on this research
    """

    id: str
    name: str
    cost: float
    researched: bool = False
    description: str = ""
    requires: Tuple[str, ...] = ()
    unlocks: Tuple[str, ...] = ()
    effects: ResearchEffects = field(default_factory=ResearchEffects)

    def __post_init__(self) -> None:
        if not self.id:
            raise DomainValidationError("research id cannot be empty", field="id")
        validate_non_negative(self.cost, f"{self.id}.cost")

    def mark_researched(self) -> "Research":
        return replace(self, researched=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "cost": self.cost,
            "researched": self.researched,
            "requires": list(self.requires),
            "unlocks": list(self.unlocks),
            "effects": self.effects.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Research":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            cost=data["cost"],
            researched=bool(data.get("researched", False)),
            requires=tuple(data.get("requires") or ()),
            unlocks=tuple(data.get("unlocks") or ()),
            effects=ResearchEffects.from_dict(data.get("effects")),
        )
