"""
Building value object.

A building is owned in some ``count`` and contributes to the economy in up to
three ways: per-second production of resource channels, per-second hunter XP,
and flat per-unit increases to resource caps. Counts only ever go up through
purchases.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

from arise.domain.models.base import DomainValidationError, validate_non_negative
from arise.domain.models.resources import PartialResources, ResourceVector


@dataclass(frozen=True)
class Building:
    """
    Attributes
    ----------
    id : str
        Stable content identifier (e.g. "essenceExtractor")
    name : str
        Display name
    base_cost : ResourceVector
        Price of the first unit
    cost_multiplier : float
        Per-unit geometric growth factor, strictly greater than 1
    count : int
        Owned quantity
    produces : Optional[Dict[str, float]]
        Per-unit, per-``per_second`` production rates by channel
    per_second : Optional[float]
        Production scalar applied to every produced channel
    xp_per_second : Optional[float]
        Hunter XP granted per unit per second
    increases_caps : Optional[Dict[str, float]]
        Flat per-unit cap bonus by channel
    """

    id: str
    name: str
    base_cost: ResourceVector
    cost_multiplier: float
    count: int = 0
    description: str = ""
    produces: Optional[PartialResources] = None
    per_second: Optional[float] = None
    xp_per_second: Optional[float] = None
    increases_caps: Optional[PartialResources] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise DomainValidationError("building id cannot be empty", field="id")
        validate_non_negative(self.count, f"{self.id}.count")
        if self.cost_multiplier <= 1:
            raise DomainValidationError(
                f"{self.id}.cost_multiplier must be greater than 1, got {self.cost_multiplier}",
                field="cost_multiplier",
            )

    def with_count(self, count: int) -> "Building":
        return replace(self, count=count)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "count": self.count,
            "base_cost": self.base_cost.to_dict(),
            "cost_multiplier": self.cost_multiplier,
        }
        if self.produces is not None:
            data["produces"] = dict(self.produces)
        if self.per_second is not None:
            data["per_second"] = self.per_second
        if self.xp_per_second is not None:
            data["xp_per_second"] = self.xp_per_second
        if self.increases_caps is not None:
            data["increases_caps"] = dict(self.increases_caps)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Building":
        produces = data.get("produces")
        increases_caps = data.get("increases_caps")
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            count=int(data.get("count", 0)),
            base_cost=ResourceVector.from_dict(data.get("base_cost")),
            cost_multiplier=float(data["cost_multiplier"]),
            produces=dict(produces) if produces is not None else None,
            per_second=data.get("per_second"),
            xp_per_second=data.get("xp_per_second"),
            increases_caps=dict(increases_caps) if increases_caps is not None else None,
        )
