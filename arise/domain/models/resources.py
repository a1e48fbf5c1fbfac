"""
Resource vector value object.

The economy tracks exactly seven channels. The shape is closed: channels are
never added or removed at runtime, and every partial mapping (costs, cap
bonuses, production rates) is expressed against the same channel names.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, Iterator, Mapping, Optional, Tuple

from arise.domain.models.base import DomainValidationError, validate_non_negative

CHANNELS: Tuple[str, ...] = (
    "essence",
    "crystals",
    "gold",
    "souls",
    "attraction",
    "gems",
    "knowledge",
)

PartialResources = Dict[str, float]


@dataclass(frozen=True)
class ResourceVector:
    """
    Immutable amounts for the seven resource channels.

    Values may be fractional while income accrues. The same type is used for
    caps (see ``ResourceCaps``).
    """

    essence: float = 0
    crystals: float = 0
    gold: float = 0
    souls: float = 0
    attraction: float = 0
    gems: float = 0
    knowledge: float = 0

    @classmethod
    def zero(cls) -> "ResourceVector":
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, float]]) -> "ResourceVector":
        """
        Build a vector from a (possibly partial) mapping.

        Missing or null channels become 0. Unknown channel names are rejected
        because the shape is closed.
        """
        if not data:
            return cls()
        unknown = set(data) - set(CHANNELS)
        if unknown:
            raise DomainValidationError(
                f"Unknown resource channel(s): {sorted(unknown)}", field="resources"
            )
        return cls(**{ch: data.get(ch) or 0 for ch in CHANNELS})

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def get(self, channel: str) -> float:
        return getattr(self, channel)

    def with_channel(self, channel: str, value: float) -> "ResourceVector":
        return replace(self, **{channel: value})

    def items(self) -> Iterator[Tuple[str, float]]:
        for channel in CHANNELS:
            yield channel, getattr(self, channel)

    def validate_at_rest(self) -> None:
        """Raise DomainValidationError if any channel is negative or NaN."""
        for channel, value in self.items():
            validate_non_negative(value, channel)


ResourceCaps = ResourceVector
