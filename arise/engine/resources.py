"""
Resource algebra.

Channel-wise arithmetic over the closed seven-channel resource vector. Every
operation is total and pure; callers decide what a deficit means.

Usage
-----
    from arise.engine import resources

    if resources.can_afford(state.resources, cost):
        remaining = resources.subtract(state.resources, cost)
    else:
        message = resources.format_missing_message(resources.missing(state.resources, cost))
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Union

from arise.domain.models.resources import CHANNELS, ResourceVector

ResourceLike = Union[ResourceVector, Mapping[str, float]]


def _amount(vector: ResourceLike, channel: str) -> float:
    if isinstance(vector, ResourceVector):
        return vector.get(channel)
    return vector.get(channel) or 0


def zero() -> ResourceVector:
    return ResourceVector.zero()


def add(a: ResourceVector, b: ResourceLike) -> ResourceVector:
    return ResourceVector(**{ch: a.get(ch) + _amount(b, ch) for ch in CHANNELS})


def subtract(a: ResourceVector, b: ResourceLike) -> ResourceVector:
    return ResourceVector(**{ch: a.get(ch) - _amount(b, ch) for ch in CHANNELS})


def can_afford(resources: ResourceVector, cost: ResourceLike) -> bool:
    return all(resources.get(ch) >= _amount(cost, ch) for ch in CHANNELS)


def missing(resources: ResourceVector, cost: ResourceLike) -> Dict[str, float]:
    """
    Channel-wise deficits, omitting channels with no deficit.

    An empty result means the cost is affordable.

    Example:
        >>> missing(ResourceVector(essence=3), {"essence": 10, "gold": 0})
        {'essence': 7}
    """
    deficits: Dict[str, float] = {}
    for ch in CHANNELS:
        shortfall = _amount(cost, ch) - resources.get(ch)
        if shortfall > 0:
            deficits[ch] = shortfall
    return deficits


def clamp_to_caps(resources: ResourceVector, caps: ResourceVector) -> ResourceVector:
    return ResourceVector(**{ch: min(resources.get(ch), caps.get(ch)) for ch in CHANNELS})


def format_missing_message(missing_amounts: Mapping[str, float]) -> str:
    """
    Human-readable deficit summary with amounts rounded up.

    Example:
        >>> format_missing_message({"essence": 4.2, "gold": 3})
        'Need 5 essence and 3 gold more'
    """
    parts = [
        f"{math.ceil(missing_amounts[ch])} {ch}"
        for ch in CHANNELS
        if missing_amounts.get(ch)
    ]
    if not parts:
        return "Insufficient resources"
    if len(parts) == 1:
        return f"Need {parts[0]} more"
    if len(parts) == 2:
        return f"Need {parts[0]} and {parts[1]} more"
    return f"Need {', '.join(parts[:-1])}, and {parts[-1]} more"
