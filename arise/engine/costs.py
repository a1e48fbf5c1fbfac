"""
Building cost math.

Unit cost grows geometrically with the owned count and is floored per
channel. Bulk purchases are priced by summing unit costs one at a time; that
iterative sum is the authoritative price. ``bulk_cost_closed_form`` exists
for quick estimates and is checked against the iterative sum in tests.
"""

from __future__ import annotations

import math

from arise.domain.models.building import Building
from arise.domain.models.resources import CHANNELS, ResourceVector
from arise.engine import resources
from arise.engine.constants import MAX_AFFORDABLE_SEARCH_LIMIT


def cost_at(building: Building) -> ResourceVector:
    """
    Price of the next unit at the building's current count.

    Args:
        building: Building whose ``count`` units are already owned

    Returns:
        ``floor(base_cost[ch] * cost_multiplier ** count)`` per channel

    Example:
        >>> cost_at(extractor.with_count(2)).essence  # base 10, multiplier 1.15
        13
    """
    growth = building.cost_multiplier**building.count
    return ResourceVector(
        **{ch: math.floor(building.base_cost.get(ch) * growth) for ch in CHANNELS}
    )


def bulk_cost(building: Building, quantity: int) -> ResourceVector:
    """
    Total price of ``quantity`` more units, summing floored unit costs.

    Args:
        building: Building at its current count
        quantity: Units to buy (0 yields a zero vector)

    Returns:
        Sum over ``count .. count + quantity - 1`` of ``cost_at``
    """
    total = resources.zero()
    current = building
    for _ in range(quantity):
        total = resources.add(total, cost_at(current))
        current = current.with_count(current.count + 1)
    return total


def bulk_cost_closed_form(building: Building, quantity: int) -> ResourceVector:
    """
    Geometric-series estimate of ``bulk_cost``, floored once per channel.

    Can exceed the iterative sum by a few units because the iterative form
    floors every unit; never used to charge a player.
    """
    multiplier = building.cost_multiplier
    first = multiplier**building.count
    series = (1 - multiplier**quantity) / (1 - multiplier)
    return ResourceVector(
        **{
            ch: math.floor(building.base_cost.get(ch) * first * series)
            if building.base_cost.get(ch) > 0
            else 0
            for ch in CHANNELS
        }
    )


def max_affordable(building: Building, available: ResourceVector) -> int:
    """
    Largest quantity whose bulk cost is affordable.

    Binary search over ``0 .. MAX_AFFORDABLE_SEARCH_LIMIT``.

    Example:
        >>> max_affordable(extractor, ResourceVector(essence=20))
        1
    """
    best = 0
    low, high = 0, MAX_AFFORDABLE_SEARCH_LIMIT
    while low <= high:
        mid = (low + high) // 2
        if resources.can_afford(available, bulk_cost(building, mid)):
            best = mid
            low = mid + 1
        else:
            high = mid - 1
    return best
