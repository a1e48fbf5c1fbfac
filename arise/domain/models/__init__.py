"""
Domain models for the Arise economy.

Immutable value objects; every state transition returns a new instance.
"""

from arise.domain.models.base import DomainValidationError
from arise.domain.models.building import Building
from arise.domain.models.game_state import GameState, utc_now
from arise.domain.models.hunter import STAT_NAMES, Hunter, HunterStats
from arise.domain.models.research import Research, ResearchEffects
from arise.domain.models.resources import CHANNELS, ResourceCaps, ResourceVector

__all__ = [
    "CHANNELS",
    "STAT_NAMES",
    "Building",
    "DomainValidationError",
    "GameState",
    "Hunter",
    "HunterStats",
    "Research",
    "ResearchEffects",
    "ResourceCaps",
    "ResourceVector",
    "utc_now",
]
