"""
Passive income and offline catch-up.

Both paths run the production engine over the wall-clock time elapsed since
``last_update``, clamp the elapsed window to a maximum, clamp the resulting
resources to freshly computed caps, and feed the XP through the leveling
transition. Caps are always recomputed from the state's buildings, research,
level and stats; the persisted caps are never used as an input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Union

from arise.domain.models.game_state import GameState, ensure_utc
from arise.domain.models.resources import ResourceVector
from arise.engine import resources as algebra
from arise.engine.caps import compute_caps
from arise.engine.constants import BASE_RESOURCE_CAPS
from arise.engine.production import tick_gains
from arise.engine.progression import process_xp_gain

BaseCaps = Union[ResourceVector, Mapping[str, float]]


@dataclass(frozen=True)
class OfflineGains:
    """
    Attributes
    ----------
    time_away_seconds : float
        Actual wall-clock time since the last update
    effective_seconds : float
        Time production was computed for (``<= max window``)
    resource_gains : ResourceVector
        Unclamped production over the effective window
    capped : bool
        True when the elapsed time exceeded the maximum window
    """

    time_away_seconds: float
    effective_seconds: float
    resource_gains: ResourceVector
    xp_gained: float
    capped: bool

    @property
    def time_away_ms(self) -> int:
        return int(self.time_away_seconds * 1000)

    def to_dict(self) -> dict:
        return {
            "time_away_ms": self.time_away_ms,
            "resource_gains": self.resource_gains.to_dict(),
            "xp_gained": self.xp_gained,
            "capped": self.capped,
        }


@dataclass(frozen=True)
class PassiveIncomeResult:
    state: GameState
    gains: OfflineGains
    levels_gained: int


def elapsed_seconds(last_update: datetime, now: datetime) -> float:
    return max(0.0, (ensure_utc(now) - ensure_utc(last_update)).total_seconds())


def calculate_offline_gains(
    state: GameState,
    now: datetime,
    max_window_seconds: float,
) -> OfflineGains:
    """
    Production over ``min(elapsed, max_window_seconds)``.

    Example:
        >>> gains = calculate_offline_gains(state, state.last_update + timedelta(hours=30), 86400)
        >>> gains.capped, gains.effective_seconds
        (True, 86400)
    """
    away = elapsed_seconds(state.last_update, now)
    capped = away > max_window_seconds
    effective = max_window_seconds if capped else away

    gains = tick_gains(
        state.buildings,
        state.research,
        state.resources,
        state.hunter.level,
        effective,
        state.hunter.stats,
    )
    return OfflineGains(
        time_away_seconds=away,
        effective_seconds=effective,
        resource_gains=gains.resource_gains,
        xp_gained=gains.xp_gain,
        capped=capped,
    )


def apply_passive_income(
    state: GameState,
    now: datetime,
    max_window_seconds: float,
    base_caps: BaseCaps = BASE_RESOURCE_CAPS,
) -> PassiveIncomeResult:
    """
    Accrue income since ``last_update`` and return the caught-up state.

    The returned state has resources clamped to the caps in force while the
    income accrued, the hunter after XP, caps recomputed for that hunter,
    and ``last_update = now``. Persisting it is the caller's job.
    """
    caps = compute_caps(
        base_caps,
        state.buildings,
        state.research,
        state.hunter.level,
        state.hunter.stats,
    )
    gains = calculate_offline_gains(state, now, max_window_seconds)

    new_resources = algebra.clamp_to_caps(algebra.add(state.resources, gains.resource_gains), caps)
    xp_result = process_xp_gain(state.hunter, gains.xp_gained)
    if xp_result.leveled_up:
        caps = compute_caps(
            base_caps,
            state.buildings,
            state.research,
            xp_result.hunter.level,
            xp_result.hunter.stats,
        )

    caught_up = state.evolve(
        resources=new_resources,
        resource_caps=caps,
        hunter=xp_result.hunter,
        last_update=now,
    )
    return PassiveIncomeResult(state=caught_up, gains=gains, levels_gained=xp_result.levels_gained)
