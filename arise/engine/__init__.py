"""
Arise calculation engine.

Pure functions shared verbatim by the authoritative server path and the
client's optimistic mirror. Nothing in this package performs I/O, reads
configuration, or logs; every input is passed in explicitly.

Modules
-------
- resources: channel-wise algebra over resource vectors
- costs: unit, bulk and max-affordable building costs
- caps: dynamic resource caps
- production: per-tick resource and XP gains
- progression: leveling curve, ranks, HP/mana, stat allocation
- gathering: manual gather amounts and XP
- offline: passive income and offline catch-up
"""

from arise.engine.caps import compute_caps
from arise.engine.costs import bulk_cost, bulk_cost_closed_form, cost_at, max_affordable
from arise.engine.offline import (
    OfflineGains,
    PassiveIncomeResult,
    apply_passive_income,
    calculate_offline_gains,
)
from arise.engine.production import TickGains, tick_gains
from arise.engine.progression import (
    XpGainResult,
    allocate_stat,
    new_hunter,
    process_xp_gain,
    rank_from_level,
    xp_to_next_level,
)

__all__ = [
    "OfflineGains",
    "PassiveIncomeResult",
    "TickGains",
    "XpGainResult",
    "allocate_stat",
    "apply_passive_income",
    "bulk_cost",
    "bulk_cost_closed_form",
    "calculate_offline_gains",
    "compute_caps",
    "cost_at",
    "max_affordable",
    "new_hunter",
    "process_xp_gain",
    "rank_from_level",
    "tick_gains",
    "xp_to_next_level",
]
