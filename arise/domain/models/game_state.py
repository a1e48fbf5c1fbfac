"""
GameState aggregate root.

Purpose
-------
One GameState exists per player. It bundles the resource vector, the cached
caps, the hunter, the building and research maps, the peripheral collections
(dungeons, active dungeons, allies, shadows, artifacts) and the ``last_update``
timestamp from which passive income accrues.

Responsibilities
----------------
- Hold a consistent, immutable view of a player's economy
- Convert to and from the full-state snapshot echoed to clients and stored
  in the transaction log

Non-Responsibilities
--------------------
- State transitions (see arise.engine and arise.modules.game)
- Persistence (see arise.modules.game.repository)

Usage Example
-------------
>>> snapshot = state.to_snapshot()
>>> GameState.from_snapshot(snapshot) == state
True
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from arise.domain.models.building import Building
from arise.domain.models.hunter import Hunter
from arise.domain.models.research import Research
from arise.domain.models.resources import ResourceVector

SNAPSHOT_SCHEMA_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class GameState:
    """
    Attributes
    ----------
    version : int
        Row version, incremented on every persisted write
    resource_caps : ResourceVector
        Last computed caps; a cache, never an input to computation
    last_update : datetime
        As-of time for passive-income accrual (UTC)
    """

    user_id: str
    resources: ResourceVector
    resource_caps: ResourceVector
    hunter: Hunter
    buildings: Dict[str, Building]
    research: Dict[str, Research]
    last_update: datetime
    version: int = 1
    dungeons: List[Dict[str, Any]] = field(default_factory=list)
    active_dungeons: List[Dict[str, Any]] = field(default_factory=list)
    allies: List[Dict[str, Any]] = field(default_factory=list)
    shadows: List[Dict[str, Any]] = field(default_factory=list)
    artifacts: Dict[str, Any] = field(default_factory=dict)

    def evolve(self, **changes: Any) -> "GameState":
        return replace(self, **changes)

    def to_snapshot(self) -> Dict[str, Any]:
        """Full-state payload; identical shape for success and rejection."""
        return {
            "schema": SNAPSHOT_SCHEMA_VERSION,
            "user_id": self.user_id,
            "version": self.version,
            "resources": self.resources.to_dict(),
            "resource_caps": self.resource_caps.to_dict(),
            "hunter": self.hunter.to_dict(),
            "buildings": {bid: b.to_dict() for bid, b in self.buildings.items()},
            "research": {rid: r.to_dict() for rid, r in self.research.items()},
            "dungeons": [dict(d) for d in self.dungeons],
            "active_dungeons": [dict(d) for d in self.active_dungeons],
            "allies": [dict(a) for a in self.allies],
            "shadows": [dict(s) for s in self.shadows],
            "artifacts": dict(self.artifacts),
            "last_update": ensure_utc(self.last_update).isoformat(),
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "GameState":
        return cls(
            user_id=data["user_id"],
            version=int(data.get("version", 1)),
            resources=ResourceVector.from_dict(data.get("resources")),
            resource_caps=ResourceVector.from_dict(data.get("resource_caps")),
            hunter=Hunter.from_dict(data.get("hunter") or {}),
            buildings={
                bid: Building.from_dict(b) for bid, b in (data.get("buildings") or {}).items()
            },
            research={
                rid: Research.from_dict(r) for rid, r in (data.get("research") or {}).items()
            },
            dungeons=list(data.get("dungeons") or []),
            active_dungeons=list(data.get("active_dungeons") or []),
            allies=list(data.get("allies") or []),
            shadows=list(data.get("shadows") or []),
            artifacts=dict(data.get("artifacts") or {}),
            last_update=ensure_utc(datetime.fromisoformat(data["last_update"])),
        )
