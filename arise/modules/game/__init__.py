"""
Game module: the authoritative economy operations.

- mutations: request validation and pure state transitions per action
- reconciliation: the idempotent, version-checked transaction envelope
- state_service: full sync with offline catch-up, cached snapshot reads
- repository: persistence port with SQL and in-memory implementations
- service: GameService facade
"""

from arise.modules.game.mutations import (
    AllocateStat,
    CancelDungeon,
    CompleteDungeon,
    ExtractShadow,
    GatherResource,
    Mutation,
    PurchaseBuilding,
    PurchaseBuildingBulk,
    PurchaseResearch,
    RecruitAlly,
    ResetGame,
    StartDungeon,
)
from arise.modules.game.reconciliation import (
    ReconciliationService,
    TransactionPhase,
    TransactionResult,
)
from arise.modules.game.repository import (
    GameStateRepository,
    InMemoryGameStateRepository,
    SqlGameStateRepository,
    TransactionRecord,
)
from arise.modules.game.service import GameService
from arise.modules.game.state_service import GameStateService, StateView

__all__ = [
    "AllocateStat",
    "CancelDungeon",
    "CompleteDungeon",
    "ExtractShadow",
    "GameService",
    "GameStateRepository",
    "GameStateService",
    "GatherResource",
    "InMemoryGameStateRepository",
    "Mutation",
    "PurchaseBuilding",
    "PurchaseBuildingBulk",
    "PurchaseResearch",
    "ReconciliationService",
    "RecruitAlly",
    "ResetGame",
    "SqlGameStateRepository",
    "StartDungeon",
    "StateView",
    "TransactionPhase",
    "TransactionRecord",
    "TransactionResult",
]
