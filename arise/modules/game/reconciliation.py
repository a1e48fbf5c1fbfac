"""
Server-authoritative transaction envelope.

Purpose
-------
Run every state-changing operation through the same fixed sequence so the
server recomputes everything from first principles and never trusts a
client-computed amount:

    RECEIVED -> IDEMPOTENCY_CHECKED -> LOADED -> PASSIVE_APPLIED
             -> VALIDATED -> COMMITTED | REJECTED -> RESPONDED

Responsibilities
----------------
- Reject malformed requests before touching state
- Replay the stored result when ``(user_id, client_tx_id)`` was already
  committed
- Apply passive income against freshly computed caps before validating
- Persist the mutated state and the log row atomically, guarded by the row
  version; replay the whole envelope on a version conflict
- Serialize mutations per user within the process
- Invalidate the user's cached snapshot after every commit
- Return the same full-state payload on success and on rejection

Non-Responsibilities
--------------------
- Game rules of individual actions (see mutations)
- Transport or HTTP concerns

Architecture Notes
------------------
- Rejections are not persisted and not logged as transactions; the returned
  state is the caught-up view with ``last_update = now``. Resubmitting a
  rejected ``client_tx_id`` re-evaluates it.
- Infrastructure failures propagate as exceptions. Retrying them is the
  caller's job, by resubmitting the same ``client_tx_id``.
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from arise.core.cache.game_state import GameStateCache, NullGameStateCache
from arise.core.exceptions import ConcurrentModificationError
from arise.core.logging.logger import LogContext, get_logger
from arise.domain.models import GameState, utc_now
from arise.engine.caps import compute_caps
from arise.engine.constants import BASE_RESOURCE_CAPS
from arise.engine.offline import apply_passive_income
from arise.modules.game.locks import UserLockRegistry
from arise.modules.game.mutations import Mutation
from arise.modules.game.repository import GameStateRepository
from arise.modules.shared.base_service import BaseService
from arise.modules.shared.exceptions import (
    AriseDomainException,
    InsufficientResourcesError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]


class TransactionPhase(str, Enum):
    RECEIVED = "received"
    IDEMPOTENCY_CHECKED = "idempotency_checked"
    LOADED = "loaded"
    PASSIVE_APPLIED = "passive_applied"
    VALIDATED = "validated"
    COMMITTED = "committed"
    REJECTED = "rejected"
    RESPONDED = "responded"


@dataclass(frozen=True)
class TransactionResult:
    """
    Envelope response.

    ``state`` is the full snapshot in both outcomes; it is None only when no
    game state exists for the user.
    """

    success: bool
    state: Optional[Dict[str, Any]]
    error: Optional[str] = None
    error_code: Optional[str] = None
    missing: Optional[Dict[str, float]] = None
    replayed: bool = False
    http_status: int = 200
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def rejected(
        cls, exc: AriseDomainException, state: Optional[Dict[str, Any]]
    ) -> "TransactionResult":
        return cls(
            success=False,
            state=state,
            error=exc.message,
            error_code=exc.error_code,
            missing=exc.missing if isinstance(exc, InsufficientResourcesError) else None,
            http_status=exc.http_status,
            details=dict(exc.details),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "state": self.state}
        if not self.success:
            data["error"] = self.error
            data["error_code"] = self.error_code
            if self.missing is not None:
                data["missing"] = self.missing
        return data


class ReconciliationService(BaseService):
    """
    Executes mutations inside the reconciliation envelope.

    Args:
        repository: Game-state persistence port
        cache: Snapshot cache to invalidate after commits
        locks: Per-user lock registry (shared with the state service)
        clock: Source of "now" (UTC)
        max_offline_seconds: Passive-income window; ``Config.MAX_OFFLINE_SECONDS``
        max_attempts: Envelope attempts on version conflict; ``Config.COMMIT_MAX_RETRIES``
    """

    def __init__(
        self,
        repository: GameStateRepository,
        cache: Optional[GameStateCache] = None,
        locks: Optional[UserLockRegistry] = None,
        clock: Clock = utc_now,
        max_offline_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        super().__init__(logger=logger)
        self.repository = repository
        self.cache = cache if cache is not None else NullGameStateCache()
        self.locks = locks if locks is not None else UserLockRegistry()
        self.clock = clock
        self.max_offline_seconds = (
            max_offline_seconds
            if max_offline_seconds is not None
            else self.get_config("MAX_OFFLINE_SECONDS", 86400)
        )
        self.max_attempts = (
            max_attempts if max_attempts is not None else self.get_config("COMMIT_MAX_RETRIES", 3)
        )

    def _phase(self, phase: TransactionPhase, **context: Any) -> None:
        self.log.debug(f"Transaction {phase.value}", extra={"phase": phase.value, **context})

    async def _stored_snapshot(self, user_id: str) -> Optional[Dict[str, Any]]:
        state = await self.repository.load(user_id)
        return state.to_snapshot() if state is not None else None

    async def execute(
        self, user_id: str, client_tx_id: str, mutation: Mutation
    ) -> TransactionResult:
        """
        Run ``mutation`` for ``user_id`` under the idempotency key
        ``client_tx_id``.

        Returns:
            TransactionResult for commits, replays and game-rule rejections

        Raises:
            ConcurrentModificationError: Version conflicts exhausted the attempts
            TransientInfrastructureError: Persistence unavailable
        """
        async with LogContext(
            user_id=user_id,
            client_tx_id=client_tx_id,
            operation=mutation.type,
            component="reconciliation",
        ):
            self._phase(TransactionPhase.RECEIVED, payload=mutation.payload())
            try:
                self.validate_identifier(user_id, "user_id")
                self.validate_identifier(client_tx_id, "client_tx_id")
                mutation.validate_request()
            except ValidationError as exc:
                self._phase(TransactionPhase.REJECTED, error_code=exc.error_code)
                snapshot = await self._stored_snapshot(user_id) if user_id else None
                return TransactionResult.rejected(exc, snapshot)

            async with AsyncExitStack() as stack:
                await stack.enter_async_context(self.locks.hold(user_id))
                attempt = 1
                while True:
                    try:
                        result = await self._attempt(user_id, client_tx_id, mutation)
                        self._phase(TransactionPhase.RESPONDED, success=result.success)
                        return result
                    except ConcurrentModificationError as exc:
                        if attempt >= self.max_attempts:
                            self.log_error(mutation.type, exc, attempts=attempt)
                            raise
                        self.log.warning(
                            "Version conflict; replaying transaction",
                            extra={"attempt": attempt, "expected_version": exc.expected_version},
                        )
                        attempt += 1

    async def _attempt(
        self, user_id: str, client_tx_id: str, mutation: Mutation
    ) -> TransactionResult:
        existing = await self.repository.find_transaction(user_id, client_tx_id)
        if existing is not None:
            self.log.info("Idempotent replay", extra={"tx_type": existing.type})
            return TransactionResult(success=True, state=existing.state_after, replayed=True)
        self._phase(TransactionPhase.IDEMPOTENCY_CHECKED)

        state = await self.repository.load(user_id)
        if state is None:
            exc = NotFoundError("GameState", user_id)
            self._phase(TransactionPhase.REJECTED, error_code=exc.error_code)
            return TransactionResult.rejected(exc, None)
        expected_version = state.version
        self._phase(TransactionPhase.LOADED, version=expected_version)

        now = self.clock()
        passive = apply_passive_income(state, now, self.max_offline_seconds)
        caught_up = passive.state
        self._phase(
            TransactionPhase.PASSIVE_APPLIED,
            elapsed_seconds=passive.gains.time_away_seconds,
            capped=passive.gains.capped,
            resources_before=state.resources.to_dict(),
            resources_after=caught_up.resources.to_dict(),
        )

        try:
            mutated = mutation.apply(caught_up, now)
        except (InsufficientResourcesError, PreconditionError) as exc:
            self._phase(TransactionPhase.REJECTED, error_code=exc.error_code, reason=exc.message)
            return TransactionResult.rejected(exc, caught_up.to_snapshot())
        self._phase(TransactionPhase.VALIDATED)

        mutated = self._finalize(mutated, now)
        saved, record = await self.repository.save_with_transaction(
            user_id,
            mutated,
            expected_version,
            client_tx_id,
            mutation.type,
            mutation.payload(),
        )
        self._phase(TransactionPhase.COMMITTED, version=saved.version)
        self.log_operation(mutation.type, user_id=user_id, version=saved.version)

        await self.cache.invalidate(user_id)
        return TransactionResult(success=True, state=record.state_after)

    @staticmethod
    def _finalize(state: GameState, now: datetime) -> GameState:
        caps = compute_caps(
            BASE_RESOURCE_CAPS,
            state.buildings,
            state.research,
            state.hunter.level,
            state.hunter.stats,
        )
        return state.evolve(resource_caps=caps, last_update=now)
