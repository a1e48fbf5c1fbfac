"""
Read paths for the game state.

``get_state`` is the full sync: it creates the state for a new player,
migrates stored content, applies the offline catch-up, persists the result
and reports what was earned while away. ``get_cached_snapshot`` is the cheap
read-through path that never advances time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from arise.content.loader import ContentRegistry
from arise.core.cache.game_state import GameStateCache, NullGameStateCache
from arise.core.exceptions import ConcurrentModificationError
from arise.core.logging.logger import LogContext, get_logger
from arise.domain.models import GameState, utc_now
from arise.engine.offline import OfflineGains, apply_passive_income
from arise.modules.game.locks import UserLockRegistry
from arise.modules.game.migrations import migrate_state
from arise.modules.game.reconciliation import Clock
from arise.modules.game.repository import GameStateRepository
from arise.modules.shared.base_service import BaseService
from arise.modules.shared.exceptions import NotFoundError

logger = get_logger(__name__)


@dataclass(frozen=True)
class StateView:
    state: GameState
    offline_gains: Optional[OfflineGains] = None
    created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"state": self.state.to_snapshot()}
        if self.offline_gains is not None:
            data["offline_gains"] = self.offline_gains.to_dict()
        return data


class GameStateService(BaseService):
    def __init__(
        self,
        repository: GameStateRepository,
        cache: Optional[GameStateCache] = None,
        locks: Optional[UserLockRegistry] = None,
        clock: Clock = utc_now,
        max_offline_seconds: Optional[int] = None,
        report_min_seconds: Optional[int] = None,
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
        self.report_min_seconds = (
            report_min_seconds
            if report_min_seconds is not None
            else self.get_config("OFFLINE_REPORT_MIN_SECONDS", 1)
        )
        self.max_attempts = (
            max_attempts if max_attempts is not None else self.get_config("COMMIT_MAX_RETRIES", 3)
        )

    async def get_state(self, user_id: str) -> StateView:
        """
        Load (or create), migrate, catch up and persist the user's state.

        Raises:
            ValidationError: Empty user id
            ConcurrentModificationError: Version conflicts exhausted the attempts
        """
        self.validate_identifier(user_id, "user_id")
        async with LogContext(user_id=user_id, operation="get_state", component="state"):
            async with self.locks.hold(user_id):
                attempt = 1
                while True:
                    try:
                        return await self._sync(user_id)
                    except ConcurrentModificationError as exc:
                        if attempt >= self.max_attempts:
                            self.log_error("get_state", exc, attempts=attempt)
                            raise
                        attempt += 1

    async def _sync(self, user_id: str) -> StateView:
        now = self.clock()
        stored = await self.repository.load(user_id)
        if stored is None:
            created = await self.repository.create(
                user_id, ContentRegistry.new_game_state(user_id, now)
            )
            self.log_operation("create_game_state", user_id=user_id)
            await self.cache.invalidate(user_id)
            return StateView(state=created, created=True)

        migrated, changed = migrate_state(stored, now)
        if changed:
            self.log.info("Game state migrated", extra={"version": stored.version})

        passive = apply_passive_income(migrated, now, self.max_offline_seconds)
        saved = await self.repository.save(user_id, passive.state, stored.version)
        await self.cache.invalidate(user_id)

        gains = passive.gains
        report = gains if gains.time_away_seconds > self.report_min_seconds else None
        if report is not None:
            self.log.info(
                "Offline gains applied",
                extra={
                    "time_away_ms": gains.time_away_ms,
                    "capped": gains.capped,
                    "xp_gained": gains.xp_gained,
                    "levels_gained": passive.levels_gained,
                },
            )
        return StateView(state=saved, offline_gains=report)

    async def get_cached_snapshot(self, user_id: str) -> Dict[str, Any]:
        """
        Stored snapshot without passive income, read through the cache.

        A miss loads and fills under the user's lock, so a commit cannot
        invalidate in between and be overwritten by the older snapshot.

        Raises:
            NotFoundError: No game state for the user
        """
        cached = await self.cache.get(user_id)
        if cached is not None:
            return cached

        async with self.locks.hold(user_id):
            state = await self.repository.load(user_id)
            if state is None:
                raise NotFoundError("GameState", user_id)
            snapshot = state.to_snapshot()
            await self.cache.set(user_id, snapshot)
        return snapshot
