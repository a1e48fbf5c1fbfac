"""
Periodic background resync of the client store.

Each cycle pulls the authoritative state through ``GameClient.sync``, which
skips the pull while optimistic mutations are in flight.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from arise.client.actions import GameClient
from arise.client.transport import TransportError
from arise.core.config.config import Config
from arise.core.logging.logger import get_logger

logger = get_logger(__name__)


class ResyncLoop:
    def __init__(self, client: GameClient, interval_seconds: Optional[float] = None) -> None:
        self.client = client
        self.interval = (
            interval_seconds
            if interval_seconds is not None
            else Config.CLIENT_RESYNC_INTERVAL_SECONDS
        )
        self._task: Optional[asyncio.Task] = None
        self._is_running = False
        self.completed_syncs = 0
        self.skipped_syncs = 0

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def run_once(self) -> bool:
        try:
            replaced = await self.client.sync()
        except TransportError as exc:
            logger.warning("Resync failed", extra={"error_code": exc.error_code})
            return False
        if replaced:
            self.completed_syncs += 1
        else:
            self.skipped_syncs += 1
        return replaced

    async def start(self) -> None:
        if self._is_running:
            logger.warning("ResyncLoop already running")
            return
        self._is_running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("ResyncLoop started", extra={"interval_seconds": self.interval})

    async def stop(self) -> None:
        if not self._is_running:
            return
        self._is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("ResyncLoop stopped")

    async def _loop(self) -> None:
        while self._is_running:
            await asyncio.sleep(self.interval)
            await self.run_once()
