"""
Client transport port.

Every mutating call carries a fresh ``client_tx_id`` and yields the full
authoritative snapshot. Failures of any kind, game-rule rejections and
infrastructure errors alike, surface as ``TransportError`` so the client
treats them identically: roll back and notify.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Protocol

from arise.core.exceptions import AriseInfrastructureException
from arise.core.logging.logger import get_logger
from arise.modules.game.mutations import Mutation
from arise.modules.game.service import GameService

logger = get_logger(__name__)


def new_client_tx_id() -> str:
    return uuid.uuid4().hex


class TransportError(Exception):
    """
    A failed round trip.

    Attributes:
        state: Authoritative snapshot returned with the failure, when any
        missing: Per-channel deficits for unaffordable actions
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        state: Optional[Dict[str, Any]] = None,
        missing: Optional[Dict[str, float]] = None,
        http_status: int = 500,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.state = state
        self.missing = missing
        self.http_status = http_status
        super().__init__(message)


class GameTransport(Protocol):
    async def mutate(
        self, user_id: str, client_tx_id: str, mutation: Mutation
    ) -> Dict[str, Any]: ...

    async def fetch_state(self, user_id: str) -> Dict[str, Any]: ...


class InProcessTransport:
    """Calls ``GameService`` directly; used by tests and local tooling."""

    def __init__(self, service: GameService) -> None:
        self.service = service

    async def mutate(
        self, user_id: str, client_tx_id: str, mutation: Mutation
    ) -> Dict[str, Any]:
        try:
            result = await self.service.execute(user_id, client_tx_id, mutation)
        except AriseInfrastructureException as exc:
            logger.warning(
                "Mutation failed in transport",
                extra={"error_code": exc.error_code, "tx_type": mutation.type},
            )
            raise TransportError(exc.message, exc.error_code, http_status=exc.http_status) from exc

        if not result.success:
            raise TransportError(
                result.error or "Request rejected",
                result.error_code,
                state=result.state,
                missing=result.missing,
                http_status=result.http_status,
            )
        if result.state is None:
            raise TransportError("Server returned no state", "EMPTY_RESPONSE")
        return result.state

    async def fetch_state(self, user_id: str) -> Dict[str, Any]:
        try:
            view = await self.service.get_state(user_id)
        except AriseInfrastructureException as exc:
            raise TransportError(exc.message, exc.error_code, http_status=exc.http_status) from exc
        return view.state.to_snapshot()
