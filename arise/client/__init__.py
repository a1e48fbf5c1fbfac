"""
Client optimism layer.

Applies the shared engine locally for responsiveness, tracks in-flight
mutations, and rolls back to a snapshot when the authoritative round trip
fails.
"""

from arise.client.actions import ActionOutcome, GameClient
from arise.client.notifications import LoggingNotifier, Notifier
from arise.client.resync import ResyncLoop
from arise.client.store import ClientStore, StoreSnapshot
from arise.client.transaction import OptimisticTransaction, TransactionStateError
from arise.client.transport import (
    GameTransport,
    InProcessTransport,
    TransportError,
    new_client_tx_id,
)

__all__ = [
    "ActionOutcome",
    "ClientStore",
    "GameClient",
    "GameTransport",
    "InProcessTransport",
    "LoggingNotifier",
    "Notifier",
    "OptimisticTransaction",
    "ResyncLoop",
    "StoreSnapshot",
    "TransactionStateError",
    "TransportError",
    "new_client_tx_id",
]
