"""
Optimistic transaction over a snapshot-capable store.

    async with OptimisticTransaction(store) as tx:
        store.apply_state(locally_computed)
        snapshot = await transport.mutate(...)
        store.apply_snapshot(snapshot, now)

``begin`` captures the store and increments its pending counter. Leaving the
block normally commits; any exception restores the captured snapshot and
propagates. The pending counter is decremented exactly once either way.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Protocol, TypeVar

T = TypeVar("T")


class SnapshotStore(Protocol[T]):
    pending_mutations: int

    def capture(self) -> T: ...

    def restore(self, snapshot: T) -> None: ...


class TransactionStateError(RuntimeError):
    """Raised on begin-twice or commit/rollback without begin."""


class OptimisticTransaction(Generic[T]):
    def __init__(self, store: SnapshotStore[T], label: str = "") -> None:
        self.store = store
        self.label = label
        self._snapshot: Optional[T] = None
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def begin(self) -> T:
        if self._open:
            raise TransactionStateError(f"Transaction {self.label!r} already begun")
        self._snapshot = self.store.capture()
        self._open = True
        self.store.pending_mutations += 1
        return self._snapshot

    def commit(self) -> None:
        self._close()

    def rollback(self, snapshot: Optional[T] = None) -> None:
        target = snapshot if snapshot is not None else self._snapshot
        if target is None:
            raise TransactionStateError(f"Transaction {self.label!r} has no snapshot")
        try:
            self.store.restore(target)
        finally:
            self._close()

    def _close(self) -> None:
        if not self._open:
            raise TransactionStateError(f"Transaction {self.label!r} is not open")
        self._open = False
        self.store.pending_mutations -= 1

    async def __aenter__(self) -> "OptimisticTransaction[T]":
        self.begin()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if not self._open:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
