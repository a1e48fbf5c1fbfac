"""
Unit tests for the client optimism layer.

Tests local validation, optimistic apply, rollback on failure, wholesale
snapshot replacement and the resync guard.
"""

import asyncio
from datetime import timedelta

import pytest

from arise.client.actions import GameClient
from arise.client.resync import ResyncLoop
from arise.client.store import ClientStore
from arise.client.transaction import OptimisticTransaction, TransactionStateError
from arise.client.transport import InProcessTransport, TransportError
from arise.domain.models.game_state import to_epoch_ms
from arise.modules.game.mutations import GatherResource
from arise.modules.game.reconciliation import TransactionResult
from tests.factories import START, USER_ID, make_state


def _store(**kwargs) -> ClientStore:
    return ClientStore.from_snapshot(make_state(**kwargs).to_snapshot(), synced_at=START)


@pytest.fixture
def notifier(mocker):
    return mocker.Mock()


@pytest.mark.unit
@pytest.mark.client
class TestOptimisticTransaction:
    def test_commit_keeps_changes(self):
        store = _store(resources={"essence": 5})
        tx = OptimisticTransaction(store)

        tx.begin()
        assert store.pending_mutations == 1
        store.apply_state(make_state(resources={"essence": 50}))
        tx.commit()

        assert store.pending_mutations == 0
        assert store.resources.essence == 50

    def test_rollback_restores_every_slice(self):
        store = _store(resources={"essence": 5})
        tx = OptimisticTransaction(store)

        tx.begin()
        store.apply_state(
            make_state(resources={"essence": 50}, building_counts={"essenceExtractor": 3})
        )
        tx.rollback()

        assert store.resources.essence == 5
        assert store.buildings["essenceExtractor"].count == 0
        assert store.pending_mutations == 0

    def test_rollback_to_explicit_snapshot(self):
        store = _store(resources={"essence": 5})
        earlier = store.capture()
        store.apply_state(make_state(resources={"essence": 7}))
        tx = OptimisticTransaction(store)

        tx.begin()
        tx.rollback(earlier)

        assert store.resources.essence == 5

    def test_begin_twice_is_an_error(self):
        tx = OptimisticTransaction(_store())
        tx.begin()

        with pytest.raises(TransactionStateError):
            tx.begin()

    def test_commit_without_begin_is_an_error(self):
        with pytest.raises(TransactionStateError):
            OptimisticTransaction(_store()).commit()

    @pytest.mark.asyncio
    async def test_context_manager_rolls_back_and_propagates(self):
        store = _store(resources={"essence": 5})

        with pytest.raises(RuntimeError):
            async with OptimisticTransaction(store):
                store.apply_state(make_state(resources={"essence": 99}))
                raise RuntimeError("network down")

        assert store.resources.essence == 5
        assert store.pending_mutations == 0


@pytest.mark.unit
@pytest.mark.client
@pytest.mark.asyncio
class TestGameClientAgainstServer:
    async def test_successful_action_adopts_server_snapshot(self, game_service, seed_state, clock, notifier):
        await seed_state()
        client = await GameClient.connect(
            USER_ID, InProcessTransport(game_service), notifier=notifier, clock=clock
        )

        outcome = await client.gather_resource("essence")

        assert outcome.success is True
        assert client.store.resources.essence == pytest.approx(1.1)
        assert client.store.version == 3
        assert client.store.pending_mutations == 0
        notifier.error.assert_not_called()

    async def test_locally_invalid_action_is_not_sent(self, game_service, repository, seed_state, clock, notifier):
        await seed_state()
        client = await GameClient.connect(
            USER_ID, InProcessTransport(game_service), notifier=notifier, clock=clock
        )

        outcome = await client.purchase_building("essenceExtractor")

        assert outcome.sent is False
        assert outcome.missing == {"essence": 10}
        notifier.error.assert_called_once_with("Need 10 essence more")
        assert repository.transaction_count() == 0

    async def test_server_rejection_rolls_back_then_resync_corrects(self, game_service, seed_state, clock, notifier):
        # Arrange: the client believes it holds 10 essence, the server has none
        await seed_state()
        store = _store(resources={"essence": 10})
        client = GameClient(store, InProcessTransport(game_service), notifier=notifier, clock=clock)

        # Act
        outcome = await client.purchase_building("essenceExtractor")

        # Assert
        assert outcome.success is False
        assert outcome.sent is True
        assert outcome.missing == {"essence": 10}
        assert store.resources.essence == 10
        assert store.buildings["essenceExtractor"].count == 0
        notifier.error.assert_called_once()

        assert await client.sync() is True
        assert store.resources.essence == 0

    async def test_tick_advances_local_copy(self, notifier, mocker):
        store = _store(building_counts={"essenceExtractor": 1})
        client = GameClient(store, mocker.AsyncMock(), notifier=notifier)

        gains = client.tick(START + timedelta(seconds=100))

        assert gains.effective_seconds == 100
        assert store.resources.essence == pytest.approx(10.5)
        assert store.last_update == START + timedelta(seconds=100)


@pytest.mark.unit
@pytest.mark.client
@pytest.mark.asyncio
class TestGameClientTransportFailures:
    async def test_failure_restores_snapshot_and_notifies(self, clock, notifier, mocker):
        store = _store(resources={"essence": 5})
        transport = mocker.AsyncMock()
        transport.mutate.side_effect = TransportError("Server unavailable", "DATABASE_ERROR")
        client = GameClient(store, transport, notifier=notifier, clock=clock)

        outcome = await client.gather_resource("essence")

        assert outcome.success is False
        assert outcome.error == "Server unavailable"
        assert store.resources.essence == 5
        assert store.pending_mutations == 0
        notifier.error.assert_called_once_with("Server unavailable")

    async def test_optimistic_state_visible_while_in_flight(self, clock, notifier, mocker):
        store = _store(resources={"essence": 5})
        authoritative = make_state(resources={"essence": 42}).evolve(version=9).to_snapshot()
        seen = []

        async def mutate(user_id, client_tx_id, mutation):
            seen.append((store.pending_mutations, store.resources.essence))
            return authoritative

        transport = mocker.AsyncMock()
        transport.mutate.side_effect = mutate
        client = GameClient(store, transport, notifier=notifier, clock=clock)

        await client.gather_resource("essence")

        assert seen[0][0] == 1
        assert seen[0][1] == pytest.approx(6.1)
        assert store.resources.essence == 42
        assert store.version == 9
        assert store.pending_mutations == 0

    async def test_each_request_gets_a_fresh_tx_id(self, clock, notifier, mocker):
        store = _store()
        transport = mocker.AsyncMock()
        transport.mutate.return_value = make_state().to_snapshot()
        client = GameClient(store, transport, notifier=notifier, clock=clock)

        await client.gather_resource("gold")
        await client.gather_resource("gold")

        tx_ids = [call.args[1] for call in transport.mutate.await_args_list]
        assert len(set(tx_ids)) == 2


@pytest.mark.unit
@pytest.mark.client
@pytest.mark.asyncio
class TestResync:
    async def test_sync_skipped_while_mutations_pending(self, notifier, mocker):
        store = _store()
        store.pending_mutations = 1
        transport = mocker.AsyncMock()
        client = GameClient(store, transport, notifier=notifier)

        assert await client.sync() is False
        transport.fetch_state.assert_not_awaited()

    async def test_run_once_counts_skips_and_syncs(self, notifier, mocker):
        store = _store()
        transport = mocker.AsyncMock()
        transport.fetch_state.return_value = make_state(resources={"gold": 3}).to_snapshot()
        loop = ResyncLoop(GameClient(store, transport, notifier=notifier), interval_seconds=60)

        store.pending_mutations = 1
        assert await loop.run_once() is False
        store.pending_mutations = 0
        assert await loop.run_once() is True

        assert loop.skipped_syncs == 1
        assert loop.completed_syncs == 1
        assert store.resources.gold == 3

    async def test_run_once_survives_transport_errors(self, notifier, mocker):
        transport = mocker.AsyncMock()
        transport.fetch_state.side_effect = TransportError("timeout")
        loop = ResyncLoop(GameClient(_store(), transport, notifier=notifier), interval_seconds=60)

        assert await loop.run_once() is False

    async def test_background_loop_starts_and_stops(self, notifier, mocker):
        transport = mocker.AsyncMock()
        transport.fetch_state.return_value = make_state().to_snapshot()
        loop = ResyncLoop(GameClient(_store(), transport, notifier=notifier), interval_seconds=0.01)

        await loop.start()
        await asyncio.sleep(0.1)
        await loop.stop()

        assert loop.is_running is False
        assert loop.completed_syncs >= 1


@pytest.mark.unit
@pytest.mark.client
@pytest.mark.asyncio
class TestDungeonActions:
    async def test_cleared_dungeon_notifies_success(self, game_service, repository, clock, notifier):
        # Arrange: a run that finished at the current time
        ended = to_epoch_ms(START)
        run = {
            "id": "run-1",
            "dungeon_id": "instance-dungeon-1",
            "start_time": ended - 30_000,
            "end_time": ended,
            "party_ids": [],
        }
        await repository.create(USER_ID, make_state().evolve(active_dungeons=[run]))
        client = await GameClient.connect(
            USER_ID, InProcessTransport(game_service), notifier=notifier, clock=clock
        )

        # Act
        outcome = await client.complete_dungeon("run-1")

        # Assert
        assert outcome.success is True
        assert client.store.to_game_state().active_dungeons == []
        notifier.success.assert_called_once_with("Dungeon cleared")
        notifier.error.assert_not_called()

    async def test_unfinished_dungeon_is_not_sent(self, clock, notifier, mocker):
        started = to_epoch_ms(START)
        run = {
            "id": "run-1",
            "dungeon_id": "instance-dungeon-1",
            "start_time": started,
            "end_time": started + 30_000,
            "party_ids": [],
        }
        store = ClientStore.from_snapshot(
            make_state().evolve(active_dungeons=[run]).to_snapshot(), synced_at=START
        )
        transport = mocker.AsyncMock()
        client = GameClient(store, transport, notifier=notifier, clock=clock)

        outcome = await client.complete_dungeon("run-1")

        assert outcome.sent is False
        transport.mutate.assert_not_awaited()
        notifier.success.assert_not_called()
        notifier.error.assert_called_once_with("Dungeon not complete yet")


@pytest.mark.unit
@pytest.mark.client
@pytest.mark.asyncio
class TestInProcessTransport:
    async def test_success_without_state_is_a_transport_error(self, mocker):
        # Arrange
        service = mocker.AsyncMock()
        service.execute.return_value = TransactionResult(success=True, state=None)
        transport = InProcessTransport(service)

        # Act
        with pytest.raises(TransportError) as exc_info:
            await transport.mutate(USER_ID, "tx-1", GatherResource("gold"))

        # Assert
        assert exc_info.value.error_code == "EMPTY_RESPONSE"
