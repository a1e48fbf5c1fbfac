"""
Integration tests for SqlGameStateRepository and the full service flow
over SQLite.
"""

import pytest

from arise.core.cache.game_state import NullGameStateCache
from arise.core.exceptions import ConcurrentModificationError
from arise.domain.models import DomainValidationError, ResourceVector
from arise.modules.game.repository import SqlGameStateRepository, TransactionRecord
from arise.modules.game.service import GameService
from tests.factories import START, USER_ID, FakeClock, make_state


@pytest.mark.integration
@pytest.mark.database
@pytest.mark.asyncio
class TestSqlRepository:
    async def test_create_and_load_round_trip(self, sql_repository):
        state = make_state(resources={"gold": 12.5}, building_counts={"essenceExtractor": 3})

        await sql_repository.create(USER_ID, state)
        loaded = await sql_repository.load(USER_ID)

        assert loaded.version == 1
        assert loaded.resources.gold == 12.5
        assert loaded.buildings["essenceExtractor"].count == 3
        assert loaded.hunter == state.hunter
        assert loaded.last_update == START
        assert loaded.to_snapshot() == state.to_snapshot()

    async def test_load_missing_returns_none(self, sql_repository):
        assert await sql_repository.load("ghost") is None

    async def test_duplicate_create_conflicts(self, sql_repository):
        await sql_repository.create(USER_ID, make_state())

        with pytest.raises(ConcurrentModificationError):
            await sql_repository.create(USER_ID, make_state())

    async def test_save_checks_and_increments_version(self, sql_repository):
        created = await sql_repository.create(USER_ID, make_state())

        saved = await sql_repository.save(
            USER_ID, created.evolve(resources=ResourceVector(essence=7)), 1
        )

        assert saved.version == 2
        with pytest.raises(ConcurrentModificationError) as exc_info:
            await sql_repository.save(USER_ID, saved, 1)
        assert exc_info.value.actual_version == 2
        assert (await sql_repository.load(USER_ID)).resources.essence == 7

    async def test_negative_resources_are_never_persisted(self, sql_repository):
        created = await sql_repository.create(USER_ID, make_state())

        with pytest.raises(DomainValidationError):
            await sql_repository.save(
                USER_ID, created.evolve(resources=ResourceVector(essence=-1)), 1
            )

    async def test_save_with_transaction_is_atomic(self, sql_repository):
        created = await sql_repository.create(USER_ID, make_state())
        saved, record = await sql_repository.save_with_transaction(
            USER_ID, created, 1, "tx-1", "gather_resource", {"resource": "gold"}
        )

        with pytest.raises(ConcurrentModificationError):
            await sql_repository.save_with_transaction(
                USER_ID, saved, 2, "tx-1", "gather_resource", {"resource": "gold"}
            )

        found = await sql_repository.find_transaction(USER_ID, "tx-1")
        assert found.state_after == record.state_after
        assert found.payload == {"resource": "gold"}
        # The failed insert rolled back the version bump as well
        assert (await sql_repository.load(USER_ID)).version == 2

    async def test_append_and_find_transaction(self, sql_repository):
        record = TransactionRecord(
            user_id=USER_ID,
            client_tx_id="tx-9",
            type="allocate_stat",
            payload={"stat": "sense"},
            state_after={"user_id": USER_ID},
        )

        await sql_repository.append_transaction(record)

        assert (await sql_repository.find_transaction(USER_ID, "tx-9")).type == "allocate_stat"
        assert await sql_repository.find_transaction(USER_ID, "tx-10") is None
        with pytest.raises(ConcurrentModificationError):
            await sql_repository.append_transaction(record)


@pytest.mark.integration
@pytest.mark.database
@pytest.mark.asyncio
class TestServiceOverSql:
    async def test_purchase_flow_with_replay(self, sql_repository):
        # Arrange
        clock = FakeClock()
        service = GameService(sql_repository, clock=clock)
        await sql_repository.create(
            USER_ID,
            make_state(resources={"essence": 5}, building_counts={"essenceExtractor": 1}),
        )
        clock.advance(100)

        # Act
        first = await service.purchase_building(USER_ID, "tx-1", "essenceExtractor")
        replay = await service.purchase_building(USER_ID, "tx-1", "essenceExtractor")

        # Assert
        assert first.success is True
        assert replay.replayed is True
        assert replay.state == first.state
        stored = await sql_repository.load(USER_ID)
        assert stored.buildings["essenceExtractor"].count == 2
        assert stored.resources.essence == pytest.approx(4.5)

    async def test_get_state_creates_then_catches_up(self, sql_repository):
        clock = FakeClock()
        service = GameService(sql_repository, clock=clock)

        created = await service.get_state(USER_ID)
        clock.advance(120)
        synced = await service.get_state(USER_ID)

        assert created.created is True
        assert synced.state.version == 2
        assert synced.offline_gains.time_away_ms == 120_000

    async def test_create_default_wires_sql_repository(self, database):
        service = await GameService.create_default()

        view = await service.get_state(USER_ID)

        assert isinstance(service.repository, SqlGameStateRepository)
        assert isinstance(service.states.cache, NullGameStateCache)
        assert view.created is True
