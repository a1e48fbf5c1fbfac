"""
Unit tests for the read paths: full sync with offline catch-up and the
cached snapshot.
"""

import asyncio

import pytest

from arise.core.cache.game_state import GameStateCache, NullGameStateCache
from arise.core.exceptions import CacheError
from arise.modules.game.service import GameService
from arise.modules.shared.exceptions import NotFoundError, ValidationError
from tests.factories import USER_ID


@pytest.mark.unit
@pytest.mark.asyncio
class TestGetState:
    async def test_first_access_creates_default_state(self, game_service, repository):
        view = await game_service.get_state(USER_ID)

        assert view.created is True
        assert view.offline_gains is None
        assert view.state.version == 1
        assert view.state.resources.essence == 0
        assert (await repository.load(USER_ID)) is not None

    async def test_offline_gains_reported_and_persisted(self, game_service, repository, clock, seed_state):
        # Arrange
        await seed_state(building_counts={"essenceExtractor": 1})
        clock.advance(3600)

        # Act
        view = await game_service.get_state(USER_ID)

        # Assert
        report = view.to_dict()["offline_gains"]
        assert report["time_away_ms"] == 3_600_000
        assert report["capped"] is False
        assert view.state.version == 2
        stored = await repository.load(USER_ID)
        assert stored.resources.essence == pytest.approx(110)
        assert stored.last_update == clock.now

    async def test_long_absence_is_capped(self, game_service, clock, seed_state):
        await seed_state()
        clock.advance(3 * 24 * 3600)

        view = await game_service.get_state(USER_ID)

        assert view.offline_gains.capped is True
        assert view.offline_gains.effective_seconds == 24 * 3600

    async def test_short_gap_has_no_report(self, game_service, clock, seed_state):
        await seed_state()
        clock.advance(0.5)

        view = await game_service.get_state(USER_ID)

        assert view.offline_gains is None
        assert "offline_gains" not in view.to_dict()

    async def test_stored_state_is_migrated(self, game_service, repository, seed_state):
        state = await seed_state(building_counts={"essenceExtractor": 2})
        buildings = dict(state.buildings)
        del buildings["goldVault"]
        await repository.save(USER_ID, state.evolve(buildings=buildings), 1)

        view = await game_service.get_state(USER_ID)

        assert view.state.buildings["goldVault"].count == 0
        assert view.state.buildings["essenceExtractor"].count == 2

    async def test_empty_user_id_rejected(self, game_service):
        with pytest.raises(ValidationError):
            await game_service.get_state("")


@pytest.mark.unit
@pytest.mark.asyncio
class TestCachedSnapshot:
    @pytest.fixture
    def store(self, mocker):
        store = mocker.AsyncMock()
        store.get_json.return_value = None
        store.set_json.return_value = True
        store.delete.return_value = 1
        return store

    @pytest.fixture
    def cached_service(self, repository, clock, store):
        return GameService(repository, cache=GameStateCache(store=store, ttl_seconds=5), clock=clock)

    async def test_missing_state_raises_not_found(self, cached_service):
        with pytest.raises(NotFoundError):
            await cached_service.get_cached_snapshot("ghost")

    async def test_miss_reads_through_and_populates(self, cached_service, seed_state, store):
        await seed_state(resources={"gold": 12})

        snapshot = await cached_service.get_cached_snapshot(USER_ID)

        assert snapshot["resources"]["gold"] == 12
        store.set_json.assert_awaited_once_with(
            "arise:v1:game_state:user-1", snapshot, ttl_seconds=5
        )

    async def test_hit_skips_repository(self, cached_service, repository, store, mocker):
        store.get_json.return_value = {"user_id": USER_ID, "cached": True}
        load = mocker.patch.object(repository, "load")

        snapshot = await cached_service.get_cached_snapshot(USER_ID)

        assert snapshot["cached"] is True
        load.assert_not_awaited()

    async def test_cache_outage_falls_back_to_repository(self, cached_service, seed_state, store):
        await seed_state(resources={"gold": 12})
        store.get_json.side_effect = CacheError("get", "arise:v1:game_state:user-1")
        store.set_json.side_effect = CacheError("set", "arise:v1:game_state:user-1")

        snapshot = await cached_service.get_cached_snapshot(USER_ID)

        assert snapshot["resources"]["gold"] == 12

    async def test_commit_deletes_cached_entry(self, cached_service, seed_state, store):
        await seed_state()

        result = await cached_service.gather_resource(USER_ID, "tx-1", "gold")

        assert result.success is True
        store.delete.assert_awaited_once_with("arise:v1:game_state:user-1")

    async def test_invalidation_failure_does_not_fail_commit(self, cached_service, repository, seed_state, store):
        await seed_state()
        store.delete.side_effect = CacheError("delete", "arise:v1:game_state:user-1")

        result = await cached_service.gather_resource(USER_ID, "tx-1", "gold")

        assert result.success is True
        assert repository.transaction_count(USER_ID) == 1


@pytest.mark.unit
@pytest.mark.asyncio
class TestNullCache:
    async def test_null_cache_never_stores(self):
        cache = NullGameStateCache()

        assert await cache.set(USER_ID, {"a": 1}) is False
        assert await cache.get(USER_ID) is None
        assert await cache.invalidate(USER_ID) is True


class DictStore:
    """In-process JSON store with the Redis service's call shape."""

    def __init__(self) -> None:
        self.data = {}

    async def get_json(self, key):
        return self.data.get(key)

    async def set_json(self, key, value, ttl_seconds=None):
        self.data[key] = value
        return True

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestCacheFillOrdering:
    async def test_commit_during_cache_fill_is_not_overwritten(self, repository, clock, seed_state, mocker):
        # Arrange
        await seed_state(resources={"essence": 50})
        service = GameService(
            repository, cache=GameStateCache(store=DictStore(), ttl_seconds=60), clock=clock
        )
        original_load = repository.load
        reader_loaded = asyncio.Event()
        release_reader = asyncio.Event()
        calls = 0

        async def slow_first_load(user_id):
            nonlocal calls
            calls += 1
            state = await original_load(user_id)
            if calls == 1:
                reader_loaded.set()
                await release_reader.wait()
            return state

        mocker.patch.object(repository, "load", side_effect=slow_first_load)

        # Act
        reader = asyncio.create_task(service.get_cached_snapshot(USER_ID))
        await reader_loaded.wait()
        purchase = asyncio.create_task(
            service.purchase_building(USER_ID, "tx-1", "essenceExtractor")
        )
        for _ in range(20):
            await asyncio.sleep(0)
        release_reader.set()
        await reader
        result = await purchase
        snapshot = await service.get_cached_snapshot(USER_ID)

        # Assert
        assert result.success is True
        assert snapshot["version"] == 2
        assert snapshot["buildings"]["essenceExtractor"]["count"] == 1
