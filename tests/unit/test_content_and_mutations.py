"""
Unit tests for packaged content and the pure mutation steps.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from arise.content.loader import ContentRegistry
from arise.domain.models.game_state import to_epoch_ms
from arise.modules.game.migrations import migrate_state
from arise.modules.game.mutations import (
    AllocateStat,
    GatherResource,
    PurchaseBuilding,
    PurchaseBuildingBulk,
    PurchaseResearch,
    ResetGame,
)
from arise.modules.shared.exceptions import (
    InsufficientResourcesError,
    PreconditionError,
    ValidationError,
)
from tests.factories import START, make_state


@pytest.mark.unit
class TestContentRegistry:
    def test_default_tables_load(self):
        buildings = ContentRegistry.default_buildings()
        research = ContentRegistry.default_research()

        assert "essenceExtractor" in buildings
        assert len(buildings) == 11
        assert len(research) == 30
        assert research["shadowEconomy"].unlocks == ("soulHarvester",)

    def test_new_game_state_defaults(self):
        state = ContentRegistry.new_game_state("new-user", START)

        assert state.version == 1
        assert state.resources.essence == 0
        assert state.hunter.level == 1
        assert all(b.count == 0 for b in state.buildings.values())
        assert not any(r.researched for r in state.research.values())
        assert state.dungeons[0]["unlocked"] is True

    def test_defaults_are_fresh_copies(self):
        first = ContentRegistry.default_dungeons()
        first[0]["unlocked"] = False

        assert ContentRegistry.default_dungeons()[0]["unlocked"] is True

    def test_gated_building_lock(self):
        locked = make_state()
        unlocked = make_state(researched=["shadowEconomy"])

        assert ContentRegistry.is_building_locked("soulHarvester", locked.research) is True
        assert ContentRegistry.is_building_locked("soulHarvester", unlocked.research) is False
        assert ContentRegistry.is_building_locked("essenceExtractor", locked.research) is False


@pytest.mark.unit
class TestRequestValidation:
    @pytest.mark.parametrize("quantity", [0, -1, 101, True, 2.5])
    def test_bulk_quantity_out_of_range(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseBuildingBulk("essenceExtractor", quantity).validate_request()
        assert exc_info.value.error_code == "VALIDATION_QUANTITY"

    def test_bulk_quantity_custom_limit(self):
        PurchaseBuilding("essenceExtractor", 5, max_quantity=5).validate_request()
        with pytest.raises(ValidationError):
            PurchaseBuilding("essenceExtractor", 6, max_quantity=5).validate_request()

    def test_only_primary_channels_can_be_gathered(self):
        with pytest.raises(ValidationError):
            GatherResource("souls").validate_request()

    def test_unknown_stat(self):
        with pytest.raises(ValidationError):
            AllocateStat("luck").validate_request()

    def test_empty_research_id(self):
        with pytest.raises(ValidationError):
            PurchaseResearch("").validate_request()


@pytest.mark.unit
class TestMutationApply:
    def test_gather_adds_scaled_amount_and_xp(self):
        state = make_state()

        updated = GatherResource("essence").apply(state, START)

        assert updated.resources.essence == pytest.approx(1.1)
        assert updated.hunter.xp == pytest.approx(0.105)

    def test_gather_clamps_to_cap(self):
        state = make_state(resources={"gold": 219.5})

        updated = GatherResource("gold").apply(state, START)

        assert updated.resources.gold == pytest.approx(state.resource_caps.gold)

    def test_purchase_deducts_cost_and_increments_count(self):
        state = make_state(resources={"essence": 25})

        updated = PurchaseBuildingBulk("essenceExtractor", 2).apply(state, START)

        assert updated.buildings["essenceExtractor"].count == 2
        assert updated.resources.essence == 4

    def test_purchase_reports_missing(self):
        state = make_state(resources={"essence": 6})

        with pytest.raises(InsufficientResourcesError) as exc_info:
            PurchaseBuilding("essenceExtractor").apply(state, START)

        assert exc_info.value.missing == {"essence": 4}
        assert exc_info.value.message == "Need 4 essence more"

    def test_unknown_building(self):
        with pytest.raises(PreconditionError, match="Unknown building"):
            PurchaseBuilding("castle").apply(make_state(), START)

    def test_locked_building(self):
        state = make_state(resources={"essence": 1000, "crystals": 1000, "gold": 1000})

        with pytest.raises(PreconditionError, match="Soul Harvester is locked"):
            PurchaseBuilding("soulHarvester").apply(state, START)

    def test_research_requires_prerequisites(self):
        state = make_state(resources={"knowledge": 100})

        with pytest.raises(PreconditionError) as exc_info:
            PurchaseResearch("manaResonance").apply(state, START)

        assert exc_info.value.message == "Requires: basicExtraction"

    def test_research_purchase_spends_knowledge(self):
        state = make_state(resources={"knowledge": 25})

        updated = PurchaseResearch("basicExtraction").apply(state, START)

        assert updated.research["basicExtraction"].researched is True
        assert updated.resources.knowledge == 15

    def test_research_cannot_be_bought_twice(self):
        state = make_state(resources={"knowledge": 25}, researched=["basicExtraction"])

        with pytest.raises(PreconditionError, match="already researched"):
            PurchaseResearch("basicExtraction").apply(state, START)

    def test_allocate_without_points(self):
        with pytest.raises(PreconditionError, match="No stat points available"):
            AllocateStat("strength").apply(make_state(), START)

    def test_reset_keeps_version_sequence(self):
        state = make_state(resources={"essence": 50}, building_counts={"essenceExtractor": 4})
        state = state.evolve(version=7)

        reset = ResetGame().apply(state, START + timedelta(days=1))

        assert reset.version == 7
        assert reset.resources.essence == 0
        assert reset.buildings["essenceExtractor"].count == 0
        assert reset.last_update == START + timedelta(days=1)


@pytest.mark.unit
class TestMigrations:
    def test_missing_entries_are_backfilled_without_touching_counts(self):
        # Arrange
        state = make_state(building_counts={"essenceExtractor": 3}, researched=["basicExtraction"])
        buildings = dict(state.buildings)
        del buildings["library"]
        research = dict(state.research)
        del research["raidLeader"]
        legacy = state.evolve(buildings=buildings, research=research, dungeons=[])

        # Act
        migrated, changed = migrate_state(legacy, START)

        # Assert
        assert changed is True
        assert migrated.buildings["library"].count == 0
        assert migrated.buildings["essenceExtractor"].count == 3
        assert migrated.research["basicExtraction"].researched is True
        assert "raidLeader" in migrated.research
        assert len(migrated.dungeons) == 3

    def test_unlocks_filled_for_legacy_research(self):
        state = make_state(researched=["shadowEconomy"])
        research = dict(state.research)
        research["shadowEconomy"] = replace(research["shadowEconomy"], unlocks=())
        legacy = state.evolve(research=research)

        migrated, changed = migrate_state(legacy, START)

        assert changed is True
        assert migrated.research["shadowEconomy"].unlocks == ("soulHarvester",)
        assert migrated.research["shadowEconomy"].researched is True

    def test_dungeons_unlock_with_level_and_stale_runs_drop(self):
        now = START
        active = [
            {"dungeon_id": "instance-dungeon-1", "end_time": to_epoch_ms(now - timedelta(days=2))},
            {"dungeon_id": "instance-dungeon-1", "end_time": to_epoch_ms(now - timedelta(minutes=1))},
            {"dungeon_id": "instance-dungeon-1", "end_time": to_epoch_ms(now + timedelta(minutes=1))},
        ]
        state = make_state(level=10).evolve(active_dungeons=active)

        migrated, changed = migrate_state(state, now)

        assert changed is True
        unlocked = {d["id"]: d["unlocked"] for d in migrated.dungeons}
        assert unlocked == {
            "instance-dungeon-1": True,
            "instance-dungeon-2": True,
            "instance-dungeon-3": False,
        }
        # A run that finished a minute ago is still claimable
        assert len(migrated.active_dungeons) == 2

    def test_current_state_is_unchanged(self):
        state = make_state()

        migrated, changed = migrate_state(state, START)

        assert changed is False
        assert migrated is state
