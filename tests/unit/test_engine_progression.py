"""
Unit tests for hunter progression.

Tests the XP curve, rank table, multi-level XP grants and stat allocation.
"""

from dataclasses import replace

import pytest

from arise.engine.progression import (
    allocate_stat,
    max_hp,
    max_mana,
    new_hunter,
    process_xp_gain,
    rank_from_level,
    xp_to_next_level,
)


@pytest.mark.unit
@pytest.mark.engine
class TestXpCurve:
    def test_first_levels(self):
        assert [xp_to_next_level(level) for level in (1, 2, 3, 4)] == [100, 150, 225, 337]

    def test_requirement_increases_with_level(self):
        for level in range(1, 60):
            assert xp_to_next_level(level + 1) > xp_to_next_level(level)


@pytest.mark.unit
@pytest.mark.engine
class TestRankTable:
    @pytest.mark.parametrize(
        "level,rank",
        [(1, "E"), (19, "E"), (20, "D"), (40, "C"), (59, "C"), (60, "B"), (80, "A"), (100, "S"), (250, "S")],
    )
    def test_rank_thresholds(self, level, rank):
        assert rank_from_level(level) == rank


@pytest.mark.unit
@pytest.mark.engine
class TestProcessXpGain:
    def test_new_hunter_defaults(self):
        hunter = new_hunter()

        assert hunter.level == 1
        assert hunter.stats.vitality == 10
        assert hunter.hp == hunter.max_hp == 205
        assert hunter.mana == hunter.max_mana == 103

    def test_multiple_levels_in_one_grant(self):
        result = process_xp_gain(new_hunter(), 250)

        assert result.levels_gained == 2
        assert result.hunter.level == 3
        assert result.hunter.xp == 0
        assert result.hunter.xp_to_next_level == 225
        assert result.hunter.stat_points == 6

    def test_small_grant_keeps_level(self):
        result = process_xp_gain(new_hunter(), 40)

        assert result.leveled_up is False
        assert result.hunter.xp == 40

    def test_level_up_restores_pools(self):
        damaged = replace(new_hunter(), hp=1, mana=0)

        hunter = process_xp_gain(damaged, 100).hunter

        assert hunter.hp == hunter.max_hp == max_hp(10, 2)
        assert hunter.mana == hunter.max_mana == max_mana(10, 2)

    def test_one_shot_matches_incremental(self):
        # Arrange
        total = 10_000
        incremental = new_hunter()

        # Act
        for _ in range(total // 100):
            incremental = process_xp_gain(incremental, 100).hunter
        one_shot = process_xp_gain(new_hunter(), total).hunter

        # Assert
        assert one_shot.level == incremental.level
        assert one_shot.xp == incremental.xp
        assert one_shot.stat_points == incremental.stat_points
        assert 0 <= one_shot.xp < one_shot.xp_to_next_level


@pytest.mark.unit
@pytest.mark.engine
class TestAllocateStat:
    def test_no_points_returns_none(self):
        assert allocate_stat(new_hunter(), "strength") is None

    def test_vitality_restores_hp_to_new_max(self):
        hunter = replace(new_hunter(), stat_points=2, hp=50)

        updated = allocate_stat(hunter, "vitality")

        assert updated.stats.vitality == 11
        assert updated.stat_points == 1
        assert updated.max_hp == 215
        assert updated.hp == 215

    def test_other_stats_keep_current_pools(self):
        hunter = replace(new_hunter(), stat_points=1, hp=50, mana=20)

        updated = allocate_stat(hunter, "strength")

        assert updated.stats.strength == 11
        assert updated.hp == 50
        assert updated.mana == 20

    def test_intelligence_restores_mana(self):
        hunter = replace(new_hunter(), stat_points=1, mana=0)

        updated = allocate_stat(hunter, "intelligence")

        assert updated.max_mana == 108
        assert updated.mana == 108
