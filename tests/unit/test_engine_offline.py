"""
Unit tests for passive income, offline catch-up and manual gathering.
"""

from datetime import timedelta

import pytest

from arise.domain.models import HunterStats
from arise.engine.gathering import gather_amount, gather_xp
from arise.engine.offline import apply_passive_income, calculate_offline_gains
from tests.factories import START, make_state

DAY = 24 * 60 * 60

# One extractor: 1 * 0.1/s, times 1.05 for the starting strength of 10
EXTRACTOR_RATE = 0.1 * 1.05


@pytest.mark.unit
@pytest.mark.engine
class TestOfflineWindow:
    def test_elapsed_beyond_window_is_capped(self):
        state = make_state(building_counts={"essenceExtractor": 1})

        gains = calculate_offline_gains(state, START + timedelta(hours=30), DAY)

        assert gains.capped is True
        assert gains.effective_seconds == DAY
        assert gains.time_away_seconds == 30 * 3600
        assert gains.resource_gains.essence == pytest.approx(EXTRACTOR_RATE * DAY)

    def test_elapsed_within_window_is_proportional(self):
        state = make_state(building_counts={"essenceExtractor": 1})

        one_hour = calculate_offline_gains(state, START + timedelta(hours=1), DAY)
        two_hours = calculate_offline_gains(state, START + timedelta(hours=2), DAY)

        assert one_hour.capped is False
        assert one_hour.resource_gains.essence == pytest.approx(EXTRACTOR_RATE * 3600)
        assert two_hours.resource_gains.essence == pytest.approx(2 * one_hour.resource_gains.essence)

    def test_clock_going_backwards_yields_nothing(self):
        state = make_state(building_counts={"essenceExtractor": 1})

        gains = calculate_offline_gains(state, START - timedelta(minutes=5), DAY)

        assert gains.time_away_seconds == 0
        assert gains.resource_gains.essence == 0

    def test_report_serializes_milliseconds(self):
        state = make_state()
        gains = calculate_offline_gains(state, START + timedelta(seconds=90), DAY)

        assert gains.to_dict()["time_away_ms"] == 90_000


@pytest.mark.unit
@pytest.mark.engine
class TestApplyPassiveIncome:
    def test_gains_clamped_to_recomputed_caps(self):
        state = make_state(resources={"essence": 100}, building_counts={"essenceExtractor": 10})

        result = apply_passive_income(state, START + timedelta(hours=1), DAY)

        assert result.state.resources.essence == pytest.approx(110)
        assert result.state.resource_caps.essence == pytest.approx(110)
        assert result.state.last_update == START + timedelta(hours=1)

    def test_stale_persisted_caps_are_ignored(self):
        state = make_state(building_counts={"essenceExtractor": 10})
        stale = state.evolve(resource_caps=state.resource_caps.with_channel("essence", 5))

        result = apply_passive_income(stale, START + timedelta(hours=1), DAY)

        assert result.state.resources.essence == pytest.approx(110)

    def test_xp_from_buildings_levels_the_hunter(self):
        state = make_state(building_counts={"trainingGround": 1})

        result = apply_passive_income(state, START + timedelta(seconds=1000), DAY)

        # 500 XP: 100 + 150 + 225 spent, 25 left over
        assert result.levels_gained == 3
        assert result.state.hunter.level == 4
        assert result.state.hunter.xp == pytest.approx(25)
        assert result.state.hunter.stat_points == 9

    def test_stored_caps_follow_the_leveled_hunter(self):
        # Arrange
        state = make_state(
            resources={"essence": 200},
            building_counts={"trainingGround": 1},
            researched=["transcendence"],
        )

        # Act
        result = apply_passive_income(state, START + timedelta(seconds=1000), DAY)

        # Assert
        # Clamp at level 1: 100 * 1.1 (transcendence) * 1.1 (strength 10)
        assert result.state.resources.essence == pytest.approx(121)
        # Stored caps at level 4: 100 * 1.4 * 1.1
        assert result.state.hunter.level == 4
        assert result.state.resource_caps.essence == pytest.approx(154)


@pytest.mark.unit
@pytest.mark.engine
class TestGathering:
    def test_amount_scales_with_stat(self):
        assert gather_amount("gold", HunterStats(agility=50), {}) == pytest.approx(3.0)
        assert gather_amount("essence", HunterStats(sense=10), {}) == pytest.approx(1.1)

    def test_xp_scales_with_stat(self):
        assert gather_xp("crystals", HunterStats(intelligence=100)) == pytest.approx(0.15)
