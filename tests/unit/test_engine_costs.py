"""
Unit tests for building cost math.
"""

import pytest

from arise.domain.models import Building, ResourceVector
from arise.engine.costs import bulk_cost, bulk_cost_closed_form, cost_at, max_affordable


def _extractor(count: int = 0) -> Building:
    return Building(
        id="essenceExtractor",
        name="Essence Extractor",
        base_cost=ResourceVector(essence=10),
        cost_multiplier=1.15,
        count=count,
    )


@pytest.mark.unit
@pytest.mark.engine
class TestCostAt:
    def test_first_unit_costs_base(self):
        assert cost_at(_extractor()).essence == 10

    def test_cost_floors_per_channel(self):
        # 10 * 1.15 = 11.5, 10 * 1.3225 = 13.225
        assert cost_at(_extractor(1)).essence == 11
        assert cost_at(_extractor(2)).essence == 13

    def test_multi_channel_floor_is_independent(self):
        building = Building(
            id="merchantGuild",
            name="Merchant Guild",
            base_cost=ResourceVector(essence=7, crystals=3),
            cost_multiplier=1.5,
            count=1,
        )
        cost = cost_at(building)
        # 10.5 and 4.5 floor separately to 10 and 4, not to floor(15.0)
        assert cost.essence == 10
        assert cost.crystals == 4


@pytest.mark.unit
@pytest.mark.engine
class TestBulkCost:
    def test_bulk_cost_sums_floored_units(self):
        assert bulk_cost(_extractor(), 3).essence == 10 + 11 + 13

    def test_zero_quantity_costs_nothing(self):
        assert bulk_cost(_extractor(5), 0) == ResourceVector()

    def test_bulk_cost_starts_at_current_count(self):
        assert bulk_cost(_extractor(2), 1) == cost_at(_extractor(2))

    @pytest.mark.parametrize("count", [0, 3, 17])
    def test_closed_form_agrees_within_per_unit_rounding(self, count):
        building = _extractor(count)
        for quantity in range(1, 60):
            iterative = bulk_cost(building, quantity).essence
            closed = bulk_cost_closed_form(building, quantity).essence
            assert iterative - 1 <= closed <= iterative + quantity


@pytest.mark.unit
@pytest.mark.engine
class TestMaxAffordable:
    def test_returns_zero_when_one_unit_unaffordable(self):
        assert max_affordable(_extractor(), ResourceVector(essence=9)) == 0

    def test_finds_largest_affordable_quantity(self):
        assert max_affordable(_extractor(), ResourceVector(essence=20)) == 1
        assert max_affordable(_extractor(), ResourceVector(essence=34)) == 3

    def test_result_is_affordable_and_next_is_not(self):
        wallet = ResourceVector(essence=5000)
        best = max_affordable(_extractor(), wallet)

        assert bulk_cost(_extractor(), best).essence <= 5000
        assert bulk_cost(_extractor(), best + 1).essence > 5000
