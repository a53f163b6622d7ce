"""Tests for BusFilterBuilder and sort_results."""

import pytest

from bus_route_finder.adapters.store import InMemoryTransitRepository
from bus_route_finder.domain.models import (
    Bus,
    CoachType,
    FilterConfig,
    RawBusResult,
    SortField,
    SortOrder,
)
from bus_route_finder.services import BusFilterBuilder, EnhancedBusResultFactory, sort_results

from conftest import make_stop

ON = make_stop("on", 23.75)
OFF = make_stop("off", 23.77)


def bus(bus_id, journey_km=1.0, is_ac=False, coach_type=CoachType.STANDARD, name=None, walk=0.1):
    raw = RawBusResult(
        id=bus_id,
        name=name or bus_id,
        is_ac=is_ac,
        coach_type=coach_type,
        onboarding_stop=ON,
        offboarding_stop=OFF,
    )
    return EnhancedBusResultFactory.create(raw, journey_km, walk, walk)


class TestBuilder:
    def test_ac_filter_keeps_order(self):
        results = [bus("a", is_ac=True), bus("b", is_ac=False), bus("c", is_ac=True)]

        kept = BusFilterBuilder().with_ac(True).apply(results)

        assert [r.id for r in kept] == ["a", "c"]

    def test_non_ac_filter(self):
        results = [bus("a", is_ac=True), bus("b", is_ac=False)]

        assert [r.id for r in BusFilterBuilder().with_ac(False).apply(results)] == ["b"]

    def test_coach_types(self):
        results = [
            bus("a", coach_type=CoachType.STANDARD),
            bus("b", coach_type=CoachType.EXPRESS),
            bus("c", coach_type=CoachType.LUXURY),
        ]

        kept = BusFilterBuilder().with_coach_types(["express", CoachType.LUXURY]).apply(results)

        assert [r.id for r in kept] == ["b", "c"]

    def test_empty_coach_types_means_no_restriction(self):
        results = [bus("a"), bus("b", coach_type=CoachType.LUXURY)]

        assert len(BusFilterBuilder().with_coach_types([]).apply(results)) == 2

    def test_journey_length_range_is_inclusive(self):
        results = [bus("a", 1.0), bus("b", 2.0), bus("c", 3.0), bus("d", 4.0)]

        kept = BusFilterBuilder().with_journey_length_range(min_km=2.0, max_km=3.0).apply(results)

        assert [r.id for r in kept] == ["b", "c"]

    def test_max_walking_applies_to_total(self):
        results = [bus("a", walk=0.2), bus("b", walk=0.4)]

        kept = BusFilterBuilder().with_max_walking_distance(0.5).apply(results)

        assert [r.id for r in kept] == ["a"]

    def test_predicates_are_conjunctive(self):
        results = [
            bus("a", 1.0, is_ac=True),
            bus("b", 5.0, is_ac=True),
            bus("c", 1.0, is_ac=False),
        ]

        kept = BusFilterBuilder().with_ac(True).with_journey_length_range(max_km=2.0).apply(results)

        assert [r.id for r in kept] == ["a"]

    def test_setting_ac_twice_replaces_the_first_value(self):
        builder = BusFilterBuilder().with_ac(True).with_ac(False)

        kept = builder.apply([bus("ac", is_ac=True), bus("plain", is_ac=False)])

        assert [r.id for r in kept] == ["plain"]
        assert builder.filters == FilterConfig(is_ac=False)

    def test_clearing_coach_types_lifts_the_restriction(self):
        builder = BusFilterBuilder().with_coach_types(["luxury"]).with_coach_types([])
        results = [bus("a"), bus("b", coach_type=CoachType.LUXURY)]

        assert [r.id for r in builder.apply(results)] == ["a", "b"]

    def test_widening_journey_range_replaces_the_narrow_one(self):
        builder = BusFilterBuilder().with_journey_length_range(max_km=1.5)
        builder.with_journey_length_range(max_km=5.0)
        results = [bus("a", 1.0), bus("b", 3.0)]

        assert [r.id for r in builder.apply(results)] == ["a", "b"]

    def test_reset_clears_everything(self):
        builder = BusFilterBuilder().with_ac(True).with_coach_types(["luxury"])

        builder.reset()

        assert builder.filters == FilterConfig()
        assert len(builder.apply([bus("a"), bus("b", is_ac=True)])) == 2

    def test_from_config(self):
        builder = BusFilterBuilder.from_config(
            FilterConfig(is_ac=True, coach_types=(CoachType.EXPRESS,))
        )

        assert builder.filters == FilterConfig(is_ac=True, coach_types=(CoachType.EXPRESS,))
        kept = builder.apply(
            [bus("a", is_ac=True, coach_type=CoachType.EXPRESS), bus("b", is_ac=True)]
        )
        assert [r.id for r in kept] == ["a"]


class TestQueryModifier:
    @pytest.fixture
    def store(self):
        return InMemoryTransitRepository(
            buses=[
                Bus(id="1", name="one", is_ac=True, coach_type=CoachType.EXPRESS),
                Bus(id="2", name="two", is_ac=False, coach_type=CoachType.EXPRESS),
                Bus(id="3", name="three", is_ac=True, coach_type=CoachType.STANDARD),
            ]
        )

    def test_pushes_ac_and_coach_type(self, store):
        builder = BusFilterBuilder().with_ac(True).with_coach_types(["express"])

        buses = builder.build_query_modifier(store.query_buses()).execute()

        assert [b.id for b in buses] == ["1"]

    def test_trip_predicates_are_not_pushed_down(self, store):
        builder = BusFilterBuilder().with_max_walking_distance(0.1).with_journey_length_range(0, 1)

        assert len(builder.build_query_modifier(store.query_buses()).execute()) == 3


class TestSorting:
    def test_journey_length_ascending_and_descending(self):
        results = [bus("a", 5.0), bus("b", 2.0), bus("c", 8.0)]

        asc = sort_results(results, SortField.JOURNEY_LENGTH, SortOrder.ASC)
        desc = sort_results(results, SortField.JOURNEY_LENGTH, SortOrder.DESC)

        assert [r.journey_length_km for r in asc] == [2.0, 5.0, 8.0]
        assert [r.journey_length_km for r in desc] == [8.0, 5.0, 2.0]

    def test_estimated_time(self):
        results = [bus("slow", 2.0, walk=1.0), bus("fast", 3.0, walk=0.0)]

        ordered = sort_results(results, "estimated_time", "asc")

        assert [r.id for r in ordered] == ["fast", "slow"]

    def test_name_is_case_insensitive(self):
        results = [bus("1", name="beta"), bus("2", name="Alpha"), bus("3", name="gamma")]

        assert [r.name for r in sort_results(results, SortField.NAME)] == ["Alpha", "beta", "gamma"]

    def test_ties_keep_input_order_in_both_directions(self):
        results = [bus("a", 1.0), bus("b", 1.0), bus("c", 0.5)]

        assert [r.id for r in sort_results(results, "journey_length", "asc")] == ["c", "a", "b"]
        assert [r.id for r in sort_results(results, "journey_length", "desc")] == ["a", "b", "c"]
