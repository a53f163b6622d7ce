"""Tests for the RoutePlanner workflow."""

import logging
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from bus_route_finder.adapters.distance import HaversineStrategy
from bus_route_finder.domain.errors import StoreError
from bus_route_finder.domain.models import (
    Coordinate,
    DiscoveredStop,
    FilterConfig,
    PlannerPhase,
    ResolvedLocation,
    SortField,
    SortOrder,
)
from bus_route_finder.services import DistanceCalculator, RoutePlanner, StopDiscoveryService

from conftest import REFERENCE, make_stop

DESTINATION = Coordinate(lat=23.77, lng=90.39)


def _ready_for_search(planner):
    planner.discover_stops_near_location(REFERENCE, 500, "starting")
    planner.discover_stops_near_location(DESTINATION, 500, "destination")
    state = planner.get_state()
    planner.select_onboarding_stop(state.starting_stops[0])
    planner.select_offboarding_stop(state.destination_stops[0])


class TestInitialStateAndThresholds:
    def test_initial_state(self, planner):
        state = planner.get_state()

        assert state.phase == PlannerPhase.IDLE
        assert state.starting_threshold == 500
        assert state.destination_threshold == 500
        assert state.filters == FilterConfig()
        assert (state.sort_by, state.sort_order) == (SortField.JOURNEY_LENGTH, SortOrder.ASC)

    @pytest.mark.parametrize("meters", [99, 5001])
    def test_invalid_threshold_only_sets_error(self, planner, meters):
        before = planner.get_state()

        assert planner.set_starting_threshold(meters) is False

        after = planner.get_state()
        assert after.error is not None and "between 100 and 5000" in after.error
        assert replace(after, error=None) == before

    def test_valid_thresholds(self, planner):
        assert planner.set_starting_threshold(1000) is True
        assert planner.set_destination_threshold(None) is True

        state = planner.get_state()
        assert state.starting_threshold == 1000
        assert state.destination_threshold is None

    def test_invalid_destination_threshold(self, planner):
        assert planner.set_destination_threshold(6000) is False
        assert planner.get_state().destination_threshold == 500


class TestDiscovery:
    def test_discovers_and_records_method(self, planner):
        stops = planner.discover_stops_near_location(REFERENCE, 500, "starting")

        state = planner.get_state()
        assert [s.id for s in stops] == ["s0", "s1"]
        assert state.starting_stops == tuple(stops)
        assert state.starting_distance_method == "Haversine"
        assert state.from_coords == REFERENCE
        assert state.phase == PlannerPhase.STOPS_DISCOVERED
        assert state.loading is False

    def test_fallback_sets_warning_not_error(self, planner):
        planner.discover_stops_near_location(REFERENCE, 500, "starting")

        state = planner.get_state()
        assert state.warning is not None and "straight-line" in state.warning
        assert state.error is None

    def test_no_warning_without_fallback(self, repository, bus_routes, app_config):
        calculator = DistanceCalculator(HaversineStrategy(), HaversineStrategy())
        planner = RoutePlanner(
            StopDiscoveryService(repository, calculator, app_config.discovery),
            bus_routes,
            config=app_config,
        )

        planner.discover_stops_near_location(REFERENCE, 500, "starting")

        assert planner.get_state().warning is None

    def test_boolean_side(self, planner):
        planner.discover_stops_near_location(DESTINATION, 500, False)

        state = planner.get_state()
        assert [s.id for s in state.destination_stops] == ["s3"]
        assert state.to_coords == DESTINATION

    def test_empty_discovery_sets_error(self, planner):
        stops = planner.discover_stops_near_location(Coordinate(lat=10.0, lng=10.0), 500, "starting")

        assert stops == []
        assert "No stops found within 500 m" in planner.get_state().error

    def test_unset_destination_threshold_returns_all_stops(self, planner, line_stops):
        stops = planner.discover_stops_near_location(REFERENCE, None, "destination")

        assert len(stops) == len(line_stops)

    def test_starting_side_requires_threshold(self, planner):
        assert planner.discover_stops_near_location(REFERENCE, None, "starting") == []
        assert planner.get_state().error is not None

    def test_invalid_threshold_leaves_stops_untouched(self, planner):
        planner.discover_stops_near_location(REFERENCE, 500, "starting")
        before = planner.get_state().starting_stops

        planner.discover_stops_near_location(REFERENCE, 20, "starting")

        assert planner.get_state().starting_stops == before

    def test_store_failure_is_reported(self, planner):
        with patch.object(
            StopDiscoveryService,
            "discover_stops_with_method",
            side_effect=StoreError("Failed to fetch stops after 3 attempts"),
        ):
            planner.discover_stops_near_location(REFERENCE, 500, "starting")

        state = planner.get_state()
        assert "Failed to find nearby stops" in state.error
        assert state.loading is False

    def test_unexpected_failure_is_logged(self, planner, caplog):
        with patch.object(
            StopDiscoveryService, "discover_stops_with_method", side_effect=RuntimeError("bug")
        ):
            with caplog.at_level(logging.ERROR):
                planner.discover_stops_near_location(REFERENCE, 500, "starting")

        assert planner.get_state().error == "An unexpected error occurred. Please try again."
        assert "Unexpected error during stop discovery" in caplog.text

    def test_latest_discovery_wins(self, planner):
        original = planner.stop_discovery.discover_stops_with_method
        calls = []

        def slow_first_call(location, threshold):
            calls.append(threshold)
            if len(calls) == 1:
                # a newer request is issued while the first is in flight
                planner.discover_stops_near_location(REFERENCE, 5000, "starting")
            return original(location, threshold)

        with patch.object(
            planner.stop_discovery, "discover_stops_with_method", side_effect=slow_first_call
        ):
            planner.discover_stops_near_location(REFERENCE, 500, "starting")

        assert calls == [500, 5000]
        assert len(planner.get_state().starting_stops) == 6


class TestSelectionAndSearch:
    def test_selection_records_walking_legs(self, planner):
        _ready_for_search(planner)

        state = planner.get_state()
        assert state.phase == PlannerPhase.STOPS_SELECTED
        assert state.walking_distance_to_onboarding_km == pytest.approx(0.1112, abs=1e-4)
        assert state.walking_distance_from_offboarding_km == 0.0

    def test_search_without_selection_is_rejected(self, planner):
        before = planner.get_state()

        assert planner.search_buses_for_route() == []

        after = planner.get_state()
        assert after.error == "Please select both onboarding and offboarding stops"
        assert replace(after, error=None) == before

    def test_search_finds_sorted_enhanced_buses(self, planner):
        _ready_for_search(planner)

        buses = planner.search_buses_for_route()

        state = planner.get_state()
        assert [b.id for b in buses] == ["b2", "b1"]
        assert [b.journey_length_km for b in buses] == [3.0, 4.0]
        assert state.phase == PlannerPhase.ROUTES_FOUND
        assert state.available_buses == tuple(buses)
        assert len(state.all_buses) == 2
        assert state.error is None
        assert buses[0].total_walking_km == pytest.approx(0.1112, abs=1e-4)

    def test_no_connecting_bus(self, planner):
        planner.select_onboarding_stop(
            DiscoveredStop(make_stop("lonely", 23.75), 100.0, "Haversine")
        )
        planner.select_offboarding_stop(
            DiscoveredStop(make_stop("s3", 23.77), 0.0, "Haversine")
        )

        assert planner.search_buses_for_route() == []
        assert planner.get_state().error == "No buses found between the selected stops"

    def test_same_stop_on_both_ends_is_rejected(self, planner):
        stop = DiscoveredStop(make_stop("s3", 23.77), 0.0, "Haversine")
        planner.select_onboarding_stop(stop)
        planner.select_offboarding_stop(stop)

        with patch.object(planner.bus_routes, "find_bus_routes") as find:
            assert planner.search_buses_for_route() == []

        assert planner.get_state().error == "Onboarding and offboarding stops must be different"
        find.assert_not_called()

    def test_rediscovery_clears_previous_routes(self, planner):
        _ready_for_search(planner)
        planner.search_buses_for_route()
        assert planner.get_state().available_buses

        planner.discover_stops_near_location(REFERENCE, 500, "starting")

        state = planner.get_state()
        assert state.all_buses == ()
        assert state.available_buses == ()
        assert state.selected_onboarding_stop is None
        assert state.phase == PlannerPhase.STOPS_DISCOVERED

    def test_filters_rederive_without_requery(self, planner):
        _ready_for_search(planner)
        planner.search_buses_for_route()

        with patch.object(planner.bus_routes, "find_bus_routes") as find:
            planner.set_ac_filter(True)
            assert [b.id for b in planner.get_state().available_buses] == ["b2"]

            planner.set_ac_filter(False)
            assert [b.id for b in planner.get_state().available_buses] == ["b1"]

            planner.clear_all_filters()
            planner.set_coach_type_filter(["express"])
            assert [b.id for b in planner.get_state().available_buses] == ["b2"]

            planner.clear_all_filters()
            assert len(planner.get_state().available_buses) == 2
        find.assert_not_called()

    def test_sort_setters(self, planner):
        _ready_for_search(planner)
        planner.search_buses_for_route()

        planner.set_sort_order("desc")
        assert [b.id for b in planner.get_state().available_buses] == ["b1", "b2"]

        planner.set_sort_by(SortField.NAME)
        planner.set_sort_order(SortOrder.ASC)
        assert [b.name for b in planner.get_state().available_buses] == [
            "airport express",
            "Bikash",
        ]

    def test_invalid_sort_field_sets_error(self, planner):
        planner.set_sort_by("price")

        state = planner.get_state()
        assert state.error is not None
        assert state.sort_by == SortField.JOURNEY_LENGTH

    def test_derived_cache_is_cleared(self, planner):
        _ready_for_search(planner)
        planner.cache.set("stale", ())

        planner.search_buses_for_route()
        assert not planner.cache.contains("stale")
        assert planner.cache.size() == 1

        planner.cache.set("stale", ())
        planner.set_sort_order("desc")
        assert not planner.cache.contains("stale")


class TestLocate:
    def test_stop_name_takes_precedence(self, planner):
        planner.geocoder = MagicMock()
        planner.set_from_location("Stop s3")

        coordinate = planner.locate("starting")

        assert coordinate == Coordinate(lat=23.77, lng=90.39)
        assert planner.get_state().from_coords == coordinate
        planner.geocoder.geocode.assert_not_called()

    def test_falls_back_to_geocoder(self, planner):
        resolved = ResolvedLocation("Farmgate", Coordinate(lat=23.7577, lng=90.3896), "nominatim")
        planner.geocoder = MagicMock()
        planner.geocoder.geocode.return_value = resolved
        planner.set_to_location("Farmgate")

        assert planner.locate("destination") == resolved.coordinate
        assert planner.get_state().to_coords == resolved.coordinate

    def test_not_found(self, planner):
        planner.set_to_location("Atlantis")

        assert planner.locate(False) is None
        assert planner.get_state().error == "Location 'Atlantis' not found"

    def test_current_position(self, planner):
        planner.set_from_coordinates(REFERENCE)

        state = planner.get_state()
        assert state.from_location == "Current Location"
        assert state.from_coords == REFERENCE


class TestObservers:
    def test_callables_and_update_objects_are_notified(self, planner):
        received = []
        listener = MagicMock()
        planner.subscribe(received.append)
        planner.subscribe(listener)

        planner.set_from_location("Farmgate")

        assert received[-1].from_location == "Farmgate"
        listener.update.assert_called_once_with(received[-1])

    def test_failing_observer_does_not_block_others(self, planner, caplog):
        received = []

        def broken(state):
            raise RuntimeError("observer bug")

        planner.subscribe(broken)
        planner.subscribe(received.append)

        with caplog.at_level(logging.ERROR):
            planner.set_to_location("Motijheel")

        assert len(received) == 1
        assert "Observer raised" in caplog.text

    def test_unsubscribe(self, planner):
        received = []
        unsubscribe = planner.subscribe(received.append)
        planner.set_from_location("a")
        unsubscribe()
        planner.set_from_location("b")

        assert len(received) == 1

    def test_reset_restores_initial_state(self, planner):
        received = []
        _ready_for_search(planner)
        planner.search_buses_for_route()
        planner.subscribe(received.append)

        planner.reset()

        state = planner.get_state()
        assert state.phase == PlannerPhase.IDLE
        assert state.all_buses == ()
        assert received == [state]
