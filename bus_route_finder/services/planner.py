"""Route planner orchestrator.

Drives the trip-planning workflow: locate both ends, discover nearby
stops, pick an onboarding and an offboarding stop, search buses, then
filter and sort the results. All progress lives in one immutable
PlannerState which observers receive on every change.

Errors never escape the planner; they are reported in ``state.error``.
``state.warning`` is advisory only (e.g. straight-line distances were
used because the road router was down).

Calls that supersede each other are resolved latest-wins: each stop
discovery (per side) and each bus search takes a sequence token, and a
result whose token is no longer current is dropped.

Filtered and sorted views are memoized through the ``available_buses``
snapshot in state: a view is derived once per search or filter/sort
change, and reads never recompute it. The derived-result cache is
cleared on every such change, so it holds at most the current view.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import AppConfig, get_config
from ..domain.errors import (
    InvalidThresholdError,
    MissingSelectionError,
    RouteFinderError,
    ValidationError,
)
from ..domain.models import (
    CoachType,
    Coordinate,
    DiscoveredStop,
    DiscoveryResult,
    EnhancedBusResult,
    FilterConfig,
    PlannerPhase,
    PlannerState,
    RawBusResult,
    SortField,
    SortOrder,
)
from ..observer import Observable
from ..ports.cache import CachePort
from ..ports.geocoding import GeocoderPort
from ..ports.stores import StopStorePort
from .bus_routes import BusRouteService
from .enhancement import EnhancedBusResultFactory
from .filters import BusFilterBuilder, sort_results
from .stop_discovery import StopDiscoveryService

STARTING = "starting"
DESTINATION = "destination"

SideLike = Union[str, bool]

_SIDE_LABELS = {STARTING: "starting", DESTINATION: "destination"}
_UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."


def _normalize_side(side: SideLike) -> str:
    if isinstance(side, bool):
        return STARTING if side else DESTINATION
    if side in (STARTING, DESTINATION):
        return side
    raise ValueError(f"Unknown side {side!r}; expected 'starting' or 'destination'")


class RoutePlanner(Observable[PlannerState]):
    """Stateful trip-planning workflow with observable state.

    Args:
        stop_discovery: Finds stops around a location
        bus_routes: Matches buses and measures journeys
        stop_store: Used to resolve typed locations by stop name
        geocoder: Used to resolve typed locations that are not stop names
        cache: Backs the derived (filtered + sorted) bus lists
        config: Application configuration
    """

    def __init__(
        self,
        stop_discovery: StopDiscoveryService,
        bus_routes: BusRouteService,
        stop_store: Optional[StopStorePort] = None,
        geocoder: Optional[GeocoderPort] = None,
        cache: Optional[CachePort[Any]] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        super().__init__()
        self.config = config or get_config()
        self.stop_discovery = stop_discovery
        self.bus_routes = bus_routes
        self.stop_store = stop_store
        self.geocoder = geocoder

        if cache is None:
            from ..adapters.cache import InMemoryCache

            cache = InMemoryCache(name="derived", max_size=self.config.cache.derived_max_size)
        self.cache = cache

        self._logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._tokens: Dict[str, int] = {STARTING: 0, DESTINATION: 0, "search": 0}
        self._generation = 0
        self._state = self._initial_state()

    def _initial_state(self) -> PlannerState:
        default = self.config.discovery.default_threshold_meters
        return PlannerState(starting_threshold=default, destination_threshold=default)

    # State plumbing

    def get_state(self) -> PlannerState:
        with self._lock:
            return self._state

    def _set_state(self, **changes: Any) -> PlannerState:
        with self._lock:
            self._state = replace(self._state, **changes)
            state = self._state
        self.notify(state)
        return state

    def _next_token(self, key: str) -> int:
        with self._lock:
            self._tokens[key] += 1
            return self._tokens[key]

    def _apply_if_current(self, key: str, token: int, **changes: Any) -> bool:
        """Apply changes only if no newer call of the same kind was issued."""
        with self._lock:
            if self._tokens[key] != token:
                self._logger.debug(
                    "Dropping superseded result",
                    extra={"operation": key, "token": token, "latest": self._tokens[key]},
                )
                return False
            self._state = replace(self._state, **changes)
            state = self._state
        self.notify(state)
        return True

    # Locations

    def set_from_location(self, text: str) -> None:
        self._set_state(
            from_location=text, from_coords=None, phase=PlannerPhase.LOCATING, error=None
        )

    def set_to_location(self, text: str) -> None:
        self._set_state(
            to_location=text, to_coords=None, phase=PlannerPhase.LOCATING, error=None
        )

    def set_from_coordinates(
        self, coordinate: Coordinate, label: str = "Current Location"
    ) -> None:
        self._set_state(
            from_location=label,
            from_coords=coordinate,
            phase=PlannerPhase.LOCATING,
            error=None,
        )

    def set_to_coordinates(
        self, coordinate: Coordinate, label: str = "Current Location"
    ) -> None:
        self._set_state(
            to_location=label,
            to_coords=coordinate,
            phase=PlannerPhase.LOCATING,
            error=None,
        )

    def locate(self, side: SideLike) -> Optional[Coordinate]:
        """Resolve a side's typed location to coordinates.

        Stop names are tried first, then the geocoder.

        Returns:
            The coordinate, or None if the location could not be resolved.
        """
        side = _normalize_side(side)
        text_field, coords_field = (
            ("from_location", "from_coords")
            if side == STARTING
            else ("to_location", "to_coords")
        )
        text = getattr(self.get_state(), text_field).strip()
        if not text:
            self._set_state(error=f"Please enter a {_SIDE_LABELS[side]} location")
            return None

        self._set_state(loading=True, error=None, phase=PlannerPhase.LOCATING)
        try:
            coordinate = self._resolve(text)
        except RouteFinderError as e:
            self._logger.warning("Location lookup failed", extra={"query": text, "error": str(e)})
            self._set_state(loading=False, error=f"Could not look up '{text}': {e.message}")
            return None
        except Exception:
            self._logger.exception("Unexpected error during location lookup")
            self._set_state(loading=False, error=_UNEXPECTED_ERROR)
            return None

        if coordinate is None:
            self._set_state(loading=False, error=f"Location '{text}' not found")
            return None

        self._set_state(loading=False, **{coords_field: coordinate})
        return coordinate

    def _resolve(self, text: str) -> Optional[Coordinate]:
        if self.stop_store is not None:
            matches = self.stop_store.search_stops(text, limit=1)
            if matches:
                self._logger.debug(
                    "Location matched a stop", extra={"query": text, "stop_id": matches[0].id}
                )
                return matches[0].coordinate

        if self.geocoder is not None:
            resolved = self.geocoder.geocode(text)
            if resolved is not None:
                return resolved.coordinate
        return None

    # Thresholds

    def set_starting_threshold(self, meters: float) -> bool:
        try:
            self.stop_discovery.validate_threshold(meters)
        except InvalidThresholdError as e:
            self._set_state(error=e.message)
            return False
        self._set_state(starting_threshold=meters, error=None)
        return True

    def set_destination_threshold(self, meters: Optional[float]) -> bool:
        """Set the destination radius; None means no limit."""
        if meters is not None:
            try:
                self.stop_discovery.validate_threshold(meters)
            except InvalidThresholdError as e:
                self._set_state(error=e.message)
                return False
        self._set_state(destination_threshold=meters, error=None)
        return True

    # Stop discovery

    def discover_stops_near_location(
        self,
        location: Coordinate,
        threshold: Optional[float],
        side: SideLike = STARTING,
    ) -> List[DiscoveredStop]:
        """Discover stops around ``location`` and store them for ``side``.

        A None threshold is only allowed for the destination side and
        returns every stop, nearest first.
        """
        side = _normalize_side(side)

        if threshold is None and side == STARTING:
            self._set_state(error="A search radius is required for the starting location")
            return []
        if threshold is not None:
            try:
                self.stop_discovery.validate_threshold(threshold)
            except InvalidThresholdError as e:
                self._set_state(error=e.message)
                return []

        token = self._next_token(side)
        coords_field = "from_coords" if side == STARTING else "to_coords"
        self._set_state(loading=True, error=None, warning=None, **{coords_field: location})

        try:
            if threshold is None:
                result = self.stop_discovery.rank_all_stops(location)
            else:
                result = self.stop_discovery.discover_stops_with_method(location, threshold)
        except RouteFinderError as e:
            self._logger.error(
                "Stop discovery failed", extra={"side": side, "error": str(e)}
            )
            self._apply_if_current(
                side, token, loading=False, error=f"Failed to find nearby stops: {e.message}"
            )
            return []
        except Exception:
            self._logger.exception("Unexpected error during stop discovery")
            self._apply_if_current(side, token, loading=False, error=_UNEXPECTED_ERROR)
            return []

        self._apply_if_current(side, token, **self._discovery_changes(side, result, threshold))
        return list(result.stops)

    def _discovery_changes(
        self, side: str, result: DiscoveryResult, threshold: Optional[float]
    ) -> Dict[str, Any]:
        label = _SIDE_LABELS[side]
        changes: Dict[str, Any] = {
            "loading": False,
            "phase": PlannerPhase.STOPS_DISCOVERED,
            # routes found for the previous selection no longer apply
            "all_buses": (),
            "available_buses": (),
        }
        if side == STARTING:
            changes.update(
                starting_stops=result.stops,
                starting_distance_method=result.method,
                selected_onboarding_stop=None,
                walking_distance_to_onboarding_km=None,
            )
        else:
            changes.update(
                destination_stops=result.stops,
                destination_distance_method=result.method,
                selected_offboarding_stop=None,
                walking_distance_from_offboarding_km=None,
            )

        if result.fallback_used:
            changes["warning"] = (
                "Road distances are unavailable; showing straight-line "
                f"({result.method}) distances instead"
            )
        if result.is_empty:
            if threshold is None:
                changes["error"] = "No stops are available"
            else:
                changes["error"] = (
                    f"No stops found within {threshold:g} m of the {label} location. "
                    "Try increasing the search radius."
                )
        return changes

    # Stop selection

    def select_onboarding_stop(self, stop: DiscoveredStop) -> None:
        state = self.get_state()
        self._set_state(
            selected_onboarding_stop=stop,
            walking_distance_to_onboarding_km=stop.distance_km,
            phase=(
                PlannerPhase.STOPS_SELECTED
                if state.selected_offboarding_stop is not None
                else state.phase
            ),
            error=None,
        )

    def select_offboarding_stop(self, stop: DiscoveredStop) -> None:
        state = self.get_state()
        self._set_state(
            selected_offboarding_stop=stop,
            walking_distance_from_offboarding_km=stop.distance_km,
            phase=(
                PlannerPhase.STOPS_SELECTED
                if state.selected_onboarding_stop is not None
                else state.phase
            ),
            error=None,
        )

    # Bus search

    def search_buses_for_route(self) -> List[EnhancedBusResult]:
        """Find, enhance, filter and sort buses for the selected stops."""
        state = self.get_state()
        onboarding = state.selected_onboarding_stop
        offboarding = state.selected_offboarding_stop
        missing = tuple(
            name
            for name, value in (
                ("onboarding_stop", onboarding),
                ("offboarding_stop", offboarding),
                ("walking_to_onboarding", state.walking_distance_to_onboarding_km),
                ("walking_from_offboarding", state.walking_distance_from_offboarding_km),
            )
            if value is None
        )
        if onboarding is None or offboarding is None or missing:
            error = MissingSelectionError(
                "Please select both onboarding and offboarding stops", missing=missing
            )
            self._logger.debug("Bus search rejected", extra={"missing": list(missing)})
            self._set_state(error=error.message)
            return []

        if onboarding.id == offboarding.id:
            error = ValidationError("Onboarding and offboarding stops must be different")
            self._logger.debug("Bus search rejected", extra={"stop_id": onboarding.id})
            self._set_state(error=error.message)
            return []

        token = self._next_token("search")
        self._set_state(loading=True, error=None)

        try:
            results = self._build_results(
                onboarding.id,
                offboarding.id,
                state.walking_distance_to_onboarding_km,
                state.walking_distance_from_offboarding_km,
            )
        except RouteFinderError as e:
            self._logger.error("Bus search failed", extra={"error": str(e)})
            self._apply_if_current(
                "search", token, loading=False, error=f"Failed to search buses: {e.message}"
            )
            return []
        except Exception:
            self._logger.exception("Unexpected error during bus search")
            self._apply_if_current("search", token, loading=False, error=_UNEXPECTED_ERROR)
            return []

        with self._lock:
            if self._tokens["search"] != token:
                self._logger.debug(
                    "Dropping superseded result", extra={"operation": "search", "token": token}
                )
                return results
            self._generation += 1
            self.cache.clear()
            current = self._state
            available = self._derive(results, current.filters, current.sort_by, current.sort_order)
            self._state = replace(
                current,
                all_buses=tuple(results),
                available_buses=available,
                phase=PlannerPhase.ROUTES_FOUND,
                loading=False,
                error=None if results else "No buses found between the selected stops",
            )
            new_state = self._state
        self.notify(new_state)
        return list(available)

    def _build_results(
        self,
        onboarding_id: str,
        offboarding_id: str,
        walking_to_km: float,
        walking_from_km: float,
    ) -> List[EnhancedBusResult]:
        results: List[EnhancedBusResult] = []
        for match in self.bus_routes.find_bus_routes(onboarding_id, offboarding_id):
            journey_km = self.bus_routes.calculate_journey_length(
                match.bus.id, match.onboarding_order, match.offboarding_order, match.direction
            )
            results.append(
                EnhancedBusResultFactory.create(
                    RawBusResult.from_match(match), journey_km, walking_to_km, walking_from_km
                )
            )
        return results

    # Filtering and sorting

    def _cache_key(
        self, filters: FilterConfig, sort_by: SortField, sort_order: SortOrder
    ) -> str:
        return json.dumps(
            {
                "filters": {
                    "is_ac": filters.is_ac,
                    "coach_types": sorted(c.value for c in filters.coach_types),
                },
                "sort_by": sort_by.value,
                "sort_order": sort_order.value,
                "generation": self._generation,
            },
            sort_keys=True,
        )

    def _derive(
        self,
        all_buses: Sequence[EnhancedBusResult],
        filters: FilterConfig,
        sort_by: SortField,
        sort_order: SortOrder,
    ) -> tuple[EnhancedBusResult, ...]:
        return self.cache.get_or_compute(
            self._cache_key(filters, sort_by, sort_order),
            lambda: tuple(
                sort_results(
                    BusFilterBuilder.from_config(filters).apply(all_buses),
                    sort_by,
                    sort_order,
                )
            ),
        )

    def _update_view(self, **changes: Any) -> None:
        """Apply filter/sort changes and re-derive the visible buses."""
        with self._lock:
            self.cache.clear()
            updated = replace(self._state, **changes)
            self._state = replace(
                updated,
                available_buses=self._derive(
                    updated.all_buses, updated.filters, updated.sort_by, updated.sort_order
                ),
                error=None,
            )
            state = self._state
        self.notify(state)

    def set_ac_filter(self, is_ac: Optional[bool]) -> None:
        self._update_view(filters=replace(self.get_state().filters, is_ac=is_ac))

    def set_coach_type_filter(self, coach_types: Sequence[Union[CoachType, str]]) -> None:
        try:
            normalized = tuple(CoachType(c) for c in coach_types)
        except ValueError as e:
            self._set_state(error=str(e))
            return
        self._update_view(filters=replace(self.get_state().filters, coach_types=normalized))

    def set_sort_by(self, sort_by: Union[SortField, str]) -> None:
        try:
            field_ = SortField(sort_by)
        except ValueError as e:
            self._set_state(error=str(e))
            return
        self._update_view(sort_by=field_)

    def set_sort_order(self, sort_order: Union[SortOrder, str]) -> None:
        try:
            order = SortOrder(sort_order)
        except ValueError as e:
            self._set_state(error=str(e))
            return
        self._update_view(sort_order=order)

    def clear_all_filters(self) -> None:
        self._update_view(filters=FilterConfig())

    def reset(self) -> None:
        """Return to the initial state; in-flight calls are discarded."""
        with self._lock:
            for key in self._tokens:
                self._tokens[key] += 1
            self._generation += 1
            self.cache.clear()
            self._state = self._initial_state()
            state = self._state
        self.notify(state)
