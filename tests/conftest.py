"""Shared fixtures: a small in-memory transit network and services."""

from __future__ import annotations

from typing import List, Sequence

import pytest

from bus_route_finder.adapters.cache import InMemoryCache
from bus_route_finder.adapters.distance import HaversineStrategy
from bus_route_finder.adapters.store import InMemoryTransitRepository
from bus_route_finder.config import AppConfig, DiscoveryConfig, reset_config
from bus_route_finder.domain.errors import DistanceCalculationError
from bus_route_finder.domain.models import (
    Bus,
    BusStatus,
    CoachType,
    Coordinate,
    Direction,
    DistanceResult,
    RouteSegment,
    Stop,
)
from bus_route_finder.services import (
    BusRouteService,
    DistanceCalculator,
    RoutePlanner,
    StopDiscoveryService,
)

# 0.001 degrees of latitude is ~111.2 m
REFERENCE = Coordinate(lat=23.75, lng=90.39)


class FakeStrategy:
    """Configurable distance strategy for tests."""

    def __init__(self, name="Fake", available=True, error=None, distance_km=1.0):
        self.name = name
        self.available = available
        self.error = error
        self.distance_km = distance_km
        self.calls = 0

    def is_available(self) -> bool:
        return self.available

    def calculate_distances(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]):
        self.calls += 1
        if self.error is not None:
            raise DistanceCalculationError(self.error, strategy=self.name)
        return [
            [DistanceResult(distance_km=self.distance_km, method=self.name) for _ in destinations]
            for _ in origins
        ]


def make_stop(stop_id: str, lat: float, lng: float = 90.39, name: str = "") -> Stop:
    return Stop(id=stop_id, name=name or f"Stop {stop_id}", lat=lat, lng=lng)


def make_sequence(
    bus_id: str,
    stops: Sequence[Stop],
    distances: Sequence[float | None],
    direction: Direction = Direction.OUTBOUND,
) -> List[RouteSegment]:
    """Segments with zero-based orders; the last stop has no next distance."""
    segments = []
    for order, stop in enumerate(stops):
        segments.append(
            RouteSegment(
                bus_id=bus_id,
                direction=direction,
                stop_order=order,
                stop=stop,
                distance_to_next_km=distances[order] if order < len(distances) else None,
            )
        )
    return segments


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(discovery=DiscoveryConfig(use_bounding_box=True, store_retry_wait_seconds=0))


@pytest.fixture
def line_stops() -> List[Stop]:
    """Eight stops due north of REFERENCE, ~111 m apart at first."""
    lats = [23.7510, 23.7530, 23.7600, 23.7700, 23.7800, 23.7900, 23.8000, 23.9000]
    return [make_stop(f"s{i}", lat) for i, lat in enumerate(lats)]


@pytest.fixture
def repository(line_stops) -> InMemoryTransitRepository:
    s = line_stops
    buses = [
        Bus(id="b1", name="Bikash", is_ac=False, coach_type=CoachType.STANDARD),
        Bus(id="b2", name="airport express", is_ac=True, coach_type=CoachType.EXPRESS),
        Bus(id="b3", name="Green Line", is_ac=True, coach_type=CoachType.LUXURY),
        Bus(id="b9", name="Retired", status=BusStatus.INACTIVE),
    ]
    segments = (
        # b1 visits every stop outbound and returns inbound
        make_sequence("b1", s, [1, 1, 2, 1, 1, 1, 1])
        + make_sequence("b1", list(reversed(s)), [1, 1, 1, 1, 2, 1, 1], Direction.INBOUND)
        # b2 skips stops
        + make_sequence("b2", [s[0], s[3], s[6]], [3.0, 2.5])
        # b3 travels the opposite way only
        + make_sequence("b3", [s[6], s[3], s[0]], [2.5, 3.0])
        + make_sequence("b9", [s[0], s[3], s[6]], [3.0, 2.5])
    )
    return InMemoryTransitRepository(stops=s, buses=buses, segments=segments)


@pytest.fixture
def haversine_calculator() -> DistanceCalculator:
    return DistanceCalculator(
        primary=FakeStrategy(name="OSRM", available=False), fallback=HaversineStrategy()
    )


@pytest.fixture
def discovery(repository, haversine_calculator, app_config) -> StopDiscoveryService:
    return StopDiscoveryService(
        stop_store=repository, calculator=haversine_calculator, config=app_config.discovery
    )


@pytest.fixture
def bus_routes(repository, haversine_calculator) -> BusRouteService:
    return BusRouteService(route_store=repository, calculator=haversine_calculator)


@pytest.fixture
def planner(discovery, bus_routes, repository, app_config) -> RoutePlanner:
    return RoutePlanner(
        stop_discovery=discovery,
        bus_routes=bus_routes,
        stop_store=repository,
        cache=InMemoryCache(name="derived", max_size=16),
        config=app_config,
    )
