"""Tests for the dependency injection container."""

import pytest

from bus_route_finder.adapters.geocoding import NominatimGeocoderAdapter
from bus_route_finder.adapters.store import CSVTransitRepository
from bus_route_finder.config import AppConfig
from bus_route_finder.container import Container, get_container, reset_container
from bus_route_finder.ports import GeocoderPort, RouteStorePort, StopStorePort
from bus_route_finder.services import (
    BusRouteService,
    DistanceCalculator,
    RoutePlanner,
    StopDiscoveryService,
)


@pytest.fixture
def container():
    return Container.create_default(AppConfig())


def test_register_and_resolve_singleton():
    container = Container()
    container.register(str, lambda: object())

    assert container.resolve(str) is container.resolve(str)


def test_non_singleton_builds_new_instances():
    container = Container()
    container.register(str, lambda: object(), singleton=False)

    assert container.resolve(str) is not container.resolve(str)


def test_unregistered_type_raises():
    with pytest.raises(KeyError):
        Container().resolve(int)


def test_default_bindings(container):
    assert isinstance(container.resolve(StopStorePort), CSVTransitRepository)
    assert container.resolve(StopStorePort) is container.resolve(RouteStorePort)
    assert isinstance(container.resolve(GeocoderPort), NominatimGeocoderAdapter)
    assert isinstance(container.resolve(DistanceCalculator), DistanceCalculator)

    discovery = container.resolve(StopDiscoveryService)
    routes = container.resolve(BusRouteService)
    assert discovery.calculator is routes.calculator


def test_each_planner_has_its_own_state(container):
    first = container.resolve(RoutePlanner)
    second = container.resolve(RoutePlanner)

    assert first is not second
    assert first.cache is not second.cache
    assert first.stop_discovery is second.stop_discovery


def test_override_registration(container):
    sentinel = object()
    container.register(StopStorePort, lambda: sentinel)

    assert container.resolve(StopStorePort) is sentinel


def test_global_container_reset():
    reset_container()
    first = get_container()

    assert get_container() is first
    reset_container()
    assert get_container() is not first
    reset_container()
