"""Dependency injection container.

Registers and resolves the application's ports and services without an
external framework. Adapters are instantiated lazily on first resolve,
and registrations can be overridden in tests.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .config import AppConfig, get_config


@dataclass
class Container:
    """Dependency injection container.

    Usage:
        # Production
        container = Container.create_default()
        planner = container.resolve(RoutePlanner)

        # Testing
        container = Container()
        container.register(StopStorePort, lambda: InMemoryTransitRepository(...))
        store = container.resolve(StopStorePort)

    Attributes:
        config: Application configuration
    """

    config: AppConfig = field(default_factory=get_config)

    _factories: Dict[type[Any], Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _singletons: Dict[type[Any], Any] = field(default_factory=dict, repr=False)
    _singleton_types: set[type[Any]] = field(default_factory=set, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Register a factory for a port or service type.

        Args:
            port_type: The type (usually a Protocol) to register.
            factory: A callable that creates instances of the type.
            singleton: If True, only one instance is created.
        """
        with self._lock:
            self._factories[port_type] = factory
            self._singletons.pop(port_type, None)
            if singleton:
                self._singleton_types.add(port_type)
            else:
                self._singleton_types.discard(port_type)

    def resolve(self, port_type: type[Any]) -> Any:
        """Resolve an instance of a registered type.

        Raises:
            KeyError: If the type is not registered.
        """
        with self._lock:
            if port_type not in self._factories:
                raise KeyError(f"Type not registered: {port_type}")

            if port_type in self._singleton_types:
                if port_type not in self._singletons:
                    self._singletons[port_type] = self._factories[port_type]()
                return self._singletons[port_type]

            return self._factories[port_type]()

    def is_registered(self, port_type: type[Any]) -> bool:
        return port_type in self._factories

    def clear_singletons(self) -> None:
        """Drop cached singletons so the next resolve builds fresh ones."""
        with self._lock:
            self._singletons.clear()

    def clear_all(self) -> None:
        with self._lock:
            self._factories.clear()
            self._singletons.clear()
            self._singleton_types.clear()

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Create a container with the production bindings.

        The CSV repository backs both store ports, the calculator pairs
        OSRM with Haversine, and the planner receives every service.
        """
        from .adapters.cache import InMemoryCache
        from .adapters.geocoding import NominatimGeocoderAdapter
        from .adapters.store import CSVTransitRepository
        from .ports.cache import CachePort
        from .ports.geocoding import GeocoderPort
        from .ports.stores import RouteStorePort, StopStorePort
        from .services import (
            BusRouteService,
            DistanceCalculator,
            RoutePlanner,
            StopDiscoveryService,
        )

        config = config or get_config()
        container = cls(config=config)

        # One repository instance serves both store ports
        repository = CSVTransitRepository(config.data)
        container.register(StopStorePort, lambda: repository)
        container.register(RouteStorePort, lambda: repository)

        container.register(
            GeocoderPort,
            lambda: NominatimGeocoderAdapter(
                config.geocoding,
                InMemoryCache(
                    name="geocode",
                    default_ttl_seconds=config.cache.geocode_ttl_seconds,
                ),
            ),
        )

        container.register(
            DistanceCalculator,
            lambda: DistanceCalculator.create_default(config),
        )
        container.register(
            StopDiscoveryService,
            lambda: StopDiscoveryService(
                stop_store=container.resolve(StopStorePort),
                calculator=container.resolve(DistanceCalculator),
                config=config.discovery,
            ),
        )
        container.register(
            BusRouteService,
            lambda: BusRouteService(
                route_store=container.resolve(RouteStorePort),
                calculator=container.resolve(DistanceCalculator),
            ),
        )

        # Derived bus lists; one cache per planner
        container.register(
            CachePort,
            lambda: InMemoryCache(name="derived", max_size=config.cache.derived_max_size),
            singleton=False,
        )

        # A planner holds per-session state, so each resolve gets a new one
        container.register(
            RoutePlanner,
            lambda: RoutePlanner(
                stop_discovery=container.resolve(StopDiscoveryService),
                bus_routes=container.resolve(BusRouteService),
                stop_store=container.resolve(StopStorePort),
                geocoder=container.resolve(GeocoderPort),
                cache=container.resolve(CachePort),
                config=config,
            ),
            singleton=False,
        )

        return container


# Global default container (lazy initialized)
_default_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get the default application container, creating it if needed."""
    global _default_container
    if _default_container is None:
        with _container_lock:
            if _default_container is None:
                _default_container = Container.create_default()
    return _default_container


def reset_container() -> None:
    """Reset the default container.

    Call this in tests to ensure a fresh container.
    """
    global _default_container
    with _container_lock:
        if _default_container is not None:
            _default_container.clear_all()
        _default_container = None
