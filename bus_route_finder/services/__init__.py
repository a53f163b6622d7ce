"""Application services - the route discovery and ranking engine.

Services orchestrate ports and domain models:
- DistanceCalculator: primary/fallback distance strategies
- StopDiscoveryService: stops within a walking radius
- BusRouteService: buses connecting two stops, journey lengths
- EnhancedBusResultFactory: journey, walking and time metrics
- BusFilterBuilder / sort_results: filtering and ordering
- RoutePlanner: the observable planning workflow
"""

from .bus_routes import BusRouteService
from .distance_calculator import DistanceCalculator
from .enhancement import (
    BUS_SPEED_KMH,
    WALKING_SPEED_KMH,
    EnhancedBusResultFactory,
    JourneyLengthLayer,
    TimeEstimateLayer,
    WalkingDistanceLayer,
)
from .filters import BusFilterBuilder, sort_results
from .planner import RoutePlanner
from .stop_discovery import StopDiscoveryService

__all__ = [
    "DistanceCalculator",
    "StopDiscoveryService",
    "BusRouteService",
    "EnhancedBusResultFactory",
    "JourneyLengthLayer",
    "WalkingDistanceLayer",
    "TimeEstimateLayer",
    "BUS_SPEED_KMH",
    "WALKING_SPEED_KMH",
    "BusFilterBuilder",
    "sort_results",
    "RoutePlanner",
]
