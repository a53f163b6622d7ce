"""Domain layer - Core models and errors.

This module contains immutable domain models and typed errors
used throughout the application. No external dependencies.
"""

from .errors import (
    ConfigurationError,
    DistanceCalculationError,
    GeocodingError,
    InvalidThresholdError,
    MissingSelectionError,
    RouteFinderError,
    StoreError,
    ValidationError,
)
from .models import (
    BoundingBox,
    Bus,
    BusMatch,
    BusStatus,
    CoachType,
    Coordinate,
    DiscoveredStop,
    DiscoveryResult,
    Direction,
    DistanceMatrix,
    DistanceResult,
    EnhancedBusResult,
    FilterConfig,
    PlannerPhase,
    PlannerState,
    RawBusResult,
    ResolvedLocation,
    RouteSegment,
    SortField,
    SortOrder,
    Stop,
)

__all__ = [
    # Models
    "Coordinate",
    "BoundingBox",
    "Stop",
    "DiscoveredStop",
    "DiscoveryResult",
    "Bus",
    "BusStatus",
    "CoachType",
    "Direction",
    "RouteSegment",
    "BusMatch",
    "RawBusResult",
    "EnhancedBusResult",
    "DistanceResult",
    "DistanceMatrix",
    "ResolvedLocation",
    "FilterConfig",
    "SortField",
    "SortOrder",
    "PlannerPhase",
    "PlannerState",
    # Errors
    "RouteFinderError",
    "ValidationError",
    "InvalidThresholdError",
    "MissingSelectionError",
    "DistanceCalculationError",
    "StoreError",
    "GeocodingError",
    "ConfigurationError",
]
