"""Ports layer - Abstract interfaces (Protocols) for the application.

Ports define the contracts between the application core and external
adapters: distance strategies, the transit data store, geocoding and
caching.
"""

from .cache import CachePort
from .distance import DistanceStrategyPort
from .geocoding import GeocoderPort
from .stores import BusQuery, RouteStorePort, StopStorePort

__all__ = [
    # Distance
    "DistanceStrategyPort",
    # Stores
    "StopStorePort",
    "RouteStorePort",
    "BusQuery",
    # Geocoding
    "GeocoderPort",
    # Cache
    "CachePort",
]
