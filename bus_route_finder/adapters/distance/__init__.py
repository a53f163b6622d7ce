"""Distance adapters - Implementations of DistanceStrategyPort.

Available implementations:
- OSRMStrategy: Road-network distances from an OSRM table endpoint
- HaversineStrategy: Great-circle distances, always available
"""

from .haversine_strategy import HaversineStrategy, haversine_km
from .osrm_strategy import OSRMStrategy

__all__ = ["OSRMStrategy", "HaversineStrategy", "haversine_km"]
