"""Haversine (great-circle) distance strategy.

Straight-line distance on a spherical Earth. Needs no external service,
so it is always available and serves as the fallback when the road
network router cannot be reached.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from ...domain.models import Coordinate, DistanceResult

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: Coordinate, destination: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    lat1, lng1 = math.radians(origin.lat), math.radians(origin.lng)
    lat2, lng2 = math.radians(destination.lat), math.radians(destination.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


@dataclass
class HaversineStrategy:
    """Distance strategy using the Haversine formula."""

    name: str = "Haversine"

    def is_available(self) -> bool:
        return True

    def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> List[List[DistanceResult]]:
        return [
            [
                DistanceResult(distance_km=haversine_km(origin, dest), method=self.name)
                for dest in destinations
            ]
            for origin in origins
        ]
