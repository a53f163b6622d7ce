"""Bus route matching service.

Finds the buses that pass an onboarding stop before an offboarding stop
in the same direction, and measures the ride between them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..domain.errors import DistanceCalculationError
from ..domain.models import Bus, BusMatch, Direction, RouteSegment
from ..ports.stores import BusQuery, RouteStorePort
from .distance_calculator import DistanceCalculator

QueryModifier = Callable[[BusQuery], BusQuery]

_DIRECTION_ORDER = {Direction.OUTBOUND: 0, Direction.INBOUND: 1}


@dataclass
class BusRouteService:
    """Matches buses to stop pairs and computes journey lengths.

    Attributes:
        route_store: Source of buses and their stop sequences
        calculator: Used to fill gaps in stored segment distances
    """

    route_store: RouteStorePort
    calculator: Optional[DistanceCalculator] = None

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _candidate_buses(self, query_modifier: Optional[QueryModifier]) -> Dict[str, Bus]:
        query = self.route_store.query_buses().eq("status", "active")
        if query_modifier is not None:
            query = query_modifier(query)
        return {bus.id: bus for bus in query.execute()}

    def find_bus_routes(
        self,
        onboarding_stop_id: str,
        offboarding_stop_id: str,
        query_modifier: Optional[QueryModifier] = None,
    ) -> List[BusMatch]:
        """Find buses that travel from one stop to the other.

        Args:
            onboarding_stop_id: Stop where the rider boards.
            offboarding_stop_id: Stop where the rider alights.
            query_modifier: Optional narrowing of the bus query
                (see BusFilterBuilder.build_query_modifier).

        Returns:
            Matches ordered by bus id, then direction.
        """
        if onboarding_stop_id == offboarding_stop_id:
            self._logger.debug(
                "Onboarding and offboarding stop are the same",
                extra={"stop_id": onboarding_stop_id},
            )
            return []

        segments = self.route_store.segments_for_stops(
            [onboarding_stop_id, offboarding_stop_id]
        )

        grouped: Dict[Tuple[str, Direction], Dict[str, RouteSegment]] = {}
        for segment in segments:
            by_stop = grouped.setdefault((segment.bus_id, segment.direction), {})
            # a stop visited twice keeps its first position
            by_stop.setdefault(segment.stop.id, segment)

        buses = self._candidate_buses(query_modifier)

        matches: List[BusMatch] = []
        for (bus_id, direction), by_stop in grouped.items():
            bus = buses.get(bus_id)
            if bus is None:
                continue
            onboarding = by_stop.get(onboarding_stop_id)
            offboarding = by_stop.get(offboarding_stop_id)
            if onboarding is None or offboarding is None:
                continue
            if onboarding.stop_order >= offboarding.stop_order:
                continue

            intermediate = tuple(
                s
                for s in self.route_store.route_sequence(bus_id, direction)
                if onboarding.stop_order <= s.stop_order <= offboarding.stop_order
            )
            matches.append(
                BusMatch(
                    bus=bus,
                    direction=direction,
                    onboarding_order=onboarding.stop_order,
                    offboarding_order=offboarding.stop_order,
                    onboarding_stop=onboarding.stop,
                    offboarding_stop=offboarding.stop,
                    intermediate_segments=intermediate,
                )
            )

        matches.sort(key=lambda m: (m.bus.id, _DIRECTION_ORDER[m.direction]))
        self._logger.info(
            "Bus routes found",
            extra={
                "onboarding_stop_id": onboarding_stop_id,
                "offboarding_stop_id": offboarding_stop_id,
                "matches": len(matches),
            },
        )
        return matches

    def calculate_journey_length(
        self,
        bus_id: str,
        onboarding_order: int,
        offboarding_order: int,
        direction: Direction,
    ) -> float:
        """Sum the segment distances between two positions, in km."""
        sequence = list(self.route_store.route_sequence(bus_id, direction))
        if not sequence:
            self._logger.debug(
                "No route segments found",
                extra={"bus_id": bus_id, "direction": str(direction)},
            )
            return 0.0

        total = 0.0
        for index, segment in enumerate(sequence):
            if not onboarding_order <= segment.stop_order < offboarding_order:
                continue
            if segment.distance_to_next_km is not None:
                total += segment.distance_to_next_km
                continue

            following = sequence[index + 1] if index + 1 < len(sequence) else None
            total += self._fill_missing_distance(segment, following)
        return total

    def _fill_missing_distance(
        self, segment: RouteSegment, following: Optional[RouteSegment]
    ) -> float:
        if self.calculator is None or following is None:
            self._logger.warning(
                "Segment distance missing and cannot be computed",
                extra={"bus_id": segment.bus_id, "stop_order": segment.stop_order},
            )
            return 0.0

        self._logger.warning(
            "Segment distance missing, computing on demand",
            extra={
                "bus_id": segment.bus_id,
                "stop_order": segment.stop_order,
                "from_stop": segment.stop.id,
                "to_stop": following.stop.id,
            },
        )
        try:
            result = self.calculator.calculate_distance(
                segment.stop.coordinate, following.stop.coordinate
            )
        except DistanceCalculationError as e:
            self._logger.error(
                "Failed to compute missing segment distance",
                extra={
                    "bus_id": segment.bus_id,
                    "stop_order": segment.stop_order,
                    "error": str(e),
                },
            )
            return 0.0
        if not math.isfinite(result.distance_km):
            self._logger.error(
                "No route between consecutive stops",
                extra={"bus_id": segment.bus_id, "stop_order": segment.stop_order},
            )
            return 0.0
        return result.distance_km
