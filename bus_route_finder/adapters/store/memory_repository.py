"""In-memory transit repository.

Implements StopStorePort and RouteStorePort over plain Python
sequences. The CSV repository loads its files into one of these, and
tests build small networks with it directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ...domain.models import BoundingBox, Bus, Direction, RouteSegment, Stop


def _normalize(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


_BUS_COLUMNS: Dict[str, Callable[[Bus], Any]] = {
    "id": lambda bus: bus.id,
    "name": lambda bus: bus.name,
    "status": lambda bus: bus.status.value,
    "is_ac": lambda bus: bus.is_ac,
    "coach_type": lambda bus: bus.coach_type.value,
}


@dataclass(frozen=True)
class InMemoryBusQuery:
    """Chainable bus query; every call returns a narrowed copy."""

    buses: Tuple[Bus, ...]
    predicates: Tuple[Callable[[Bus], bool], ...] = ()

    def _column(self, column: str) -> Callable[[Bus], Any]:
        try:
            return _BUS_COLUMNS[column]
        except KeyError:
            raise ValueError(f"Unknown bus column: {column!r}") from None

    def eq(self, column: str, value: Any) -> InMemoryBusQuery:
        getter = self._column(column)
        expected = _normalize(value)
        return InMemoryBusQuery(
            self.buses, self.predicates + (lambda bus: getter(bus) == expected,)
        )

    def in_(self, column: str, values: Iterable[Any]) -> InMemoryBusQuery:
        getter = self._column(column)
        allowed = frozenset(_normalize(v) for v in values)
        return InMemoryBusQuery(
            self.buses, self.predicates + (lambda bus: getter(bus) in allowed,)
        )

    def execute(self) -> List[Bus]:
        return [bus for bus in self.buses if all(p(bus) for p in self.predicates)]


@dataclass
class InMemoryTransitRepository:
    """Stop, bus and route-sequence store held in memory.

    Attributes:
        stops: All stops, in store order
        buses: All buses
        segments: Route segments for every bus and direction
    """

    stops: Sequence[Stop] = field(default_factory=list)
    buses: Sequence[Bus] = field(default_factory=list)
    segments: Sequence[RouteSegment] = field(default_factory=list)

    _stops_by_id: Dict[str, Stop] = field(init=False, repr=False)
    _buses_by_id: Dict[str, Bus] = field(init=False, repr=False)
    _sequences: Dict[Tuple[str, Direction], List[RouteSegment]] = field(
        init=False, repr=False
    )
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self.stops = tuple(self.stops)
        self.buses = tuple(self.buses)
        self.segments = tuple(self.segments)
        self._stops_by_id = {stop.id: stop for stop in self.stops}
        self._buses_by_id = {bus.id: bus for bus in self.buses}

        self._sequences = {}
        for segment in self.segments:
            key = (segment.bus_id, segment.direction)
            self._sequences.setdefault(key, []).append(segment)
        for sequence in self._sequences.values():
            sequence.sort(key=lambda s: s.stop_order)

    # StopStorePort

    def list_stops(self, bounds: Optional[BoundingBox] = None) -> List[Stop]:
        if bounds is None:
            return list(self.stops)
        return [stop for stop in self.stops if bounds.contains(stop.coordinate)]

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        return self._stops_by_id.get(stop_id)

    def search_stops(self, query: str, limit: int = 10) -> List[Stop]:
        """Name search: exact, then prefix, then substring matches."""
        needle = query.strip().lower()
        if not needle:
            return []

        def rank(stop: Stop) -> int:
            name = stop.name.lower()
            if name == needle:
                return 0
            if name.startswith(needle):
                return 1
            return 2

        matches = [stop for stop in self.stops if needle in stop.name.lower()]
        matches.sort(key=rank)
        return matches[:limit]

    # RouteStorePort

    def segments_for_stops(self, stop_ids: Iterable[str]) -> List[RouteSegment]:
        wanted = set(stop_ids)
        return [s for s in self.segments if s.stop.id in wanted]

    def route_sequence(self, bus_id: str, direction: Direction) -> List[RouteSegment]:
        return list(self._sequences.get((bus_id, Direction(direction)), ()))

    def get_bus(self, bus_id: str) -> Optional[Bus]:
        return self._buses_by_id.get(bus_id)

    def query_buses(self) -> InMemoryBusQuery:
        return InMemoryBusQuery(tuple(self.buses))
