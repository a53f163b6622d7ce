"""Store ports - Read-only access to stops, buses and route sequences.

The engine treats its data store as an opaque queryable collection.
Adapters may back these ports with CSV files, a database or plain
Python sequences.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import BoundingBox, Bus, Direction, RouteSegment, Stop


class BusQuery(Protocol):
    """Chainable bus query, narrowed before execution.

    Column names follow the stored schema (``is_ac``, ``coach_type``,
    ``status``).
    """

    def eq(self, column: str, value: Any) -> BusQuery:
        ...

    def in_(self, column: str, values: Iterable[Any]) -> BusQuery:
        ...

    def execute(self) -> Sequence[Bus]:
        ...


class StopStorePort(Protocol):
    """Port for reading stops."""

    def list_stops(self, bounds: Optional[BoundingBox] = None) -> Sequence[Stop]:
        """List stops, optionally restricted to a bounding box.

        Args:
            bounds: Only return stops inside this box when given.

        Returns:
            Stops in store order.

        Raises:
            StoreError: If the store cannot be read.
        """
        ...

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        ...

    def search_stops(self, query: str, limit: int = 10) -> Sequence[Stop]:
        """Case-insensitive name search, best matches first."""
        ...


class RouteStorePort(Protocol):
    """Port for reading buses and their directional stop sequences."""

    def segments_for_stops(self, stop_ids: Iterable[str]) -> Sequence[RouteSegment]:
        """Return every route segment positioned at one of the given stops."""
        ...

    def route_sequence(self, bus_id: str, direction: Direction) -> Sequence[RouteSegment]:
        """Return a bus's full stop sequence in one direction, ordered."""
        ...

    def get_bus(self, bus_id: str) -> Optional[Bus]:
        ...

    def query_buses(self) -> BusQuery:
        """Start a new bus query over all buses."""
        ...
