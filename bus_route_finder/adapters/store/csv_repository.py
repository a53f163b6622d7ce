"""CSV transit repository adapter.

Loads stops, buses and route stop sequences from three CSV files:

- stops.csv: id,name,latitude,longitude,accessible,created_at
- buses.csv: id,name,status,is_ac,coach_type
- route_stops.csv: bus_id,stop_id,stop_order,direction,distance_to_next,duration_to_next

``distance_to_next`` is in kilometers, ``duration_to_next`` in seconds;
both may be empty. Parsed data is cached until clear_cache().
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ...config import DataConfig, get_config
from ...domain.errors import StoreError
from ...domain.models import (
    BoundingBox,
    Bus,
    BusStatus,
    CoachType,
    Direction,
    RouteSegment,
    Stop,
)
from .memory_repository import InMemoryBusQuery, InMemoryTransitRepository

_TRUE_VALUES = {"1", "true", "t", "yes", "y"}


def _parse_bool(raw: Optional[str]) -> bool:
    return (raw or "").strip().lower() in _TRUE_VALUES


def _parse_optional_float(raw: Optional[str]) -> Optional[float]:
    raw = (raw or "").strip()
    return float(raw) if raw else None


@dataclass
class CSVTransitRepository:
    """Transit store that loads from CSV files.

    Implements StopStorePort and RouteStorePort.

    Attributes:
        config: Data configuration (directory, file names)
    """

    config: DataConfig = field(default_factory=lambda: get_config().data)
    _logger: logging.Logger = field(init=False, repr=False)

    _repository: Optional[InMemoryTransitRepository] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def load(self) -> InMemoryTransitRepository:
        """Parse the CSV files once and return the in-memory view.

        Raises:
            StoreError: If a file is missing or malformed.
        """
        if self._repository is not None:
            return self._repository

        self._logger.debug(
            "Loading transit data",
            extra={"data_dir": str(self.config.data_dir)},
        )

        try:
            stops = self._load_stops(self.config.stops_path)
            buses = self._load_buses(self.config.buses_path)
            segments = self._load_segments(
                self.config.route_stops_path, {s.id: s for s in stops}
            )
        except (OSError, KeyError, ValueError) as e:
            raise StoreError(
                f"Failed to load transit data from {self.config.data_dir}",
                operation="load",
                cause=e,
            )

        self._repository = InMemoryTransitRepository(
            stops=stops, buses=buses, segments=segments
        )
        self._logger.info(
            "Transit data loaded",
            extra={
                "stops": len(stops),
                "buses": len(buses),
                "segments": len(segments),
            },
        )
        return self._repository

    def _load_stops(self, path: Path) -> List[Stop]:
        stops: List[Stop] = []
        with path.open(encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                stop_id = (row.get("id") or "").strip()
                if not stop_id:
                    continue
                stops.append(
                    Stop(
                        id=stop_id,
                        name=(row.get("name") or "").strip() or stop_id,
                        lat=float(row["latitude"]),
                        lng=float(row["longitude"]),
                        accessible=_parse_bool(row.get("accessible")),
                        created_at=(row.get("created_at") or "").strip() or None,
                    )
                )
        return stops

    def _load_buses(self, path: Path) -> List[Bus]:
        buses: List[Bus] = []
        with path.open(encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                bus_id = (row.get("id") or "").strip()
                if not bus_id:
                    continue
                buses.append(
                    Bus(
                        id=bus_id,
                        name=(row.get("name") or "").strip() or bus_id,
                        status=BusStatus((row.get("status") or "active").strip()),
                        is_ac=_parse_bool(row.get("is_ac")),
                        coach_type=CoachType(
                            (row.get("coach_type") or "standard").strip()
                        ),
                    )
                )
        return buses

    def _load_segments(self, path: Path, stops: Dict[str, Stop]) -> List[RouteSegment]:
        segments: List[RouteSegment] = []
        with path.open(encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                stop_id = (row.get("stop_id") or "").strip()
                stop = stops.get(stop_id)
                if stop is None:
                    self._logger.warning(
                        "Route stop references unknown stop",
                        extra={"bus_id": row.get("bus_id"), "stop_id": stop_id},
                    )
                    continue
                segments.append(
                    RouteSegment(
                        bus_id=row["bus_id"].strip(),
                        direction=Direction(row["direction"].strip()),
                        stop_order=int(row["stop_order"]),
                        stop=stop,
                        distance_to_next_km=_parse_optional_float(
                            row.get("distance_to_next")
                        ),
                        duration_to_next_s=_parse_optional_float(
                            row.get("duration_to_next")
                        ),
                    )
                )
        return segments

    def list_stops(self, bounds: Optional[BoundingBox] = None) -> List[Stop]:
        return self.load().list_stops(bounds)

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        return self.load().get_stop(stop_id)

    def search_stops(self, query: str, limit: int = 10) -> List[Stop]:
        return self.load().search_stops(query, limit)

    def segments_for_stops(self, stop_ids: Iterable[str]) -> List[RouteSegment]:
        return self.load().segments_for_stops(stop_ids)

    def route_sequence(self, bus_id: str, direction: Direction) -> List[RouteSegment]:
        return self.load().route_sequence(bus_id, direction)

    def get_bus(self, bus_id: str) -> Optional[Bus]:
        return self.load().get_bus(bus_id)

    def query_buses(self) -> InMemoryBusQuery:
        return self.load().query_buses()

    def clear_cache(self) -> None:
        """Drop parsed data so the next read reloads the files."""
        self._repository = None
        self._logger.debug("Transit data cache cleared")
