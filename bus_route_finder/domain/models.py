"""Immutable domain models for the Bus Route Finder.

All models are frozen dataclasses with slots. They carry no behaviour
beyond validation and simple derived properties, and have no external
dependencies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional


class Direction(str, Enum):
    """One of a bus's two independent, fixed stop orderings."""

    OUTBOUND = "outbound"
    INBOUND = "inbound"


class CoachType(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    LUXURY = "luxury"


class BusStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class SortField(str, Enum):
    """Fields the displayed bus list can be ordered by."""

    JOURNEY_LENGTH = "journey_length"
    ESTIMATED_TIME = "estimated_time"
    NAME = "name"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PlannerPhase(Enum):
    """Workflow phase of the route planner.

    Transitions are driven by explicit planner method calls:
    IDLE -> LOCATING -> STOPS_DISCOVERED -> STOPS_SELECTED -> ROUTES_FOUND
    """

    IDLE = auto()
    LOCATING = auto()
    STOPS_DISCOVERED = auto()
    STOPS_SELECTED = auto()
    ROUTES_FOUND = auto()


@dataclass(frozen=True, slots=True)
class Coordinate:
    """WGS84 coordinates in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        """Validate coordinate ranges."""
        if math.isnan(self.lat) or math.isnan(self.lng):
            raise ValueError(f"Invalid coordinates: lat={self.lat}, lng={self.lng}")
        if not -90 <= self.lat <= 90:
            raise ValueError(f"Latitude must be between -90 and 90, got {self.lat}")
        if not -180 <= self.lng <= 180:
            raise ValueError(
                f"Longitude must be between -180 and 180, got {self.lng}"
            )


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned lat/lng box used to pre-filter stop queries."""

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    def contains(self, coordinate: Coordinate) -> bool:
        return (
            self.min_lat <= coordinate.lat <= self.max_lat
            and self.min_lng <= coordinate.lng <= self.max_lng
        )

    @classmethod
    def around(cls, center: Coordinate, radius_meters: float) -> BoundingBox:
        """Build a box that fully encloses a circle around ``center``.

        Near the poles the longitude span degenerates, so the box widens
        to the full longitude range there.
        """
        meters_per_degree = 111_320.0
        lat_delta = radius_meters / meters_per_degree
        cos_lat = math.cos(math.radians(center.lat))
        if cos_lat < 1e-6:
            lng_delta = 180.0
        else:
            lng_delta = min(radius_meters / (meters_per_degree * cos_lat), 180.0)
        return cls(
            min_lat=max(center.lat - lat_delta, -90.0),
            min_lng=max(center.lng - lng_delta, -180.0),
            max_lat=min(center.lat + lat_delta, 90.0),
            max_lng=min(center.lng + lng_delta, 180.0),
        )


@dataclass(frozen=True, slots=True)
class Stop:
    """A physical boarding point, owned by the data store.

    Attributes:
        id: Unique stop identifier
        name: Human-readable stop name
        lat: Latitude in decimal degrees
        lng: Longitude in decimal degrees
        accessible: Whether the stop is wheelchair accessible
        created_at: Creation timestamp as stored, if known
    """

    id: str
    name: str
    lat: float
    lng: float
    accessible: bool = False
    created_at: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


@dataclass(frozen=True, slots=True)
class DiscoveredStop:
    """A stop annotated with its distance from a reference point.

    Attributes:
        stop: The underlying stop
        distance_meters: Distance from the reference point in meters
        distance_method: Name of the strategy that computed the distance
    """

    stop: Stop
    distance_meters: float
    distance_method: str

    @property
    def id(self) -> str:
        return self.stop.id

    @property
    def name(self) -> str:
        return self.stop.name

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000.0


@dataclass(frozen=True, slots=True)
class Bus:
    """Bus identity and amenities.

    Attributes:
        id: Unique bus identifier
        name: Display name (e.g. route number)
        status: Operational status; only active buses are matched
        is_ac: Whether the bus is air-conditioned
        coach_type: Coach category
    """

    id: str
    name: str
    status: BusStatus = BusStatus.ACTIVE
    is_ac: bool = False
    coach_type: CoachType = CoachType.STANDARD

    @property
    def is_active(self) -> bool:
        return self.status == BusStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class RouteSegment:
    """One entry of a bus's fixed, directional stop list.

    Attributes:
        bus_id: Owning bus
        direction: Which of the two orderings this entry belongs to
        stop_order: Position of the stop in that ordering
        stop: The stop at this position
        distance_to_next_km: Precomputed distance to the next stop, if known
        duration_to_next_s: Precomputed travel time to the next stop, if known
    """

    bus_id: str
    direction: Direction
    stop_order: int
    stop: Stop
    distance_to_next_km: Optional[float] = None
    duration_to_next_s: Optional[float] = None


@dataclass(frozen=True, slots=True)
class BusMatch:
    """A bus that connects an onboarding and an offboarding stop.

    Attributes:
        bus: The matching bus
        direction: Direction in which the connection is valid
        onboarding_order: Sequence position of the onboarding stop
        offboarding_order: Sequence position of the offboarding stop
        onboarding_stop: Stop where the rider boards
        offboarding_stop: Stop where the rider alights
        intermediate_segments: Segments from onboarding to offboarding, inclusive
    """

    bus: Bus
    direction: Direction
    onboarding_order: int
    offboarding_order: int
    onboarding_stop: Stop
    offboarding_stop: Stop
    intermediate_segments: tuple[RouteSegment, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.onboarding_order >= self.offboarding_order:
            raise ValueError(
                "Onboarding order must precede offboarding order, got "
                f"{self.onboarding_order} >= {self.offboarding_order}"
            )

    @property
    def num_stops(self) -> int:
        return self.offboarding_order - self.onboarding_order + 1


@dataclass(frozen=True, slots=True)
class RawBusResult:
    """Minimal bus identity plus the two endpoint stops."""

    id: str
    name: str
    is_ac: bool
    coach_type: CoachType
    onboarding_stop: Stop
    offboarding_stop: Stop
    direction: Direction = Direction.OUTBOUND

    @classmethod
    def from_match(cls, match: BusMatch) -> RawBusResult:
        return cls(
            id=match.bus.id,
            name=match.bus.name,
            is_ac=match.bus.is_ac,
            coach_type=match.bus.coach_type,
            onboarding_stop=match.onboarding_stop,
            offboarding_stop=match.offboarding_stop,
            direction=match.direction,
        )


@dataclass(frozen=True, slots=True)
class EnhancedBusResult:
    """A bus result with all journey, walking and time metrics.

    Distances are in kilometers, times in minutes.
    """

    id: str
    name: str
    is_ac: bool
    coach_type: CoachType
    onboarding_stop: Stop
    offboarding_stop: Stop
    direction: Direction
    journey_length_km: float
    walking_to_onboarding_km: float
    walking_from_offboarding_km: float
    total_walking_km: float
    total_distance_km: float
    estimated_journey_minutes: float
    estimated_walking_minutes: float
    estimated_total_minutes: float


@dataclass(frozen=True, slots=True)
class DistanceResult:
    """Distance between one origin and one destination.

    Attributes:
        distance_km: Distance in kilometers (``inf`` if unroutable)
        method: Name of the strategy that produced the value
        duration_seconds: Travel duration, when the strategy provides one
    """

    distance_km: float
    method: str
    duration_seconds: Optional[float] = None


@dataclass(frozen=True, slots=True)
class DistanceMatrix:
    """Origin x destination distances plus how they were computed.

    Attributes:
        rows: ``rows[i][j]`` is the distance from origin i to destination j
        method: Name of the strategy that produced the rows
        fallback_used: Whether the fallback strategy produced the rows
        primary_error: Error message from the primary strategy, if it failed
    """

    rows: tuple[tuple[DistanceResult, ...], ...]
    method: str
    fallback_used: bool = False
    primary_error: Optional[str] = None

    def row(self, index: int) -> tuple[DistanceResult, ...]:
        return self.rows[index]

    @property
    def is_empty(self) -> bool:
        return len(self.rows) == 0


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Stops found around a reference point and the method used."""

    stops: tuple[DiscoveredStop, ...]
    method: Optional[str]
    fallback_used: bool = False

    @property
    def is_empty(self) -> bool:
        return len(self.stops) == 0


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    """A free-text location resolved to coordinates."""

    name: str
    coordinate: Coordinate
    source: str = ""


@dataclass(frozen=True, slots=True)
class FilterConfig:
    """Active filter configuration held in planner state.

    Attributes:
        is_ac: ``True`` for AC only, ``False`` for non-AC only, ``None`` for both
        coach_types: Whitelist of coach types; empty means no restriction
    """

    is_ac: Optional[bool] = None
    coach_types: tuple[CoachType, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.is_ac is None and not self.coach_types


@dataclass(frozen=True, slots=True)
class PlannerState:
    """Single source of truth of the route planner.

    Instances are never mutated; the planner builds a new one for every
    change so observers can compare by identity.
    """

    phase: PlannerPhase = PlannerPhase.IDLE
    from_location: str = ""
    to_location: str = ""
    from_coords: Optional[Coordinate] = None
    to_coords: Optional[Coordinate] = None
    starting_threshold: int = 500
    destination_threshold: Optional[int] = 500
    starting_stops: tuple[DiscoveredStop, ...] = field(default_factory=tuple)
    destination_stops: tuple[DiscoveredStop, ...] = field(default_factory=tuple)
    starting_distance_method: Optional[str] = None
    destination_distance_method: Optional[str] = None
    selected_onboarding_stop: Optional[DiscoveredStop] = None
    selected_offboarding_stop: Optional[DiscoveredStop] = None
    walking_distance_to_onboarding_km: Optional[float] = None
    walking_distance_from_offboarding_km: Optional[float] = None
    all_buses: tuple[EnhancedBusResult, ...] = field(default_factory=tuple)
    available_buses: tuple[EnhancedBusResult, ...] = field(default_factory=tuple)
    filters: FilterConfig = field(default_factory=FilterConfig)
    sort_by: SortField = SortField.JOURNEY_LENGTH
    sort_order: SortOrder = SortOrder.ASC
    loading: bool = False
    error: Optional[str] = None
    warning: Optional[str] = None

    @property
    def has_both_stops(self) -> bool:
        return (
            self.selected_onboarding_stop is not None
            and self.selected_offboarding_stop is not None
        )
