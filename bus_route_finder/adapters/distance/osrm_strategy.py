"""OSRM road-network distance strategy.

Uses the OSRM ``table`` service to get road distances and durations for
a whole origin x destination matrix. Accurate for walking legs along
streets, but depends on an external server that may be unreachable.

Request shape:
    GET {base}/table/v1/{profile}/{lng,lat;lng,lat;...}
        ?annotations=distance,duration&sources=0;1&destinations=2;3

Destinations are split into chunks so no single request carries more
than ``max_locations`` coordinates.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from ...config import RoutingConfig, get_config
from ...domain.errors import DistanceCalculationError
from ...domain.models import Coordinate, DistanceResult


def _format_coordinates(coordinates: Sequence[Coordinate]) -> str:
    # OSRM expects lng,lat pairs
    return ";".join(f"{c.lng:.6f},{c.lat:.6f}" for c in coordinates)


@dataclass
class OSRMStrategy:
    """Distance strategy backed by an OSRM server.

    Attributes:
        config: Routing configuration (base URL, profile, timeouts)
        session: HTTP session reused across requests
    """

    config: RoutingConfig = field(default_factory=lambda: get_config().routing)
    session: requests.Session = field(default_factory=requests.Session, repr=False)
    name: str = "OSRM"

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self.session.headers.setdefault("User-Agent", self.config.user_agent)

    @property
    def base_url(self) -> str:
        return self.config.osrm_base_url.rstrip("/")

    def is_available(self) -> bool:
        """Probe the table endpoint with a trivial request."""
        url = f"{self.base_url}/table/v1/{self.config.profile}/0,0;0,0"
        try:
            response = self.session.get(
                url,
                params={"annotations": "distance"},
                timeout=self.config.availability_timeout_seconds,
            )
        except requests.RequestException as e:
            self._logger.info(
                "OSRM availability probe failed",
                extra={"url": url, "error": str(e)},
            )
            return False
        return response.ok

    def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> List[List[DistanceResult]]:
        """Calculate road distances for every origin/destination pair.

        Raises:
            DistanceCalculationError: On timeouts, connection failures,
                HTTP errors, non-Ok OSRM codes or malformed payloads.
        """
        if not origins or not destinations:
            return [[] for _ in origins]

        chunk_size = self.config.max_locations - len(origins)
        if chunk_size < 1:
            raise DistanceCalculationError(
                f"Too many origins for one OSRM request ({len(origins)})",
                strategy=self.name,
            )

        rows: List[List[DistanceResult]] = [[] for _ in origins]
        for start in range(0, len(destinations), chunk_size):
            chunk = destinations[start : start + chunk_size]
            chunk_rows = self._request_table(origins, chunk)
            for row, chunk_row in zip(rows, chunk_rows):
                row.extend(chunk_row)

        self._logger.debug(
            "OSRM matrix computed",
            extra={"origins": len(origins), "destinations": len(destinations)},
        )
        return rows

    def _request_table(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> List[List[DistanceResult]]:
        coordinates = _format_coordinates([*origins, *destinations])
        url = f"{self.base_url}/table/v1/{self.config.profile}/{coordinates}"
        params = {
            "annotations": "distance,duration",
            "sources": ";".join(str(i) for i in range(len(origins))),
            "destinations": ";".join(
                str(len(origins) + j) for j in range(len(destinations))
            ),
        }

        try:
            response = self.session.get(
                url, params=params, timeout=self.config.timeout_seconds
            )
        except requests.Timeout as e:
            raise DistanceCalculationError(
                f"OSRM request timed out after {self.config.timeout_seconds}s",
                strategy=self.name,
                cause=e,
            )
        except requests.RequestException as e:
            raise DistanceCalculationError(
                "OSRM service is unreachable",
                strategy=self.name,
                cause=e,
            )

        if not response.ok:
            raise DistanceCalculationError(
                f"OSRM API error: {response.status_code} {response.reason}",
                strategy=self.name,
            )

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as e:
            raise DistanceCalculationError(
                "Invalid JSON from OSRM service", strategy=self.name, cause=e
            )

        if not isinstance(data, dict):
            raise DistanceCalculationError(
                "Invalid response format from OSRM service", strategy=self.name
            )

        if str(data.get("code", "")).lower() != "ok":
            raise DistanceCalculationError(
                f"OSRM API error: {data.get('message') or data.get('code')}",
                strategy=self.name,
            )

        distances = data.get("distances")
        if (
            not isinstance(distances, list)
            or len(distances) != len(origins)
            or any(
                not isinstance(r, list) or len(r) != len(destinations)
                for r in distances
            )
        ):
            raise DistanceCalculationError(
                "Invalid response format from OSRM service", strategy=self.name
            )
        durations = data.get("durations")
        if not isinstance(durations, list) or len(durations) != len(origins):
            durations = None

        try:
            return [
                self._build_row(distance_row, durations[i] if durations else None)
                for i, distance_row in enumerate(distances)
            ]
        except (TypeError, ValueError, AttributeError, IndexError) as e:
            raise DistanceCalculationError(
                "Invalid response format from OSRM service",
                strategy=self.name,
                cause=e,
            )

    def _build_row(
        self, distance_row: List[Any], duration_row: Optional[Any]
    ) -> List[DistanceResult]:
        if not isinstance(duration_row, list):
            duration_row = None

        row: List[DistanceResult] = []
        for j, meters in enumerate(distance_row):
            duration = (
                duration_row[j]
                if duration_row is not None and j < len(duration_row)
                else None
            )
            row.append(
                DistanceResult(
                    # null means no route between the pair
                    distance_km=float(meters) / 1000.0 if meters is not None else math.inf,
                    method=self.name,
                    duration_seconds=float(duration) if duration is not None else None,
                )
            )
        return row
