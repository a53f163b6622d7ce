"""Distance calculator with explicit strategy fallback.

Holds a primary strategy (road network) and a fallback (great circle).
Fallbacks are logged rather than swallowed, and the resulting matrix
records which strategy produced it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import AppConfig, get_config
from ..domain.errors import DistanceCalculationError
from ..domain.models import Coordinate, DistanceMatrix, DistanceResult
from ..ports.distance import DistanceStrategyPort


def _freeze(rows: List[List[DistanceResult]]) -> tuple[tuple[DistanceResult, ...], ...]:
    return tuple(tuple(row) for row in rows)


@dataclass
class DistanceCalculator:
    """Calculates distance matrices using a primary and a fallback strategy.

    Both strategies can be swapped at runtime by assigning the attributes.

    Attributes:
        primary: Preferred strategy
        fallback: Strategy used when the primary is unavailable or fails
    """

    primary: DistanceStrategyPort
    fallback: DistanceStrategyPort

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> DistanceCalculator:
        """Build the OSRM + Haversine pair from configuration."""
        from ..adapters.distance import HaversineStrategy, OSRMStrategy

        config = config or get_config()
        return cls(primary=OSRMStrategy(config.routing), fallback=HaversineStrategy())

    def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
        use_fallback_on_error: bool = True,
    ) -> DistanceMatrix:
        """Calculate distances from every origin to every destination.

        Args:
            origins: Origin coordinates.
            destinations: Destination coordinates.
            use_fallback_on_error: Retry with the fallback when the primary
                raises. An unavailable primary always falls back.

        Returns:
            DistanceMatrix tagged with the producing strategy.

        Raises:
            DistanceCalculationError: If no strategy could produce the matrix.
        """
        if not origins or not destinations:
            return DistanceMatrix(
                rows=tuple(() for _ in origins), method=self.primary.name
            )

        primary_name = self.primary.name

        if not self.primary.is_available():
            self._logger.warning(
                "Primary distance strategy unavailable, using fallback",
                extra={"primary": primary_name, "fallback": self.fallback.name},
            )
            return self._run_fallback(origins, destinations, primary_error=None)

        try:
            rows = self.primary.calculate_distances(origins, destinations)
        except DistanceCalculationError as e:
            if not use_fallback_on_error:
                self._logger.error(
                    "Primary distance strategy failed, fallback disabled",
                    extra={"primary": primary_name, "error": str(e)},
                )
                raise

            self._logger.warning(
                "Primary distance strategy failed, using fallback",
                extra={
                    "primary": primary_name,
                    "fallback": self.fallback.name,
                    "error": str(e),
                },
            )
            return self._run_fallback(origins, destinations, primary_error=str(e))
        except Exception as e:
            if not use_fallback_on_error:
                raise DistanceCalculationError(
                    f"{primary_name} strategy failed unexpectedly",
                    strategy=primary_name,
                    cause=e,
                )

            self._logger.exception(
                "Primary distance strategy raised unexpectedly, using fallback",
                extra={"primary": primary_name, "fallback": self.fallback.name},
            )
            return self._run_fallback(origins, destinations, primary_error=str(e))

        self._logger.debug(
            "Distance matrix computed",
            extra={
                "strategy": primary_name,
                "origins": len(origins),
                "destinations": len(destinations),
            },
        )
        return DistanceMatrix(rows=_freeze(rows), method=primary_name)

    def _run_fallback(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
        primary_error: Optional[str],
    ) -> DistanceMatrix:
        fallback_name = self.fallback.name
        try:
            rows = self.fallback.calculate_distances(origins, destinations)
        except DistanceCalculationError as fallback_error:
            self._logger.error(
                "Fallback distance strategy also failed",
                extra={
                    "primary": self.primary.name,
                    "fallback": fallback_name,
                    "primary_error": primary_error,
                    "fallback_error": str(fallback_error),
                },
            )
            raise DistanceCalculationError(
                "All distance strategies failed",
                strategy=fallback_name,
                fallback_attempted=True,
                cause=fallback_error,
            )

        return DistanceMatrix(
            rows=_freeze(rows),
            method=fallback_name,
            fallback_used=True,
            primary_error=primary_error,
        )

    def calculate_distance(self, origin: Coordinate, destination: Coordinate) -> DistanceResult:
        """Distance between a single pair of coordinates."""
        return self.calculate_distances([origin], [destination]).row(0)[0]
