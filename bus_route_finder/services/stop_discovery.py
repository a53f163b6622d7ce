"""Stop discovery service.

Finds the stops within a walking radius of a reference point, measured
with the distance calculator, nearest first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import DiscoveryConfig, get_config
from ..domain.errors import InvalidThresholdError, StoreError
from ..domain.models import (
    BoundingBox,
    Coordinate,
    DiscoveredStop,
    DiscoveryResult,
    Stop,
)
from ..ports.stores import StopStorePort
from .distance_calculator import DistanceCalculator


@dataclass
class StopDiscoveryService:
    """Discovers and ranks stops around a reference coordinate.

    Attributes:
        stop_store: Source of candidate stops
        calculator: Distance calculator (primary + fallback)
        config: Threshold range, bounding-box and retry settings
    """

    stop_store: StopStorePort
    calculator: DistanceCalculator
    config: DiscoveryConfig = field(default_factory=lambda: get_config().discovery)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def validate_threshold(self, threshold_meters: float) -> None:
        """Raise InvalidThresholdError unless the radius is in range."""
        low = self.config.min_threshold_meters
        high = self.config.max_threshold_meters
        if not low <= threshold_meters <= high:
            raise InvalidThresholdError(
                f"Threshold must be between {low} and {high} meters",
                threshold=threshold_meters,
            )

    def _fetch_stops(self, bounds: Optional[BoundingBox]) -> Sequence[Stop]:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.store_max_attempts),
            wait=wait_exponential(multiplier=self.config.store_retry_wait_seconds),
            retry=retry_if_exception_type(StoreError),
            before_sleep=lambda state: self._logger.warning(
                "Stop fetch failed, retrying",
                extra={
                    "attempt": state.attempt_number,
                    "error": str(state.outcome.exception()) if state.outcome else None,
                },
            ),
        )
        try:
            return retrying(self.stop_store.list_stops, bounds)
        except RetryError as e:
            last = e.last_attempt.exception()
            self._logger.error(
                "Stop fetch failed after retries",
                extra={"attempts": self.config.store_max_attempts, "error": str(last)},
            )
            raise StoreError(
                f"Failed to fetch stops after {self.config.store_max_attempts} attempts",
                operation="list_stops",
                cause=last if isinstance(last, Exception) else None,
            )

    def _rank(
        self,
        reference: Coordinate,
        stops: Sequence[Stop],
        threshold_meters: Optional[float],
    ) -> DiscoveryResult:
        if not stops:
            return DiscoveryResult(stops=(), method=None)

        matrix = self.calculator.calculate_distances(
            [reference], [stop.coordinate for stop in stops]
        )

        discovered: List[DiscoveredStop] = []
        for stop, result in zip(stops, matrix.row(0)):
            meters = result.distance_km * 1000.0
            if threshold_meters is not None and meters > threshold_meters:
                continue
            discovered.append(
                DiscoveredStop(stop=stop, distance_meters=meters, distance_method=result.method)
            )

        # sort() is stable, so equal distances keep store order
        discovered.sort(key=lambda d: d.distance_meters)

        self._logger.info(
            "Stops discovered",
            extra={
                "candidates": len(stops),
                "in_range": len(discovered),
                "threshold_meters": threshold_meters,
                "method": matrix.method,
                "fallback_used": matrix.fallback_used,
            },
        )
        return DiscoveryResult(
            stops=tuple(discovered),
            method=matrix.method,
            fallback_used=matrix.fallback_used,
        )

    def discover_stops_with_method(
        self, reference: Coordinate, threshold_meters: float
    ) -> DiscoveryResult:
        """Find stops within ``threshold_meters`` of ``reference``.

        Raises:
            InvalidThresholdError: If the threshold is out of range.
            StoreError: If stops cannot be fetched after retries.
            DistanceCalculationError: If every distance strategy fails.
        """
        self.validate_threshold(threshold_meters)

        bounds = (
            BoundingBox.around(reference, threshold_meters)
            if self.config.use_bounding_box
            else None
        )
        stops = self._fetch_stops(bounds)
        return self._rank(reference, stops, threshold_meters)

    def discover_stops(
        self, reference: Coordinate, threshold_meters: float
    ) -> List[DiscoveredStop]:
        return list(self.discover_stops_with_method(reference, threshold_meters).stops)

    def rank_all_stops(self, reference: Coordinate) -> DiscoveryResult:
        """Every stop with its distance from ``reference``, nearest first."""
        return self._rank(reference, self._fetch_stops(None), None)
