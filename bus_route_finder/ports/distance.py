"""Distance strategy port - Pluggable distance algorithms.

A strategy turns origin/destination coordinate pairs into distances.
The DistanceCalculator service holds a primary and a fallback strategy
and switches between them at runtime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import Coordinate, DistanceResult


class DistanceStrategyPort(Protocol):
    """Port for distance calculation strategies.

    Implementations:
    - adapters/distance/osrm_strategy.py (OSRMStrategy) - road network
    - adapters/distance/haversine_strategy.py (HaversineStrategy) - great circle
    """

    @property
    def name(self) -> str:
        """Identifier used to tag every DistanceResult."""
        ...

    def is_available(self) -> bool:
        """Check whether the strategy can currently be used.

        Returns:
            True if calculate_distances is expected to succeed.
        """
        ...

    def calculate_distances(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> List[List[DistanceResult]]:
        """Calculate an origin x destination distance matrix.

        Args:
            origins: Origin coordinates (one row each).
            destinations: Destination coordinates (one column each).

        Returns:
            Matrix where ``result[i][j]`` is origin i to destination j.

        Raises:
            DistanceCalculationError: If the matrix cannot be computed.
        """
        ...
