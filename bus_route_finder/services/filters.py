"""Bus result filtering and sorting.

BusFilterBuilder records filter settings fluently. Each setter replaces
the previous value of its field, and apply() checks every field that is
set. The AC and coach-type settings can also be pushed down to the store
query so fewer buses are matched in the first place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..domain.models import (
    CoachType,
    EnhancedBusResult,
    FilterConfig,
    SortField,
    SortOrder,
)
from ..ports.stores import BusQuery

_SORT_KEYS: dict[SortField, Callable[[EnhancedBusResult], object]] = {
    SortField.JOURNEY_LENGTH: lambda r: r.journey_length_km,
    SortField.ESTIMATED_TIME: lambda r: r.estimated_total_minutes,
    SortField.NAME: lambda r: r.name.lower(),
}


@dataclass
class BusFilterBuilder:
    """Fluent builder for bus result filters.

    Example:
        results = (
            BusFilterBuilder()
            .with_ac(True)
            .with_coach_types(["express"])
            .with_max_walking_distance(1.0)
            .apply(results)
        )
    """

    is_ac: Optional[bool] = None
    coach_types: Tuple[CoachType, ...] = ()
    min_journey_km: Optional[float] = None
    max_journey_km: Optional[float] = None
    max_walking_km: Optional[float] = None

    @classmethod
    def from_config(cls, config: FilterConfig) -> BusFilterBuilder:
        builder = cls()
        if config.is_ac is not None:
            builder.with_ac(config.is_ac)
        if config.coach_types:
            builder.with_coach_types(config.coach_types)
        return builder

    def with_ac(self, is_ac: bool) -> BusFilterBuilder:
        self.is_ac = is_ac
        return self

    def with_coach_types(self, coach_types: Iterable[CoachType | str]) -> BusFilterBuilder:
        self.coach_types = tuple(CoachType(c) for c in coach_types)
        return self

    def with_journey_length_range(
        self, min_km: Optional[float] = None, max_km: Optional[float] = None
    ) -> BusFilterBuilder:
        self.min_journey_km = min_km
        self.max_journey_km = max_km
        return self

    def with_max_walking_distance(self, max_km: float) -> BusFilterBuilder:
        self.max_walking_km = max_km
        return self

    def apply(self, results: Iterable[EnhancedBusResult]) -> List[EnhancedBusResult]:
        """Keep results matching every set filter, in their original order."""
        return [r for r in results if self._matches(r)]

    def _matches(self, result: EnhancedBusResult) -> bool:
        if self.is_ac is not None and result.is_ac != self.is_ac:
            return False
        if self.coach_types and result.coach_type not in self.coach_types:
            return False
        if self.min_journey_km is not None and result.journey_length_km < self.min_journey_km:
            return False
        if self.max_journey_km is not None and result.journey_length_km > self.max_journey_km:
            return False
        if self.max_walking_km is not None and result.total_walking_km > self.max_walking_km:
            return False
        return True

    def reset(self) -> BusFilterBuilder:
        self.is_ac = None
        self.coach_types = ()
        self.min_journey_km = None
        self.max_journey_km = None
        self.max_walking_km = None
        return self

    @property
    def filters(self) -> FilterConfig:
        """Snapshot of the store-level filter settings."""
        return FilterConfig(is_ac=self.is_ac, coach_types=self.coach_types)

    def build_query_modifier(self, query: BusQuery) -> BusQuery:
        """Narrow a bus store query with the AC and coach-type settings.

        Journey length and walking distance depend on the trip, so they
        are never pushed down.
        """
        if self.is_ac is not None:
            query = query.eq("is_ac", self.is_ac)
        if self.coach_types:
            query = query.in_("coach_type", [c.value for c in self.coach_types])
        return query


def sort_results(
    results: Sequence[EnhancedBusResult],
    sort_by: SortField = SortField.JOURNEY_LENGTH,
    sort_order: SortOrder = SortOrder.ASC,
) -> List[EnhancedBusResult]:
    """Stable sort; descending order still keeps ties in input order."""
    key = _SORT_KEYS[SortField(sort_by)]
    return sorted(results, key=key, reverse=SortOrder(sort_order) == SortOrder.DESC)
