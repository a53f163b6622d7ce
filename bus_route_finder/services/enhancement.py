"""Result enhancement pipeline.

A raw bus result is decorated in a fixed order by three single-facet
layers (journey length, walking distance, time estimate) and then
flattened into one immutable EnhancedBusResult. Each layer only adds
its own facet; identity fields pass straight through to the base.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..domain.models import CoachType, Direction, EnhancedBusResult, RawBusResult, Stop

BUS_SPEED_KMH = 20.0
WALKING_SPEED_KMH = 5.0


def _check_non_negative(**values: float) -> None:
    for name, value in values.items():
        if value < 0:
            raise ValueError(f"{name} must not be negative, got {value}")


@dataclass(frozen=True)
class _Layer:
    """Pass-through access to the base result's identity fields.

    ``base`` is either the raw result or the previous layer, so a chain
    of layers resolves identity fields all the way down.
    """

    base: Union[RawBusResult, _Layer]

    @property
    def id(self) -> str:
        return self.base.id

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def is_ac(self) -> bool:
        return self.base.is_ac

    @property
    def coach_type(self) -> CoachType:
        return self.base.coach_type

    @property
    def onboarding_stop(self) -> Stop:
        return self.base.onboarding_stop

    @property
    def offboarding_stop(self) -> Stop:
        return self.base.offboarding_stop

    @property
    def direction(self) -> Direction:
        return self.base.direction


@dataclass(frozen=True)
class JourneyLengthLayer(_Layer):
    journey_length_km: float = 0.0

    def __post_init__(self) -> None:
        _check_non_negative(journey_length_km=self.journey_length_km)


@dataclass(frozen=True)
class WalkingDistanceLayer(_Layer):
    walking_to_onboarding_km: float = 0.0
    walking_from_offboarding_km: float = 0.0

    def __post_init__(self) -> None:
        _check_non_negative(
            walking_to_onboarding_km=self.walking_to_onboarding_km,
            walking_from_offboarding_km=self.walking_from_offboarding_km,
        )

    @property
    def total_walking_km(self) -> float:
        return self.walking_to_onboarding_km + self.walking_from_offboarding_km


@dataclass(frozen=True)
class TimeEstimateLayer(_Layer):
    """Travel-time estimate from fixed average bus and walking speeds."""

    journey_length_km: float = 0.0
    total_walking_km: float = 0.0

    def __post_init__(self) -> None:
        _check_non_negative(
            journey_length_km=self.journey_length_km,
            total_walking_km=self.total_walking_km,
        )

    @property
    def estimated_journey_minutes(self) -> float:
        return self.journey_length_km / BUS_SPEED_KMH * 60

    @property
    def estimated_walking_minutes(self) -> float:
        return self.total_walking_km / WALKING_SPEED_KMH * 60

    @property
    def estimated_total_minutes(self) -> float:
        return self.estimated_journey_minutes + self.estimated_walking_minutes


class EnhancedBusResultFactory:
    """Composes the enhancement layers into an EnhancedBusResult."""

    @staticmethod
    def create(
        base: RawBusResult,
        journey_length_km: float,
        walking_to_onboarding_km: float,
        walking_from_offboarding_km: float,
    ) -> EnhancedBusResult:
        """Build the flattened result.

        Raises:
            ValueError: If any distance is negative.
        """
        journey = JourneyLengthLayer(base, journey_length_km)
        walking = WalkingDistanceLayer(
            journey, walking_to_onboarding_km, walking_from_offboarding_km
        )
        timing = TimeEstimateLayer(
            walking, journey.journey_length_km, walking.total_walking_km
        )

        return EnhancedBusResult(
            id=timing.id,
            name=timing.name,
            is_ac=timing.is_ac,
            coach_type=timing.coach_type,
            onboarding_stop=timing.onboarding_stop,
            offboarding_stop=timing.offboarding_stop,
            direction=timing.direction,
            journey_length_km=journey.journey_length_km,
            walking_to_onboarding_km=walking.walking_to_onboarding_km,
            walking_from_offboarding_km=walking.walking_from_offboarding_km,
            total_walking_km=walking.total_walking_km,
            total_distance_km=journey.journey_length_km + walking.total_walking_km,
            estimated_journey_minutes=timing.estimated_journey_minutes,
            estimated_walking_minutes=timing.estimated_walking_minutes,
            estimated_total_minutes=timing.estimated_total_minutes,
        )
