"""Typed domain errors for the Bus Route Finder.

All errors inherit from RouteFinderError and can optionally wrap a
root cause exception for debugging. The planner turns every one of
them into a renderable ``state.error`` string; nothing here is meant
to escape to the UI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RouteFinderError(Exception):
    """Base error for the route finder domain.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class ValidationError(RouteFinderError):
    """Caller input is invalid; correct it and retry."""


@dataclass
class InvalidThresholdError(ValidationError):
    """Search radius outside the accepted range.

    Attributes:
        threshold: The rejected value in meters
    """

    threshold: Optional[float] = None


@dataclass
class MissingSelectionError(ValidationError):
    """A workflow step was invoked before its inputs were chosen.

    Attributes:
        missing: Names of the missing inputs
    """

    missing: tuple[str, ...] = ()


@dataclass
class DistanceCalculationError(RouteFinderError):
    """A distance strategy could not produce a matrix.

    Attributes:
        strategy: Name of the strategy that failed
        fallback_attempted: Whether a fallback strategy was tried
    """

    strategy: str = ""
    fallback_attempted: bool = False


@dataclass
class StoreError(RouteFinderError):
    """The stop/route data store could not be read.

    Attributes:
        operation: The store operation that failed
    """

    operation: str = ""


@dataclass
class GeocodingError(RouteFinderError):
    """Failed to resolve a location query.

    Attributes:
        query: The location query that failed
    """

    query: str = ""


@dataclass
class ConfigurationError(RouteFinderError):
    """Invalid or missing configuration.

    Attributes:
        setting_name: Name of the problematic setting
    """

    setting_name: str = ""
