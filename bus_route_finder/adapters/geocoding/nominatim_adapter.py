"""Nominatim geocoder adapter.

Resolves free-text origins and destinations that are not stop names
into coordinates, with:
- Caching via CachePort (misses are cached too)
- Configuration injection
- Rate limiting through geopy's RateLimiter
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from ...config import GeocodingConfig, get_config
from ...domain.errors import GeocodingError
from ...domain.models import Coordinate, ResolvedLocation
from ...ports.cache import CachePort
from ..cache.memory_cache import InMemoryCache


@dataclass
class NominatimGeocoderAdapter:
    """Nominatim geocoder adapter with caching and rate limiting.

    Implements GeocoderPort using OpenStreetMap's Nominatim service.

    Attributes:
        config: Geocoding configuration
        cache: Cache for geocoding results
    """

    config: GeocodingConfig = field(default_factory=lambda: get_config().geocoding)
    cache: CachePort[Optional[ResolvedLocation]] = field(
        default_factory=lambda: InMemoryCache(
            name="geocode", default_ttl_seconds=get_config().cache.geocode_ttl_seconds
        )
    )

    _geocode_fn: Optional[Any] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _get_geocoder(self) -> Any:
        """Get or initialize the rate-limited geocode callable."""
        if self._geocode_fn is not None:
            return self._geocode_fn

        self._logger.debug(
            "Initializing Nominatim geocoder",
            extra={
                "user_agent": self.config.user_agent,
                "timeout": self.config.timeout_seconds,
            },
        )

        geolocator = Nominatim(
            user_agent=self.config.user_agent,
            timeout=self.config.timeout_seconds,
        )
        self._geocode_fn = RateLimiter(
            geolocator.geocode,
            min_delay_seconds=self.config.rate_limit_delay,
            max_retries=self.config.max_retries,
            error_wait_seconds=self.config.error_wait_seconds,
            swallow_exceptions=False,
        )
        return self._geocode_fn

    def geocode(self, query: str) -> Optional[ResolvedLocation]:
        """Geocode a free-text location.

        Args:
            query: Address or place name.

        Returns:
            The resolved location, or None if nothing matched.

        Raises:
            GeocodingError: If the service fails after retries.
        """
        if not query or not query.strip():
            return None

        cache_key = f"{query.strip().lower()}:{self.config.language}"

        def lookup() -> Optional[ResolvedLocation]:
            kwargs: dict[str, Any] = {"language": self.config.language}
            if self.config.country_codes:
                kwargs["country_codes"] = self.config.country_codes

            try:
                location = self._get_geocoder()(query, **kwargs)
            except GeopyError as e:
                self._logger.warning(
                    "Geocode service error",
                    extra={"query": query, "error": str(e)},
                )
                raise GeocodingError(
                    f"Geocoding service failed for '{query}'", query=query, cause=e
                )

            if location is None:
                self._logger.debug("Geocode returned no result", extra={"query": query})
                return None

            resolved = ResolvedLocation(
                name=str(location.address or query),
                coordinate=Coordinate(
                    lat=float(location.latitude), lng=float(location.longitude)
                ),
                source="nominatim",
            )
            self._logger.debug(
                "Geocode success",
                extra={"query": query, "lat": resolved.coordinate.lat},
            )
            return resolved

        return self.cache.get_or_compute(cache_key, lookup)
