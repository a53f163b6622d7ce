"""Centralized configuration using Pydantic Settings.

This module provides a single source of truth for all configuration:
routing service endpoints, stop discovery limits, transit data paths,
geocoding and logging.

Configuration can be overridden via environment variables:
- BRF_ROUTING_OSRM_BASE_URL=http://localhost:5000
- BRF_DISCOVERY_USE_BOUNDING_BOX=false
- BRF_DATA_DATA_DIR=/path/to/data
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RoutingConfig(BaseSettings):
    """Road-network routing service (OSRM) configuration.

    Environment variables prefixed with BRF_ROUTING_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_ROUTING_")

    osrm_base_url: str = "http://router.project-osrm.org"
    profile: Literal["driving", "car", "bike", "foot"] = "driving"
    timeout_seconds: float = 30.0
    availability_timeout_seconds: float = 5.0
    # Public OSRM table endpoints reject requests above ~100 coordinates
    max_locations: int = Field(default=100, ge=2)
    user_agent: str = "bus-route-finder"


class DiscoveryConfig(BaseSettings):
    """Stop discovery configuration.

    Environment variables prefixed with BRF_DISCOVERY_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_DISCOVERY_")

    min_threshold_meters: int = 100
    max_threshold_meters: int = 5000
    default_threshold_meters: int = 500
    use_bounding_box: bool = True
    store_max_attempts: int = Field(default=3, ge=1)
    store_retry_wait_seconds: float = Field(default=1.0, ge=0)

    @model_validator(mode="after")
    def _check_threshold_range(self) -> DiscoveryConfig:
        if self.min_threshold_meters > self.max_threshold_meters:
            raise ValueError("min_threshold_meters must not exceed max_threshold_meters")
        if not (
            self.min_threshold_meters
            <= self.default_threshold_meters
            <= self.max_threshold_meters
        ):
            raise ValueError("default_threshold_meters must lie within the threshold range")
        return self


class DataConfig(BaseSettings):
    """Transit data files configuration.

    Environment variables prefixed with BRF_DATA_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_DATA_")

    data_dir: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parent.parent / "data"
    )
    stops_file: str = "stops.csv"
    buses_file: str = "buses.csv"
    route_stops_file: str = "route_stops.csv"

    @property
    def stops_path(self) -> Path:
        """Full path to stops CSV file."""
        return self.data_dir / self.stops_file

    @property
    def buses_path(self) -> Path:
        """Full path to buses CSV file."""
        return self.data_dir / self.buses_file

    @property
    def route_stops_path(self) -> Path:
        """Full path to route stops CSV file."""
        return self.data_dir / self.route_stops_file


class GeocodingConfig(BaseSettings):
    """Geocoding configuration.

    Environment variables prefixed with BRF_GEO_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_GEO_")

    user_agent: str = "bus-route-finder"
    timeout_seconds: int = 10
    rate_limit_delay: float = 1.0
    max_retries: int = 2
    error_wait_seconds: float = 2.0
    country_codes: Optional[str] = None
    language: str = "en"


class CacheConfig(BaseSettings):
    """Cache configuration.

    Environment variables prefixed with BRF_CACHE_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_CACHE_")

    geocode_ttl_seconds: Optional[float] = 24 * 3600
    derived_max_size: Optional[int] = 64


class ObservabilityConfig(BaseSettings):
    """Logging and observability configuration.

    Environment variables prefixed with BRF_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False  # Set True for JSON logging


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

    Sub-configurations can be accessed via attributes:

        config = get_config()
        print(config.routing.osrm_base_url)
        print(config.data.stops_path)

    Environment variables prefixed with BRF_.
    """

    model_config = SettingsConfigDict(env_prefix="BRF_")

    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @property
    def project_root(self) -> Path:
        """Return the project root directory."""
        return Path(__file__).resolve().parent.parent


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the singleton application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.

    Returns:
        The application configuration instance.
    """
    return AppConfig()


def reset_config() -> None:
    """Reset the configuration cache.

    Call this in tests to ensure a fresh configuration is loaded.
    """
    get_config.cache_clear()
