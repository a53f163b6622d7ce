"""Geocoding port - Abstraction for turning place names into coordinates.

This protocol defines the contract for geocoding services, allowing
different implementations (Nominatim, Google Maps, etc.) to be used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..domain.models import ResolvedLocation


class GeocoderPort(Protocol):
    """Port for geocoding services.

    Implementation: adapters/geocoding/nominatim_adapter.py
    """

    def geocode(self, query: str) -> Optional[ResolvedLocation]:
        """Geocode a free-text location.

        Args:
            query: Address or place name (e.g., "Farmgate, Dhaka").

        Returns:
            The resolved location, or None if not found.
        """
        ...
