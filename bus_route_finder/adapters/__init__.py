"""Adapters layer - Concrete implementations of ports.

This module contains implementations of the port interfaces,
connecting the application to external systems like:
- Distance services (OSRM road network, Haversine great circle)
- Transit data stores (CSV files, in-memory sequences)
- Geocoding services (Nominatim)
- Caching systems (in-memory, null)
"""
