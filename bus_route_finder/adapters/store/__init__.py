"""Store adapters - Implementations of StopStorePort and RouteStorePort.

Available implementations:
- CSVTransitRepository: Loads stops, buses and route stops from CSV files
- InMemoryTransitRepository: Serves the same data from Python sequences
"""

from .csv_repository import CSVTransitRepository
from .memory_repository import InMemoryBusQuery, InMemoryTransitRepository

__all__ = ["CSVTransitRepository", "InMemoryTransitRepository", "InMemoryBusQuery"]
