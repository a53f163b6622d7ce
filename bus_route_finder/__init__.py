"""Bus route finder - route discovery and ranking engine.

Typical use goes through the dependency container:

    from bus_route_finder.container import get_container
    from bus_route_finder.services import RoutePlanner

    planner = get_container().resolve(RoutePlanner)
"""

__version__ = "0.1.0"
