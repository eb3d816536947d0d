"""Shortest-path routing and nearest-point snapping over line networks."""

from .distance import create_cheap_ruler, haversine_distance
from .route_finder import NetworkXRouteFinder, RouteFinder
from .route_graph import RouteGraph
from .routing import Routing

__all__ = [
    "NetworkXRouteFinder",
    "RouteFinder",
    "RouteGraph",
    "Routing",
    "create_cheap_ruler",
    "haversine_distance",
]
