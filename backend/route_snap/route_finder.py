from __future__ import annotations

from typing import Protocol, runtime_checkable

import networkx as nx

from .distance import DistanceMeasurement, haversine_distance
from .geojson import Feature, FeatureCollection, iter_lines, line_feature


@runtime_checkable
class RouteFinder(Protocol):
    """Path-finding strategy plugged into :class:`route_snap.routing.Routing`."""

    def get_route(self, start: Feature, end: Feature) -> Feature | None: ...

    def set_network(self, network: FeatureCollection) -> None: ...

    def expand_network(self, network: FeatureCollection) -> None: ...


class NetworkXRouteFinder:
    """Route finder backed by networkx A* over a MultiGraph of coordinates.

    Nodes are ``(lng, lat)`` tuples, so the same exact-equality identity as
    :class:`route_snap.route_graph.RouteGraph` applies.
    """

    def __init__(
        self,
        network: FeatureCollection | None = None,
        distance_measurement: DistanceMeasurement | None = None,
    ) -> None:
        self.distance_measurement: DistanceMeasurement = distance_measurement or haversine_distance
        self.G: nx.MultiGraph = nx.MultiGraph()
        if network is not None:
            self.set_network(network)

    @property
    def node_count(self) -> int:
        return self.G.number_of_nodes()

    def set_network(self, network: FeatureCollection) -> None:
        self.G = nx.MultiGraph()
        self.expand_network(network)

    def expand_network(self, network: FeatureCollection) -> None:
        measure = self.distance_measurement
        for coords in iter_lines(network):
            for i in range(len(coords) - 1):
                a, b = coords[i], coords[i + 1]
                self.G.add_edge((a[0], a[1]), (b[0], b[1]), weight=measure(a, b))

    def get_route(self, start: Feature, end: Feature) -> Feature | None:
        s = tuple(start["geometry"]["coordinates"][:2])
        t = tuple(end["geometry"]["coordinates"][:2])
        try:
            nodes = nx.astar_path(self.G, s, t, heuristic=self.distance_measurement, weight="weight")
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None
        return line_feature(nodes)
