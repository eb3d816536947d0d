from __future__ import annotations

import math
from collections.abc import Sequence

from .distance import DistanceMeasurement, haversine_distance
from .geojson import Feature, FeatureCollection, iter_lines, line_feature
from .min_heap import MinHeap

CoordKey = tuple[float, float]


class RouteGraph:
    """Undirected weighted graph over the coordinates of a line network.

    One node per distinct coordinate. Coordinates are the same node only
    when both components compare equal: there is no snapping or tolerance,
    so two lines connect only through bit-identical vertices (``0.0`` and
    ``-0.0`` compare equal; NaN never matches anything). Each consecutive
    coordinate pair of a line adds one edge weighted by
    ``distance_measurement``; parallel edges are kept.

    Shortest paths use A* with the same measurement as the heuristic, which
    keeps it admissible for edge weights measured the same way. Mixing
    measurements (for example cheap-ruler weights with a haversine
    heuristic) can overestimate and lose optimality.
    """

    def __init__(
        self,
        network: FeatureCollection | None = None,
        distance_measurement: DistanceMeasurement | None = None,
    ) -> None:
        self.distance_measurement: DistanceMeasurement = distance_measurement or haversine_distance
        self._coords: list[CoordKey] = []
        self._coord_index: dict[CoordKey, int] = {}
        # node id -> [(neighbour id, distance)]
        self._adjacency: list[list[tuple[int, float]]] = []
        if network is not None:
            self.build_route_graph(network)

    @property
    def node_count(self) -> int:
        return len(self._coords)

    @property
    def edge_count(self) -> int:
        return sum(len(neighbours) for neighbours in self._adjacency) // 2

    def coordinate_at(self, node_id: int) -> CoordKey:
        return self._coords[node_id]

    def node_id(self, coordinate: Sequence[float]) -> int | None:
        return self._coord_index.get((coordinate[0], coordinate[1]))

    def neighbours(self, node_id: int) -> list[tuple[int, float]]:
        return self._adjacency[node_id]

    def build_route_graph(self, network: FeatureCollection) -> None:
        self._coords = []
        self._coord_index = {}
        self._adjacency = []
        self.expand_route_graph(network)

    def expand_route_graph(self, network: FeatureCollection) -> None:
        measure = self.distance_measurement
        for coords in iter_lines(network):
            for i in range(len(coords) - 1):
                a, b = coords[i], coords[i + 1]
                a_idx = self._coordinate_index(a)
                b_idx = self._coordinate_index(b)
                distance = measure(a, b)
                self._adjacency[a_idx].append((b_idx, distance))
                self._adjacency[b_idx].append((a_idx, distance))

    # Route-finder protocol
    def set_network(self, network: FeatureCollection) -> None:
        self.build_route_graph(network)

    def expand_network(self, network: FeatureCollection) -> None:
        self.expand_route_graph(network)

    def get_route(self, start: Feature, end: Feature) -> Feature | None:
        """Least-cost path between two point features, or None.

        Points that are not on any edge of the graph never route, including
        ``start == end``; an on-network point routed to itself yields a
        single-coordinate line.
        """
        start_idx = self.node_id(start["geometry"]["coordinates"])
        end_idx = self.node_id(end["geometry"]["coordinates"])
        if start_idx is None or end_idx is None:
            return None
        if not self._adjacency[start_idx] or not self._adjacency[end_idx]:
            return None

        path = self._astar(start_idx, end_idx)
        if path is None:
            return None
        return line_feature(self._coords[node] for node in path)

    def _astar(self, start_idx: int, end_idx: int) -> list[int] | None:
        measure = self.distance_measurement
        coords = self._coords
        adjacency = self._adjacency
        end_coord = coords[end_idx]

        open_set = MinHeap()
        open_set.insert(0.0, start_idx)
        came_from: dict[int, int] = {}
        g_score: dict[int, float] = {start_idx: 0.0}

        while open_set.size() > 0:
            current = open_set.extract_min()
            if current is None:
                break

            if current == end_idx:
                path = [current]
                while current in came_from:
                    current = came_from[current]
                    path.append(current)
                path.reverse()
                return path

            current_g = g_score.get(current, math.inf)
            for neighbour, distance in adjacency[current]:
                tentative_g = current_g + distance
                if tentative_g < g_score.get(neighbour, math.inf):
                    came_from[neighbour] = current
                    g_score[neighbour] = tentative_g
                    f_score = tentative_g + measure(coords[neighbour], end_coord)
                    open_set.insert(f_score, neighbour)

        return None

    def _coordinate_index(self, coordinate: Sequence[float]) -> int:
        key = (coordinate[0], coordinate[1])
        idx = self._coord_index.get(key)
        if idx is not None:
            return idx

        idx = len(self._coords)
        self._coords.append(key)
        self._adjacency.append([])
        self._coord_index[key] = idx
        return idx
