from __future__ import annotations

import copy
import math
import time
from collections.abc import Sequence
from dataclasses import dataclass
from threading import RLock

from .geo_index import around
from .geojson import Feature, FeatureCollection, Position, iter_network_coordinates, point_feature
from .kd_index import DEFAULT_NODE_SIZE, KDIndex
from .logging_utils import log_event
from .route_cache import RouteCacheStore, route_key
from .route_finder import RouteFinder


@dataclass(frozen=True)
class _NetworkSnapshot:
    network: FeatureCollection
    # every network coordinate in walk order; index ids point into it
    points: tuple[tuple[float, float], ...]
    index: KDIndex
    node_count: int


def _build_snapshot(network: FeatureCollection, node_size: int) -> _NetworkSnapshot:
    points = tuple((c[0], c[1]) for c in iter_network_coordinates(network))
    index = KDIndex(len(points), node_size)
    for lng, lat in points:
        index.add(lng, lat)
    index.finish()
    return _NetworkSnapshot(
        network=network,
        points=points,
        index=index,
        node_count=len(set(points)),
    )


class Routing:
    """Snaps coordinates onto a line network and routes between them.

    Owns a private copy of the network and a spatial index over all of its
    coordinates; path finding is delegated to a pluggable
    :class:`~route_snap.route_finder.RouteFinder`. The finder passed at
    construction is expected to already hold the same network; later
    :meth:`set_network` and :meth:`expand_route_network` calls are forwarded
    to it.

    Rebuilds swap in a new snapshot under a lock, so readers never see a
    half-built index.
    """

    def __init__(
        self,
        network: FeatureCollection,
        *,
        route_finder: RouteFinder,
        use_cache: bool = True,
        cache: RouteCacheStore | None = None,
        node_size: int = DEFAULT_NODE_SIZE,
    ) -> None:
        self._lock = RLock()
        self._route_finder = route_finder
        self._use_cache = bool(use_cache)
        self._cache = cache if cache is not None else RouteCacheStore()
        self._node_size = node_size
        self._snapshot = _build_snapshot(copy.deepcopy(network), node_size)

    @property
    def route_finder(self) -> RouteFinder:
        return self._route_finder

    @property
    def use_cache(self) -> bool:
        return self._use_cache

    def get_node_count(self) -> int:
        return self._snapshot.node_count

    def get_point_count(self) -> int:
        return len(self._snapshot.points)

    def get_feature_count(self) -> int:
        return len(self._snapshot.network.get("features", ()))

    def get_network(self) -> FeatureCollection:
        return copy.deepcopy(self._snapshot.network)

    def get_closest_network_coordinate(self, coordinate: Sequence[float]) -> Position | None:
        snapshot = self._snapshot
        if not snapshot.points:
            return None
        nearest = around(snapshot.index, coordinate[0], coordinate[1], 1)
        if not nearest:
            return None
        return list(snapshot.points[nearest[0]])

    def get_closest_network_coordinates(
        self,
        coordinate: Sequence[float],
        max_results: float = math.inf,
        max_distance: float = math.inf,
    ) -> list[Position]:
        """Network coordinates nearest to ``coordinate``, closest first.

        At most ``max_results`` entries, each within ``max_distance``
        kilometres.
        """
        snapshot = self._snapshot
        if not snapshot.points:
            return []
        ids = around(snapshot.index, coordinate[0], coordinate[1], max_results, max_distance)
        return [list(snapshot.points[i]) for i in ids]

    def get_route(self, start: Sequence[float], end: Sequence[float]) -> Feature | None:
        key = route_key(start, end)
        with self._lock:
            if self._use_cache:
                entry = self._cache.get(key)
                if entry is not None:
                    return entry.route

            route = self._route_finder.get_route(point_feature(start), point_feature(end))

            if self._use_cache:
                self._cache.set(key, route)
            return route

    def set_network(self, network: FeatureCollection) -> None:
        t0 = time.perf_counter()
        network = copy.deepcopy(network)
        snapshot = _build_snapshot(network, self._node_size)
        with self._lock:
            self._route_finder.set_network(copy.deepcopy(network))
            self._snapshot = snapshot
            cleared = self._cache.clear()

        log_event(
            "network_set",
            feature_count=len(network.get("features", ())),
            point_count=len(snapshot.points),
            node_count=snapshot.node_count,
            cache_entries_cleared=cleared,
            duration_ms=round((time.perf_counter() - t0) * 1000, 2),
        )

    def expand_route_network(self, network: FeatureCollection) -> None:
        t0 = time.perf_counter()
        additional = copy.deepcopy(network)
        with self._lock:
            current = self._snapshot.network
            merged = dict(current)
            merged["features"] = [*current.get("features", ()), *additional.get("features", ())]
            snapshot = _build_snapshot(merged, self._node_size)

            self._route_finder.expand_network(copy.deepcopy(additional))
            self._snapshot = snapshot
            cleared = self._cache.clear()

        log_event(
            "network_expanded",
            added_feature_count=len(additional.get("features", ())),
            feature_count=len(merged["features"]),
            point_count=len(snapshot.points),
            node_count=snapshot.node_count,
            cache_entries_cleared=cleared,
            duration_ms=round((time.perf_counter() - t0) * 1000, 2),
        )

    def set_route_finder(self, route_finder: RouteFinder) -> None:
        with self._lock:
            self._route_finder = route_finder
        log_event("route_finder_swapped", route_finder=type(route_finder).__name__)

    def cache_stats(self) -> dict[str, int | None]:
        return self._cache.snapshot()

