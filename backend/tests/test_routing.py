from __future__ import annotations

import math
from typing import Any

import pytest

from route_snap.geojson import feature_collection, line_feature, point_feature
from route_snap.route_cache import RouteCacheStore
from route_snap.route_graph import RouteGraph
from route_snap.routing import Routing


class CountingFinder:
    def __init__(self, route: dict[str, Any] | None = None) -> None:
        self.route = route
        self.calls: list[tuple[Any, Any]] = []
        self.set_calls: list[dict[str, Any]] = []
        self.expand_calls: list[dict[str, Any]] = []

    def get_route(self, start, end):
        self.calls.append((start, end))
        return self.route

    def set_network(self, network) -> None:
        self.set_calls.append(network)

    def expand_network(self, network) -> None:
        self.expand_calls.append(network)


NETWORK_LINES = [[[0, 0], [1, 0]], [[1, 0], [2, 0], [2, 1]]]


def _network():
    return feature_collection(NETWORK_LINES)


def _routing(**kwargs) -> Routing:
    network = _network()
    return Routing(network, route_finder=RouteGraph(network), **kwargs)


def test_closest_coordinate_snaps_to_network() -> None:
    routing = _routing()
    assert routing.get_closest_network_coordinate([1.9, 0.2]) == [2, 0]
    assert routing.get_closest_network_coordinate([0.1, -0.1]) == [0, 0]


def test_closest_on_empty_network_is_none() -> None:
    routing = Routing(feature_collection([]), route_finder=CountingFinder())
    assert routing.get_closest_network_coordinate([0, 0]) is None
    assert routing.get_closest_network_coordinates([0, 0], 5) == []
    assert routing.get_node_count() == 0
    assert routing.get_point_count() == 0


def test_closest_coordinates_respect_bounds() -> None:
    routing = _routing()
    assert routing.get_closest_network_coordinates([2.1, 0.3], 2) == [[2, 0], [2, 1]]
    # shared vertices appear once per occurrence
    assert len(routing.get_closest_network_coordinates([0, 0])) == 5
    near = routing.get_closest_network_coordinates([0, 0], math.inf, 120.0)
    assert near == [[0, 0], [1, 0], [1, 0]]
    assert routing.get_closest_network_coordinates([0, 0], 0) == []


def test_counts_distinguish_points_and_nodes() -> None:
    routing = _routing()
    assert routing.get_feature_count() == 2
    assert routing.get_point_count() == 5
    assert routing.get_node_count() == 4


def test_route_through_facade() -> None:
    routing = _routing()
    route = routing.get_route([0, 0], [2, 1])
    assert route is not None
    assert route["geometry"]["coordinates"] == [[0, 0], [1, 0], [2, 0], [2, 1]]
    assert routing.get_route([0, 0], [9, 9]) is None


def test_repeated_route_hits_cache() -> None:
    finder = CountingFinder(line_feature([[0, 0], [1, 0]]))
    routing = Routing(_network(), route_finder=finder)

    first = routing.get_route([0, 0], [1, 0])
    second = routing.get_route([0, 0], [1, 0])
    assert first == second
    assert len(finder.calls) == 1
    assert finder.calls[0] == (point_feature([0, 0]), point_feature([1, 0]))

    routing.get_route([1, 0], [0, 0])
    assert len(finder.calls) == 2
    assert routing.cache_stats()["hits"] == 1


def test_missing_routes_are_cached_too() -> None:
    finder = CountingFinder(None)
    routing = Routing(_network(), route_finder=finder)
    assert routing.get_route([0, 0], [5, 5]) is None
    assert routing.get_route([0, 0], [5, 5]) is None
    assert len(finder.calls) == 1


def test_cache_can_be_disabled() -> None:
    finder = CountingFinder(line_feature([[0, 0], [1, 0]]))
    routing = Routing(_network(), route_finder=finder, use_cache=False)
    assert routing.use_cache is False
    routing.get_route([0, 0], [1, 0])
    routing.get_route([0, 0], [1, 0])
    assert len(finder.calls) == 2
    assert routing.cache_stats()["size"] == 0


def test_cached_routes_cannot_be_mutated_by_callers() -> None:
    routing = Routing(_network(), route_finder=CountingFinder(line_feature([[0, 0], [1, 0]])))
    route = routing.get_route([0, 0], [1, 0])
    route["geometry"]["coordinates"].append([7, 7])
    assert routing.get_route([0, 0], [1, 0])["geometry"]["coordinates"] == [[0, 0], [1, 0]]


def test_injected_cache_is_used() -> None:
    cache = RouteCacheStore(max_entries=1)
    routing = Routing(_network(), route_finder=CountingFinder(None), cache=cache)
    routing.get_route([0, 0], [1, 0])
    routing.get_route([1, 0], [2, 0])
    assert len(cache) == 1
    assert routing.cache_stats()["evictions"] == 1


def test_constructor_copies_network_and_does_not_forward() -> None:
    network = _network()
    finder = CountingFinder()
    routing = Routing(network, route_finder=finder)
    network["features"].clear()

    assert routing.get_feature_count() == 2
    assert finder.set_calls == []
    assert routing.get_network() == _network()
    routing.get_network()["features"].clear()
    assert routing.get_feature_count() == 2


def test_set_network_replaces_index_forwards_and_clears_cache() -> None:
    finder = CountingFinder(None)
    routing = Routing(_network(), route_finder=finder)
    routing.get_route([0, 0], [1, 0])
    assert routing.cache_stats()["size"] == 1

    replacement = feature_collection([[[10, 10], [11, 10]]])
    routing.set_network(replacement)
    replacement["features"].clear()

    assert routing.cache_stats()["size"] == 0
    assert routing.get_closest_network_coordinate([0, 0]) == [10, 10]
    assert routing.get_feature_count() == 1
    assert len(finder.set_calls) == 1
    assert finder.set_calls[0]["features"][0]["geometry"]["coordinates"] == [[10, 10], [11, 10]]

    routing.get_route([0, 0], [1, 0])
    assert len(finder.calls) == 2


def test_expand_network_merges_and_connects() -> None:
    network = feature_collection([[[0, 0], [1, 0]]])
    routing = Routing(network, route_finder=RouteGraph(network))
    assert routing.get_route([0, 0], [2, 0]) is None

    routing.expand_route_network(feature_collection([[[1, 0], [2, 0]]]))
    assert routing.get_feature_count() == 2
    assert routing.get_node_count() == 3
    assert routing.get_closest_network_coordinate([2.2, 0]) == [2, 0]
    route = routing.get_route([0, 0], [2, 0])
    assert route is not None
    assert route["geometry"]["coordinates"] == [[0, 0], [1, 0], [2, 0]]


def test_expand_forwards_only_new_features() -> None:
    finder = CountingFinder()
    routing = Routing(_network(), route_finder=finder)
    routing.expand_route_network(feature_collection([[[5, 5], [6, 5]]]))
    assert len(finder.expand_calls) == 1
    assert len(finder.expand_calls[0]["features"]) == 1


def test_set_route_finder_keeps_cache() -> None:
    first = CountingFinder(line_feature([[0, 0], [1, 0]]))
    second = CountingFinder(None)
    routing = Routing(_network(), route_finder=first)
    routing.get_route([0, 0], [1, 0])

    routing.set_route_finder(second)
    assert routing.route_finder is second
    assert routing.get_route([0, 0], [1, 0]) is not None
    assert second.calls == []
    assert routing.get_route([1, 0], [2, 0]) is None
    assert len(second.calls) == 1


def test_network_changes_are_logged(monkeypatch: pytest.MonkeyPatch) -> None:
    events: list[tuple[str, dict[str, Any]]] = []
    monkeypatch.setattr("route_snap.routing.log_event", lambda event, **fields: events.append((event, fields)))

    routing = Routing(_network(), route_finder=CountingFinder(None))
    routing.get_route([0, 0], [1, 0])
    routing.set_network(feature_collection([[[0, 0], [1, 0]]]))
    routing.expand_route_network(feature_collection([[[1, 0], [2, 0]]]))
    routing.set_route_finder(RouteGraph())

    names = [name for name, _ in events]
    assert names == ["network_set", "network_expanded", "route_finder_swapped"]
    assert events[0][1]["cache_entries_cleared"] == 1
    assert events[0][1]["node_count"] == 2
    assert events[1][1]["added_feature_count"] == 1
    assert events[1][1]["feature_count"] == 2
    assert events[2][1]["route_finder"] == "RouteGraph"
