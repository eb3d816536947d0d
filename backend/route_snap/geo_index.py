from __future__ import annotations

import heapq
import math
from typing import NamedTuple

import numpy as np

from .kd_index import KDIndex

# Adapted from geokdbush (ISC License, Copyright (c) 2017, Vladimir Agafonkin).
#
# Traversal compares the haversine of the central angle ("square of the half
# chord") instead of true distances; it is monotonic in distance, so the
# inverse trig only runs in distance().

EARTH_RADIUS_KM = 6371.0
RAD = math.pi / 180


class _Node(NamedTuple):
    left: int
    right: int
    axis: int  # 0 splits on longitude, 1 on latitude
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float


_WHOLE_EARTH = (-180.0, -90.0, 180.0, 90.0)


def around(
    index: KDIndex,
    lng: float,
    lat: float,
    max_results: float | None = math.inf,
    max_distance: float | None = math.inf,
) -> list[int]:
    """Ids of indexed points nearest to ``(lng, lat)``, closest first.

    ``max_distance`` is in kilometres. The search stops as soon as
    ``max_results`` ids are collected or the next candidate is farther than
    ``max_distance``.
    """
    index.require_finished()
    if max_results is None:
        max_results = math.inf
    if max_distance is None:
        max_distance = math.inf
    if max_results <= 0 or max_distance < 0:
        return []

    max_haversin_dist = math.inf
    if max_distance < math.pi * EARTH_RADIUS_KM:
        max_haversin_dist = _haversin(max_distance / EARTH_RADIUS_KM)

    ids, coords, node_size = index.ids, index.coords, index.node_size
    result: list[int] = []
    cos_lat = math.cos(lat * RAD)

    # Entries are (dist, seq, id, node); points carry an id, kd-tree nodes a
    # node. seq keeps tuple comparison away from the payload.
    queue: list[tuple[float, int, int | None, _Node | None]] = []
    seq = 0

    node: _Node | None = _Node(0, index.num_items - 1, 0, *_WHOLE_EARTH)
    while node is not None:
        left, right = node.left, node.right

        if right - left <= node_size:
            if right >= left:
                lngs = coords[2 * left : 2 * right + 2 : 2].astype(np.float64)
                lats = coords[2 * left + 1 : 2 * right + 2 : 2].astype(np.float64)
                dists = cos_lat * np.cos(lats * RAD) * _haversin_array((lng - lngs) * RAD) + _haversin_array(
                    (lat - lats) * RAD
                )
                for point_id, dist in zip(ids[left : right + 1].tolist(), dists.tolist()):
                    heapq.heappush(queue, (dist, seq, point_id, None))
                    seq += 1
        else:
            m = (left + right) >> 1
            mid_lng = float(coords[2 * m])
            mid_lat = float(coords[2 * m + 1])

            heapq.heappush(queue, (_haversin_dist(lng, lat, mid_lng, mid_lat, cos_lat), seq, int(ids[m]), None))
            seq += 1

            next_axis = (node.axis + 1) % 2
            left_node = _Node(
                left,
                m - 1,
                next_axis,
                node.min_lng,
                node.min_lat,
                mid_lng if node.axis == 0 else node.max_lng,
                mid_lat if node.axis == 1 else node.max_lat,
            )
            right_node = _Node(
                m + 1,
                right,
                next_axis,
                mid_lng if node.axis == 0 else node.min_lng,
                mid_lat if node.axis == 1 else node.min_lat,
                node.max_lng,
                node.max_lat,
            )
            heapq.heappush(queue, (_box_dist(lng, lat, cos_lat, left_node), seq, None, left_node))
            seq += 1
            heapq.heappush(queue, (_box_dist(lng, lat, cos_lat, right_node), seq, None, right_node))
            seq += 1

        # Points at the head of the queue are closer than everything left in
        # it, since each node's dist is a lower bound for its contents.
        while queue and queue[0][2] is not None:
            dist, _, point_id, _ = heapq.heappop(queue)
            if dist > max_haversin_dist:
                return result
            result.append(point_id)  # type: ignore[arg-type]
            if len(result) >= max_results:
                return result

        node = heapq.heappop(queue)[3] if queue else None

    return result


def distance(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance in kilometres."""
    h = _haversin_dist(lng1, lat1, lng2, lat2, math.cos(lat1 * RAD))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, max(0.0, h))))


def _box_dist(lng: float, lat: float, cos_lat: float, node: _Node) -> float:
    """Lower bound on the metric from the query point to anything inside node's box."""
    min_lng, min_lat, max_lng, max_lat = node.min_lng, node.min_lat, node.max_lng, node.max_lat

    if min_lng <= lng <= max_lng:
        if lat < min_lat:
            return _haversin((lat - min_lat) * RAD)
        if lat > max_lat:
            return _haversin((lat - max_lat) * RAD)
        return 0.0

    # West or east of the box: the closest point lies on the nearer meridian,
    # at the great circle's vertex latitude if that is inside the box.
    haversin_dlng = min(_haversin((lng - min_lng) * RAD), _haversin((lng - max_lng) * RAD))
    extremum_lat = _vertex_lat(lat, haversin_dlng)

    if min_lat < extremum_lat < max_lat:
        return _haversin_dist_partial(haversin_dlng, cos_lat, lat, extremum_lat)
    return min(
        _haversin_dist_partial(haversin_dlng, cos_lat, lat, min_lat),
        _haversin_dist_partial(haversin_dlng, cos_lat, lat, max_lat),
    )


def _haversin(theta: float) -> float:
    s = math.sin(theta / 2)
    return s * s


def _haversin_array(theta: np.ndarray) -> np.ndarray:
    s = np.sin(theta / 2)
    return s * s


def _haversin_dist_partial(haversin_dlng: float, cos_lat1: float, lat1: float, lat2: float) -> float:
    return cos_lat1 * math.cos(lat2 * RAD) * haversin_dlng + _haversin((lat1 - lat2) * RAD)


def _haversin_dist(lng1: float, lat1: float, lng2: float, lat2: float, cos_lat1: float) -> float:
    haversin_dlng = _haversin((lng1 - lng2) * RAD)
    return _haversin_dist_partial(haversin_dlng, cos_lat1, lat1, lat2)


def _vertex_lat(lat: float, haversin_dlng: float) -> float:
    cos_dlng = 1 - 2 * haversin_dlng
    if cos_dlng <= 0:
        return 90.0 if lat > 0 else -90.0
    return math.atan(math.tan(lat * RAD) / cos_dlng) / RAD
