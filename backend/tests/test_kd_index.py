from __future__ import annotations

import random

import numpy as np
import pytest

from route_snap.errors import SpatialIndexError
from route_snap.kd_index import KDIndex


def _points(count: int, seed: int) -> list[tuple[float, float]]:
    rng = random.Random(seed)
    return [(rng.uniform(-180, 180), rng.uniform(-90, 90)) for _ in range(count)]


def _index(points: list[tuple[float, float]], node_size: int = 64) -> KDIndex:
    index = KDIndex(len(points), node_size)
    for x, y in points:
        index.add(x, y)
    return index.finish()


@pytest.mark.parametrize("num_items", [-1, float("nan"), "abc", None, 2.5, True])
def test_rejects_invalid_sizes(num_items: object) -> None:
    with pytest.raises(SpatialIndexError) as exc:
        KDIndex(num_items)  # type: ignore[arg-type]
    assert exc.value.reason_code == "spatial_index_invalid_size"


def test_rejects_unsupported_array_type() -> None:
    with pytest.raises(SpatialIndexError) as exc:
        KDIndex(3, array_type=np.complex128)
    assert exc.value.reason_code == "spatial_index_invalid_dtype"


def test_finish_requires_declared_count() -> None:
    index = KDIndex(3)
    index.add(0.0, 0.0)
    index.add(1.0, 1.0)
    with pytest.raises(SpatialIndexError) as exc:
        index.finish()
    assert exc.value.reason_code == "spatial_index_count_mismatch"
    assert str(exc.value) == "Added 2 items when expected 3."


def test_add_beyond_declared_count_fails() -> None:
    index = KDIndex(1)
    assert index.add(0.0, 0.0) == 0
    with pytest.raises(SpatialIndexError) as exc:
        index.add(1.0, 1.0)
    assert exc.value.reason_code == "spatial_index_full"


def test_index_is_static_after_finish() -> None:
    index = _index([(0.0, 0.0)])
    assert index.finished
    with pytest.raises(SpatialIndexError) as exc:
        index.add(1.0, 1.0)
    assert exc.value.reason_code == "spatial_index_finished"


def test_queries_require_finish() -> None:
    index = KDIndex(1)
    index.add(0.0, 0.0)
    with pytest.raises(SpatialIndexError) as exc:
        index.range(-1, -1, 1, 1)
    assert exc.value.reason_code == "spatial_index_not_finished"


def test_buffer_types_and_node_size_clamp() -> None:
    small = KDIndex(10, node_size=1)
    assert small.node_size == 2
    assert small.ids.dtype == np.uint16
    assert small.coords.dtype == np.float64
    assert small.coords.shape == (20,)

    large = KDIndex(70_000, node_size=100_000)
    assert large.node_size == 65535
    assert large.ids.dtype == np.uint32


def test_empty_index_finishes_and_returns_nothing() -> None:
    index = KDIndex(0).finish()
    assert index.range(-180, -90, 180, 90) == []
    assert index.within(0, 0, 1000) == []


def test_finish_permutes_ids_and_coordinates_together() -> None:
    points = _points(3000, seed=1)
    index = _index(points, node_size=16)

    ids = index.ids.tolist()
    assert sorted(ids) == list(range(len(points)))
    for i, point_id in enumerate(ids):
        assert (index.coords[2 * i], index.coords[2 * i + 1]) == points[point_id]


def test_finish_partitions_around_medians() -> None:
    points = _points(1000, seed=2)
    index = _index(points, node_size=8)
    coords = index.coords

    left, right = 0, len(points) - 1
    m = (left + right) >> 1
    split = coords[2 * m]
    assert all(coords[2 * i] <= split for i in range(left, m))
    assert all(coords[2 * i] >= split for i in range(m + 1, right + 1))


def test_range_matches_brute_force() -> None:
    points = _points(2000, seed=3)
    index = _index(points, node_size=10)

    rng = random.Random(4)
    for _ in range(20):
        x0, x1 = sorted((rng.uniform(-180, 180), rng.uniform(-180, 180)))
        y0, y1 = sorted((rng.uniform(-90, 90), rng.uniform(-90, 90)))
        expected = {i for i, (x, y) in enumerate(points) if x0 <= x <= x1 and y0 <= y <= y1}
        assert set(index.range(x0, y0, x1, y1)) == expected


def test_within_matches_brute_force() -> None:
    points = _points(2000, seed=5)
    index = _index(points, node_size=10)

    rng = random.Random(6)
    for _ in range(20):
        qx, qy, r = rng.uniform(-180, 180), rng.uniform(-90, 90), rng.uniform(1, 40)
        expected = {i for i, (x, y) in enumerate(points) if (x - qx) ** 2 + (y - qy) ** 2 <= r * r}
        assert set(index.within(qx, qy, r)) == expected


def test_large_ranges_use_narrowed_selection() -> None:
    # more than 600 items per range exercises the Floyd-Rivest sampling step
    points = _points(5000, seed=8)
    index = _index(points)
    assert sorted(index.ids.tolist()) == list(range(5000))
    assert set(index.range(-10, -10, 10, 10)) == {
        i for i, (x, y) in enumerate(points) if -10 <= x <= 10 and -10 <= y <= 10
    }
