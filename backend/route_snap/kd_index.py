from __future__ import annotations

import math

import numpy as np
import numpy.typing as npt

from .errors import SpatialIndexError

# Adapted from kdbush (ISC License, Copyright (c) 2018, Vladimir Agafonkin).

ARRAY_TYPES: tuple[type[np.generic], ...] = (
    np.int8,
    np.uint8,
    np.int16,
    np.uint16,
    np.int32,
    np.uint32,
    np.float32,
    np.float64,
)

DEFAULT_NODE_SIZE = 64


def _validate_num_items(num_items: object) -> int:
    if isinstance(num_items, bool):
        raise SpatialIndexError(
            reason_code="spatial_index_invalid_size",
            message=f"Unexpected num_items value: {num_items!r}.",
        )
    try:
        value = float(num_items)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise SpatialIndexError(
            reason_code="spatial_index_invalid_size",
            message=f"Unexpected num_items value: {num_items!r}.",
        ) from None
    if math.isnan(value) or value < 0 or not value.is_integer():
        raise SpatialIndexError(
            reason_code="spatial_index_invalid_size",
            message=f"Unexpected num_items value: {num_items!r}.",
            details={"num_items": value},
        )
    return int(value)


class KDIndex:
    """Static k-d tree over 2D points stored in flat typed buffers.

    Points are added with :meth:`add` up to the size declared at
    construction, then :meth:`finish` partitions the buffers in place. After
    that the index is read-only.
    """

    def __init__(
        self,
        num_items: int,
        node_size: int = DEFAULT_NODE_SIZE,
        array_type: type[np.generic] = np.float64,
    ) -> None:
        self.num_items = _validate_num_items(num_items)
        self.node_size = min(max(int(node_size), 2), 65535)

        dtype = np.dtype(array_type)
        if dtype.type not in ARRAY_TYPES:
            raise SpatialIndexError(
                reason_code="spatial_index_invalid_dtype",
                message=f"Unexpected typed array class: {array_type!r}.",
            )
        self.array_type = dtype.type
        index_type = np.uint16 if self.num_items < 65536 else np.uint32

        self.ids: npt.NDArray[np.unsignedinteger] = np.zeros(self.num_items, dtype=index_type)
        self.coords: npt.NDArray[np.generic] = np.zeros(self.num_items * 2, dtype=dtype)
        self._pos = 0
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def __len__(self) -> int:
        return self.num_items

    def add(self, x: float, y: float) -> int:
        if self._finished:
            raise SpatialIndexError(
                reason_code="spatial_index_finished",
                message="Cannot add points to an index after finish().",
            )
        index = self._pos >> 1
        if index >= self.num_items:
            raise SpatialIndexError(
                reason_code="spatial_index_full",
                message=f"Index was sized for {self.num_items} items.",
                details={"num_items": self.num_items},
            )
        self.ids[index] = index
        self.coords[self._pos] = x
        self.coords[self._pos + 1] = y
        self._pos += 2
        return index

    def finish(self) -> KDIndex:
        num_added = self._pos >> 1
        if num_added != self.num_items:
            raise SpatialIndexError(
                reason_code="spatial_index_count_mismatch",
                message=f"Added {num_added} items when expected {self.num_items}.",
                details={"added": num_added, "expected": self.num_items},
            )
        if self._finished:
            return self

        # Partitioning runs over plain lists and is written back in one go;
        # element access on numpy arrays is too slow for the inner loops.
        ids = self.ids.tolist()
        coords = self.coords.tolist()
        _sort(ids, coords, self.node_size, 0, self.num_items - 1, 0)
        self.ids[:] = ids
        self.coords[:] = coords
        self._finished = True
        return self

    def require_finished(self) -> None:
        if not self._finished:
            raise SpatialIndexError(
                reason_code="spatial_index_not_finished",
                message="Index must be finished before it can be queried.",
            )

    def range(self, min_x: float, min_y: float, max_x: float, max_y: float) -> list[int]:
        """Ids of all points inside the axis-aligned box, bounds inclusive."""
        self.require_finished()
        ids, coords, node_size = self.ids, self.coords, self.node_size
        stack = [0, self.num_items - 1, 0]
        result: list[int] = []

        while stack:
            axis = stack.pop()
            right = stack.pop()
            left = stack.pop()

            if right - left <= node_size:
                for i in range(left, right + 1):
                    x = coords[2 * i]
                    y = coords[2 * i + 1]
                    if min_x <= x <= max_x and min_y <= y <= max_y:
                        result.append(int(ids[i]))
                continue

            m = (left + right) >> 1
            x = coords[2 * m]
            y = coords[2 * m + 1]
            if min_x <= x <= max_x and min_y <= y <= max_y:
                result.append(int(ids[m]))

            if (min_x <= x) if axis == 0 else (min_y <= y):
                stack.extend((left, m - 1, 1 - axis))
            if (max_x >= x) if axis == 0 else (max_y >= y):
                stack.extend((m + 1, right, 1 - axis))

        return result

    def within(self, qx: float, qy: float, r: float) -> list[int]:
        """Ids of all points within planar distance ``r`` of ``(qx, qy)``."""
        self.require_finished()
        ids, coords, node_size = self.ids, self.coords, self.node_size
        stack = [0, self.num_items - 1, 0]
        result: list[int] = []
        r2 = r * r

        while stack:
            axis = stack.pop()
            right = stack.pop()
            left = stack.pop()

            if right - left <= node_size:
                for i in range(left, right + 1):
                    if _sq_dist(coords[2 * i], coords[2 * i + 1], qx, qy) <= r2:
                        result.append(int(ids[i]))
                continue

            m = (left + right) >> 1
            x = coords[2 * m]
            y = coords[2 * m + 1]
            if _sq_dist(x, y, qx, qy) <= r2:
                result.append(int(ids[m]))

            if (qx - r <= x) if axis == 0 else (qy - r <= y):
                stack.extend((left, m - 1, 1 - axis))
            if (qx + r >= x) if axis == 0 else (qy + r >= y):
                stack.extend((m + 1, right, 1 - axis))

        return result


def _sort(ids: list[int], coords: list[float], node_size: int, left: int, right: int, axis: int) -> None:
    if right - left <= node_size:
        return
    m = (left + right) >> 1
    _select(ids, coords, m, left, right, axis)
    _sort(ids, coords, node_size, left, m - 1, 1 - axis)
    _sort(ids, coords, node_size, m + 1, right, 1 - axis)


def _select(ids: list[int], coords: list[float], k: int, left: int, right: int, axis: int) -> None:
    """Floyd-Rivest selection: put the k-th smallest item along ``axis`` at ``k``."""
    while right > left:
        if right - left > 600:
            n = right - left + 1
            m = k - left + 1
            z = math.log(n)
            s = 0.5 * math.exp(2 * z / 3)
            sd = 0.5 * math.sqrt(z * s * (n - s) / n) * (-1 if m - n / 2 < 0 else 1)
            new_left = max(left, math.floor(k - m * s / n + sd))
            new_right = min(right, math.floor(k + (n - m) * s / n + sd))
            _select(ids, coords, k, new_left, new_right, axis)

        t = coords[2 * k + axis]
        i = left
        j = right

        _swap_item(ids, coords, left, k)
        if coords[2 * right + axis] > t:
            _swap_item(ids, coords, left, right)

        while i < j:
            _swap_item(ids, coords, i, j)
            i += 1
            j -= 1
            while coords[2 * i + axis] < t:
                i += 1
            while coords[2 * j + axis] > t:
                j -= 1

        if coords[2 * left + axis] == t:
            _swap_item(ids, coords, left, j)
        else:
            j += 1
            _swap_item(ids, coords, j, right)

        if j <= k:
            left = j + 1
        if k <= j:
            right = j - 1


def _swap_item(ids: list[int], coords: list[float], i: int, j: int) -> None:
    ids[i], ids[j] = ids[j], ids[i]
    coords[2 * i], coords[2 * j] = coords[2 * j], coords[2 * i]
    coords[2 * i + 1], coords[2 * j + 1] = coords[2 * j + 1], coords[2 * i + 1]


def _sq_dist(ax: float, ay: float, bx: float, by: float) -> float:
    dx = ax - bx
    dy = ay - by
    return dx * dx + dy * dy
