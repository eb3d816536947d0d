from __future__ import annotations

import copy
from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import dataclass
from threading import Lock

from .geojson import Feature


@dataclass
class RouteCacheEntry:
    # None records a lookup that found no path
    route: Feature | None


def route_key(start: Sequence[float], end: Sequence[float]) -> str:
    return f"{start[0]!r},{start[1]!r}-{end[0]!r},{end[1]!r}"


class RouteCacheStore:
    """Route results keyed by ordered coordinate pair.

    Unbounded by default: entries live until :meth:`clear`. A positive
    ``max_entries`` evicts least-recently-used entries instead.
    """

    def __init__(self, *, max_entries: int | None = None) -> None:
        self._max_entries = int(max_entries) if max_entries and int(max_entries) > 0 else None
        self._lock = Lock()
        self._items: OrderedDict[str, RouteCacheEntry] = OrderedDict()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, key: str) -> RouteCacheEntry | None:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                self._misses += 1
                return None

            self._items.move_to_end(key)
            self._hits += 1
            return copy.deepcopy(entry)

    def set(self, key: str, route: Feature | None) -> None:
        entry = RouteCacheEntry(route=copy.deepcopy(route))
        with self._lock:
            if key in self._items:
                self._items.move_to_end(key)
            self._items[key] = entry

            if self._max_entries is not None:
                while len(self._items) > self._max_entries:
                    self._items.popitem(last=False)
                    self._evictions += 1

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._items)
            self._items.clear()
            return cleared

    def snapshot(self) -> dict[str, int | None]:
        with self._lock:
            return {
                "size": len(self._items),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "max_entries": self._max_entries,
            }
