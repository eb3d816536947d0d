from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "spatial_index_invalid_size",
        "spatial_index_invalid_dtype",
        "spatial_index_count_mismatch",
        "spatial_index_full",
        "spatial_index_finished",
        "spatial_index_not_finished",
        "network_invalid_geojson",
        "network_unavailable",
    }
)


@dataclass
class RoutingDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class SpatialIndexError(RoutingDataError):
    """Misuse of the static index by its direct caller; not a data problem."""


@dataclass
class NetworkFormatError(RoutingDataError):
    reason_code: str = "network_invalid_geojson"
    message: str = "network is not a FeatureCollection of LineStrings"


def normalize_reason_code(reason_code: str, *, default: str = "network_unavailable") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
