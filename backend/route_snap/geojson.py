from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import NetworkFormatError
from .models import NetworkModel

Position = list[float]
Feature = dict[str, Any]
FeatureCollection = dict[str, Any]


def point_feature(coordinate: Sequence[float]) -> Feature:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": list(coordinate)},
        "properties": {},
    }


def line_feature(coordinates: Iterable[Sequence[float]]) -> Feature:
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [list(c) for c in coordinates]},
        "properties": {},
    }


def feature_collection(lines: Iterable[Iterable[Sequence[float]]]) -> FeatureCollection:
    """Wrap plain coordinate sequences as a FeatureCollection of LineStrings."""
    return {"type": "FeatureCollection", "features": [line_feature(line) for line in lines]}


def empty_network() -> FeatureCollection:
    return {"type": "FeatureCollection", "features": []}


def iter_lines(network: FeatureCollection) -> Iterator[Sequence[Sequence[float]]]:
    for feature in network.get("features", ()):
        geometry = feature.get("geometry") or {}
        yield geometry.get("coordinates") or ()


def iter_network_coordinates(network: FeatureCollection) -> Iterator[Sequence[float]]:
    for line in iter_lines(network):
        yield from line


def load_network(path: str | Path) -> FeatureCollection:
    """Read and validate a GeoJSON FeatureCollection of LineStrings."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise NetworkFormatError(
            reason_code="network_unavailable",
            message=f"network file could not be read: {path}",
            details={"path": str(path)},
        ) from e
    try:
        model = NetworkModel.model_validate_json(text)
    except ValidationError as e:
        raise NetworkFormatError(
            message=f"network file is not a FeatureCollection of LineStrings: {path}",
            details={"path": str(path), "errors": e.error_count()},
        ) from e
    return model.to_geojson()
