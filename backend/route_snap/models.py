from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

LngLat = tuple[float, float]


def _check_lng_lat(value: LngLat) -> LngLat:
    lng, lat = value
    if not (math.isfinite(lng) and math.isfinite(lat)):
        raise ValueError("coordinate must be finite")
    if not -180.0 <= lng <= 180.0:
        raise ValueError("longitude must be within [-180, 180]")
    if not -90.0 <= lat <= 90.0:
        raise ValueError("latitude must be within [-90, 90]")
    return value


class LineStringGeometry(BaseModel):
    type: Literal["LineString"]
    coordinates: list[LngLat] = Field(..., min_length=2)  # [lon, lat]

    @field_validator("coordinates")
    @classmethod
    def finite_in_range(cls, v: list[LngLat]) -> list[LngLat]:
        return [_check_lng_lat(c) for c in v]


class LineStringFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: LineStringGeometry
    properties: dict[str, Any] | None = Field(default_factory=dict)


class NetworkModel(BaseModel):
    """A GeoJSON FeatureCollection of LineStrings, validated at the boundary."""

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[LineStringFeature] = Field(default_factory=list)

    def to_geojson(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ClosestRequest(BaseModel):
    coordinate: LngLat

    @field_validator("coordinate")
    @classmethod
    def finite(cls, v: LngLat) -> LngLat:
        return _check_lng_lat(v)


class ClosestResponse(BaseModel):
    coordinate: LngLat | None = None


class CandidatesRequest(BaseModel):
    coordinate: LngLat
    max_results: int = Field(default=1, ge=1)
    max_distance_km: float | None = Field(default=None, ge=0.0)

    @field_validator("coordinate")
    @classmethod
    def finite(cls, v: LngLat) -> LngLat:
        return _check_lng_lat(v)


class CandidatesResponse(BaseModel):
    coordinates: list[LngLat] = Field(default_factory=list)


class RouteRequest(BaseModel):
    start: LngLat
    end: LngLat

    @field_validator("start", "end")
    @classmethod
    def finite(cls, v: LngLat) -> LngLat:
        return _check_lng_lat(v)


class RouteGeometry(BaseModel):
    type: Literal["LineString"] = "LineString"
    # a route from a point to itself has a single coordinate
    coordinates: list[LngLat] = Field(..., min_length=1)


class RouteFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: RouteGeometry
    properties: dict[str, Any] | None = Field(default_factory=dict)


class RouteResponse(BaseModel):
    route: RouteFeature | None = None


class NetworkStats(BaseModel):
    feature_count: int = Field(..., ge=0)
    point_count: int = Field(..., ge=0)
    node_count: int = Field(..., ge=0)
