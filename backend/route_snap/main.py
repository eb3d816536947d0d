from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .distance import distance_measurement_for
from .errors import RoutingDataError, normalize_reason_code
from .geojson import FeatureCollection, empty_network, iter_network_coordinates, load_network
from .logging_utils import log_event
from .metrics_store import metrics_snapshot, record_not_found, record_request
from .models import (
    CandidatesRequest,
    CandidatesResponse,
    ClosestRequest,
    ClosestResponse,
    NetworkModel,
    NetworkStats,
    RouteRequest,
    RouteResponse,
)
from .route_cache import RouteCacheStore
from .route_graph import RouteGraph
from .routing import Routing
from .settings import settings


def build_routing(network: FeatureCollection) -> Routing:
    """Façade over a :class:`RouteGraph` using the configured distance strategy.

    The cheap-ruler reference latitude is the first network coordinate's.
    """
    first = next(iter_network_coordinates(network), None)
    reference_lat = float(first[1]) if first is not None else 0.0
    measure = distance_measurement_for(settings.distance_strategy, reference_lat)
    return Routing(
        network,
        route_finder=RouteGraph(network, measure),
        use_cache=settings.route_cache_enabled,
        cache=RouteCacheStore(max_entries=settings.route_cache_max_entries),
        node_size=settings.spatial_index_node_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    network = load_network(settings.network_path) if settings.network_path else empty_network()
    routing = build_routing(network)
    app.state.routing = routing
    log_event(
        "routing_ready",
        network_path=settings.network_path or None,
        distance_strategy=settings.distance_strategy,
        feature_count=routing.get_feature_count(),
        node_count=routing.get_node_count(),
    )
    yield


app = FastAPI(title="Route Snap", version="0.1.0", lifespan=lifespan)


def routing_service(request: Request) -> Routing:
    routing: Routing | None = getattr(request.app.state, "routing", None)
    if routing is None:
        raise HTTPException(status_code=503, detail="routing not initialised")
    return routing


RoutingDep = Annotated[Routing, Depends(routing_service)]


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    t0 = time.perf_counter()
    response = await call_next(request)
    record_request(
        request.url.path,
        duration_ms=(time.perf_counter() - t0) * 1000.0,
        error=response.status_code >= 400,
    )
    return response


@app.exception_handler(RoutingDataError)
async def routing_data_error_handler(_request: Request, exc: RoutingDataError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"reason_code": normalize_reason_code(exc.reason_code), "message": exc.message},
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _stats(routing: Routing) -> NetworkStats:
    return NetworkStats(
        feature_count=routing.get_feature_count(),
        point_count=routing.get_point_count(),
        node_count=routing.get_node_count(),
    )


@app.get("/network", response_model=NetworkStats)
def network_stats(routing: RoutingDep) -> NetworkStats:
    return _stats(routing)


@app.put("/network", response_model=NetworkStats)
def set_network(req: NetworkModel, routing: RoutingDep) -> NetworkStats:
    routing.set_network(req.to_geojson())
    return _stats(routing)


@app.post("/network/expand", response_model=NetworkStats)
def expand_network(req: NetworkModel, routing: RoutingDep) -> NetworkStats:
    routing.expand_route_network(req.to_geojson())
    return _stats(routing)


@app.post("/closest", response_model=ClosestResponse)
def closest(req: ClosestRequest, routing: RoutingDep) -> ClosestResponse:
    coordinate = routing.get_closest_network_coordinate(req.coordinate)
    if coordinate is None:
        record_not_found("/closest")
        return ClosestResponse(coordinate=None)
    return ClosestResponse(coordinate=(coordinate[0], coordinate[1]))


@app.post("/closest/candidates", response_model=CandidatesResponse)
def closest_candidates(req: CandidatesRequest, routing: RoutingDep) -> CandidatesResponse:
    max_results = min(req.max_results, settings.closest_max_results_cap)
    max_distance = req.max_distance_km if req.max_distance_km is not None else float("inf")
    coordinates = routing.get_closest_network_coordinates(req.coordinate, max_results, max_distance)
    if not coordinates:
        record_not_found("/closest/candidates")
    return CandidatesResponse(coordinates=[(c[0], c[1]) for c in coordinates])


@app.post("/route", response_model=RouteResponse)
def route(req: RouteRequest, routing: RoutingDep) -> RouteResponse:
    t0 = time.perf_counter()
    hits_before = routing.cache_stats()["hits"]
    feature = routing.get_route(req.start, req.end)
    found = feature is not None
    if not found:
        record_not_found("/route")

    log_event(
        "route_request",
        start=list(req.start),
        end=list(req.end),
        found=found,
        cached=routing.cache_stats()["hits"] > hits_before,
        coordinate_count=len(feature["geometry"]["coordinates"]) if found else 0,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return RouteResponse.model_validate({"route": feature})


@app.get("/cache")
def cache_stats(routing: RoutingDep) -> dict[str, int | None]:
    return routing.cache_stats()


@app.get("/metrics")
def metrics() -> dict[str, object]:
    return metrics_snapshot()
