from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from time import perf_counter
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from route_snap.distance import create_cheap_ruler, haversine_distance
from route_snap.geojson import FeatureCollection, iter_network_coordinates, load_network
from route_snap.route_finder import NetworkXRouteFinder, RouteFinder
from route_snap.route_graph import RouteGraph
from route_snap.routing import Routing
from route_snap.settings import settings
from scripts.generate_pairs import generate_pairs

Pair = tuple[list[float], list[float]]


def _utc_now_compact() -> str:
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")


def _finders(network: FeatureCollection) -> dict[str, Callable[[], RouteFinder]]:
    first = next(iter_network_coordinates(network), None)
    ruler = create_cheap_ruler(float(first[1]) if first is not None else 0.0)
    return {
        "route_graph_cheap_ruler": lambda: RouteGraph(network, ruler),
        "route_graph_haversine": lambda: RouteGraph(network, haversine_distance),
        "networkx_haversine": lambda: NetworkXRouteFinder(network, haversine_distance),
    }


def time_finder(network: FeatureCollection, finder: RouteFinder, pairs: list[Pair]) -> dict[str, float | int]:
    routing = Routing(network, route_finder=finder, use_cache=False)
    found = 0
    total_coordinates = 0
    t0 = perf_counter()
    for start, end in pairs:
        route = routing.get_route(start, end)
        if route is not None:
            found += 1
            total_coordinates += len(route["geometry"]["coordinates"])
    duration_ms = (perf_counter() - t0) * 1000.0
    return {
        "duration_ms": round(duration_ms, 3),
        "found": found,
        "not_found": len(pairs) - found,
        "total_coordinates": total_coordinates,
    }


def _load_pairs(path: str) -> list[Pair]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return [(list(start), list(end)) for start, end in raw]


def _default_output_path(out_dir: Path) -> Path:
    benchmark_dir = out_dir / "benchmarks"
    benchmark_dir.mkdir(parents=True, exist_ok=True)
    return benchmark_dir / f"routing_benchmark_{_utc_now_compact()}.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Benchmark route finders over one network.")
    parser.add_argument("--network", required=True, help="GeoJSON FeatureCollection of LineStrings.")
    parser.add_argument("--pairs", default=None, help="JSON pairs from generate_pairs.py; random when omitted.")
    parser.add_argument("--pair-count", type=int, default=100)
    parser.add_argument("--seed", type=int, default=20250101)
    parser.add_argument("--out-dir", default=settings.out_dir)
    parser.add_argument("--output", default=None)
    return parser


def run_benchmark(args: argparse.Namespace) -> dict[str, Any]:
    network = load_network(args.network)
    pairs = _load_pairs(args.pairs) if args.pairs else generate_pairs(network, args.pair_count, args.seed)

    results: dict[str, dict[str, float | int]] = {}
    for name, factory in _finders(network).items():
        t0 = perf_counter()
        finder = factory()
        build_ms = (perf_counter() - t0) * 1000.0
        results[name] = {"build_ms": round(build_ms, 3), **time_finder(network, finder, pairs)}

    record: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "network": str(args.network),
        "pair_count": len(pairs),
        "finders": results,
    }
    path = Path(args.output) if args.output else _default_output_path(Path(args.out_dir).resolve())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    record["output_path"] = str(path)
    return record


def main() -> None:
    record = run_benchmark(build_parser().parse_args())
    for name, stats in record["finders"].items():
        print(f"{name} took {stats['duration_ms']}ms for {record['pair_count']} pairs ({stats['found']} found)")
    print(f"wrote {record['output_path']}")


if __name__ == "__main__":
    main()
