from __future__ import annotations

import argparse
import json
import random
import sys
from collections.abc import Sequence
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from route_snap.geojson import FeatureCollection, iter_lines, load_network


def _random_existing_point(lines: list[Sequence[Sequence[float]]], rng: random.Random) -> list[float]:
    line = lines[rng.randrange(len(lines))]
    if len(line) == 0:
        raise ValueError("LineString must have at least 1 coordinate")
    coord = line[rng.randrange(len(line))]
    return [coord[0], coord[1]]


def generate_pairs(network: FeatureCollection, count: int, seed: int) -> list[tuple[list[float], list[float]]]:
    """Random (start, end) pairs drawn from coordinates already on the network."""
    lines = list(iter_lines(network))
    if not lines:
        raise ValueError("Input FeatureCollection has no LineStrings.")

    rng = random.Random(seed)
    return [
        (_random_existing_point(lines, rng), _random_existing_point(lines, rng))
        for _ in range(max(1, count))
    ]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate random on-network coordinate pairs.")
    parser.add_argument("--network", required=True, help="GeoJSON FeatureCollection of LineStrings.")
    parser.add_argument("--count", type=int, default=100)
    parser.add_argument("--seed", type=int, default=20250101)
    parser.add_argument("--output", default=None, help="Write pairs here instead of stdout.")
    return parser


def run_generate(args: argparse.Namespace) -> list[tuple[list[float], list[float]]]:
    network = load_network(args.network)
    pairs = generate_pairs(network, args.count, args.seed)
    text = json.dumps(pairs, indent=2)
    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    else:
        print(text)
    return pairs


def main() -> None:
    run_generate(build_parser().parse_args())


if __name__ == "__main__":
    main()
