#!/usr/bin/env python3
"""Settle a force-directed layout for a graph file and print node positions as JSON."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from backend.app.config import ConfigError, load_config
from backend.app.graph import GraphValidationError
from backend.app.ui import GraphSession

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for the layout utility.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "graph_path",
        type=Path,
        help="JSON file holding 'node_data' (id -> value) and 'edge_data' (list of source/target/value)",
    )
    parser.add_argument(
        "--max-ticks",
        type=int,
        default=1000,
        help="Upper bound on simulation ticks (default: 1000)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the initial node placement")
    parser.add_argument("--width", type=float, default=None, help="Viewport width (default from config)")
    parser.add_argument("--height", type=float, default=None, help="Viewport height (default from config)")
    parser.add_argument("--config", type=Path, default=None, help="Override path to config.yaml")
    return parser.parse_args(argv)


def _load_graph(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError("graph file root must be an object")
    return payload


def settle_layout(
    payload: Dict[str, Any],
    *,
    max_ticks: int,
    seed: Optional[int] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    config_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """Run the simulation to rest and summarise the resulting layout."""

    config = load_config(config_path)
    session = GraphSession(
        config,
        payload.get("node_data", {}),
        payload.get("edge_data", []),
        width=width,
        height=height,
        seed=seed,
    )
    try:
        ticks = session.simulation.settle(max_ticks)
        frame = session.frame()
    finally:
        session.close()
    return {
        "ticks": ticks,
        "settled": not frame.running,
        "alpha": frame.alpha,
        "nodes": [
            {"id": node.id, "x": node.x, "y": node.y, "radius": node.radius, "fill": node.fill}
            for node in frame.projection.nodes
        ],
        "links": [
            {"source": link.source_id, "target": link.target_id, "width": link.width, "sign": link.sign}
            for link in frame.projection.links
        ],
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the layout CLI.

    Returns:
        int: Exit status code where ``0`` indicates success.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)

    try:
        payload = _load_graph(args.graph_path)
    except (OSError, ValueError) as exc:
        print(f"Unable to read graph file {args.graph_path}: {exc}", file=sys.stderr)
        return 1

    try:
        result = settle_layout(
            payload,
            max_ticks=args.max_ticks,
            seed=args.seed,
            width=args.width,
            height=args.height,
            config_path=args.config,
        )
    except GraphValidationError as exc:
        print(f"Graph rejected ({exc.kind}): {exc}", file=sys.stderr)
        return 2
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    LOGGER.info("Layout finished after %d ticks (settled=%s)", result["ticks"], result["settled"])
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
