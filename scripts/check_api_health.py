#!/usr/bin/env python3
"""CLI utility to verify that the NetView API is reachable and serving graph settings."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from backend.app.utils.api_health import check_api_health


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "base_url",
        nargs="?",
        default="http://localhost:8000",
        help="Base URL for the API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Request timeout in seconds (default: 5.0)",
    )
    parser.add_argument("--expect-version", default=None, help="Fail unless the service reports this version")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the CLI health check utility.

    Returns:
        int: Exit status code where ``0`` indicates success.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)

    result = check_api_health(args.base_url, timeout=args.timeout, expected_version=args.expect_version)

    if result.ok:
        print(
            "API health check succeeded",
            f"version={result.version}",
            f"palette_size={result.palette_size}",
            f"latency_ms={result.latency_ms:.2f}" if result.latency_ms is not None else "latency_ms=unknown",
        )
        return 0

    print("API health check failed:", result.detail, file=sys.stderr)
    if result.status_code is not None:
        print(f"Status code: {result.status_code}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
