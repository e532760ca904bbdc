"""Probe a running NetView API for liveness and a usable graph view configuration."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

import httpx

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class APIHealthResult:
    """Outcome of probing the health and settings endpoints."""

    ok: bool
    status_code: Optional[int]
    detail: str
    latency_ms: Optional[float]
    version: Optional[str] = None
    palette_size: Optional[int] = None
    problems: List[str] = field(default_factory=list)


def _settings_problems(payload: Any) -> List[str]:
    problems: List[str] = []
    graph_view = payload.get("graph_view") if isinstance(payload, dict) else None
    if not isinstance(graph_view, dict):
        return ["settings payload lacks a graph_view section"]
    colors = graph_view.get("colors")
    if not isinstance(colors, list) or not colors:
        problems.append("graph_view.colors is empty")
    zoom_extent = graph_view.get("zoom_extent")
    if not isinstance(zoom_extent, list) or len(zoom_extent) != 2:
        problems.append("graph_view.zoom_extent is not a [min, max] pair")
    return problems


def check_api_health(
    base_url: str,
    *,
    timeout: float = 5.0,
    client: Optional[httpx.Client] = None,
    expected_version: Optional[str] = None,
) -> APIHealthResult:
    """Ping ``/health`` and then ``/api/ui/settings``.

    Args:
        base_url: Base URL where the API is hosted (e.g. ``"http://localhost:8000"``).
        timeout: Request timeout in seconds when creating an internal client.
        client: Optional pre-configured ``httpx.Client``.
        expected_version: When set, a differing service version counts as a failure.

    Returns:
        APIHealthResult: Whether the service is up and serving graph settings.
    """

    root = base_url.rstrip("/")
    should_close = client is None
    session = client or httpx.Client(timeout=timeout)
    start_time = time.monotonic()

    try:
        response = session.get(f"{root}/health")
        latency_ms = (time.monotonic() - start_time) * 1000
        if response.status_code != httpx.codes.OK:
            LOGGER.warning("Health endpoint returned %d", response.status_code)
            return APIHealthResult(
                ok=False,
                status_code=response.status_code,
                detail=f"Health endpoint returned {response.status_code}",
                latency_ms=latency_ms,
            )
        health = response.json()
        version = health.get("version") if isinstance(health, dict) else None

        settings = session.get(f"{root}/api/ui/settings")
        if settings.status_code != httpx.codes.OK:
            LOGGER.warning("Settings endpoint returned %d", settings.status_code)
            return APIHealthResult(
                ok=False,
                status_code=settings.status_code,
                detail=f"Settings endpoint returned {settings.status_code}",
                latency_ms=latency_ms,
                version=version,
            )
        payload = settings.json()
    except ValueError as exc:
        LOGGER.warning("API returned a non-JSON payload: %s", exc)
        return APIHealthResult(
            ok=False,
            status_code=None,
            detail="API returned a non-JSON payload",
            latency_ms=(time.monotonic() - start_time) * 1000,
        )
    except httpx.HTTPError as exc:  # pragma: no cover - network failures are environment dependent
        LOGGER.error("API health probe against %s failed: %s", root, exc)
        return APIHealthResult(
            ok=False,
            status_code=None,
            detail=f"Request to {root} failed: {exc}",
            latency_ms=(time.monotonic() - start_time) * 1000,
        )
    finally:
        if should_close:
            session.close()

    problems = _settings_problems(payload)
    if expected_version is not None and version != expected_version:
        problems.append(f"service version {version!r} differs from expected {expected_version!r}")
    graph_view = payload.get("graph_view") if isinstance(payload, dict) else None
    colors = graph_view.get("colors") if isinstance(graph_view, dict) else None
    ok = not problems
    LOGGER.info("API health probe finished ok=%s latency_ms=%.1f", ok, latency_ms)
    return APIHealthResult(
        ok=ok,
        status_code=settings.status_code,
        detail="API health check succeeded" if ok else "; ".join(problems),
        latency_ms=latency_ms,
        version=version,
        palette_size=len(colors) if isinstance(colors, list) else None,
        problems=problems,
    )


__all__ = ["APIHealthResult", "check_api_health"]
