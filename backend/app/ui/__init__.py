"""Interaction state, visual projection, viewport and session services for the graph view."""

from .interaction import FilterMode, HoverKind, InteractionController, InteractionSnapshot
from .projection import VisualProjection, compute_projection
from .service import GraphSessionRegistry, GraphViewService, SessionNotFoundError
from .session import GraphSession, RenderFrame, SessionClosedError
from .viewport import ViewportController, ZoomTransform

__all__ = [
    "FilterMode",
    "GraphSession",
    "GraphSessionRegistry",
    "GraphViewService",
    "HoverKind",
    "InteractionController",
    "InteractionSnapshot",
    "RenderFrame",
    "SessionClosedError",
    "SessionNotFoundError",
    "ViewportController",
    "VisualProjection",
    "ZoomTransform",
    "compute_projection",
]
