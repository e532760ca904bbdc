"""FastAPI application factory for the NetView backend."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from typing_extensions import Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, FiniteFloat

from backend.app.config import AppConfig, load_config
from backend.app.graph import GraphValidationError
from backend.app.ui import (
    FilterMode,
    GraphSession,
    GraphViewService,
    SessionClosedError,
    SessionNotFoundError,
    ZoomTransform,
)

LOGGER = logging.getLogger(__name__)


class GraphDataRequest(BaseModel):
    """Raw graph input supplied by the hosting application.

    Values are validated by the graph model so non-finite numbers surface as
    ``invalid-value`` errors rather than generic request errors.
    """

    node_data: Dict[str, Any] = Field(default_factory=dict)
    edge_data: List[Dict[str, Any]] = Field(default_factory=list)


class CreateSessionRequest(GraphDataRequest):
    """Request payload for opening a graph session."""

    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)


class ReloadRequest(GraphDataRequest):
    """Request payload replacing the graph of an existing session."""

    reset_interaction: bool = False


class FilterRequest(BaseModel):
    mode: FilterMode


class HoverRequest(BaseModel):
    """Hover a node or a link; neither clears the hover overlay."""

    node_id: Optional[str] = None
    link_index: Optional[int] = Field(default=None, ge=0)
    generation: Optional[int] = None


class DragRequest(BaseModel):
    """One phase of the drag protocol for a node."""

    phase: Literal["start", "move", "end"]
    node_id: str = Field(..., min_length=1)
    x: Optional[FiniteFloat] = None
    y: Optional[FiniteFloat] = None
    generation: Optional[int] = None


class ZoomRequest(BaseModel):
    x: FiniteFloat = 0.0
    y: FiniteFloat = 0.0
    k: FiniteFloat = Field(1.0, gt=0)


class RecenterRequest(BaseModel):
    duration_seconds: Optional[float] = Field(default=None, ge=0)


class EventResponse(BaseModel):
    """Outcome of an interaction event plus the resulting frame."""

    applied: bool
    frame: Dict[str, Any]


class SessionResponse(BaseModel):
    session_id: str
    frame: Dict[str, Any]


class UISettingsResponse(BaseModel):
    """Graph view defaults served to the UI shell."""

    graph_view: Dict[str, Any]
    viewport: Dict[str, Any]
    max_ticks_per_request: int


def create_app(
    config: AppConfig | None = None,
    graph_view_service: Optional[GraphViewService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        config: Optional pre-loaded configuration. If omitted, the default
            configuration defined in config.yaml is used.
        graph_view_service: Optional session service; a fresh one is built from
            ``config`` when omitted.

    Returns:
        FastAPI: Configured FastAPI application.
    """

    resolved_config = config or load_config()
    app = FastAPI(title="NetView API", version=resolved_config.service.version)
    app.state.app_config = resolved_config
    app.state.graph_view_service = graph_view_service or GraphViewService(resolved_config)

    allowed_origins = resolved_config.ui.allowed_origins
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(GraphValidationError)
    async def _graph_validation_handler(request: Request, exc: GraphValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"kind": exc.kind, "detail": str(exc)})

    @app.exception_handler(SessionClosedError)
    async def _session_closed_handler(request: Request, exc: SessionClosedError) -> JSONResponse:
        LOGGER.info("Request %s %s reached a closed graph session", request.method, request.url.path)
        return JSONResponse(status_code=404, content={"detail": "Graph session not found"})

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        _require_service(app).shutdown()

    @app.get("/health", tags=["system"], summary="Service health probe")
    def health() -> dict[str, str]:
        """Return service health information."""

        return {"status": "ok", "version": resolved_config.service.version}

    @app.get("/api/ui/settings", tags=["ui"], summary="Graph view defaults")
    def ui_settings() -> UISettingsResponse:
        """Return UI defaults sourced from the configuration file."""

        return UISettingsResponse(
            graph_view=resolved_config.graph_view.model_dump(),
            viewport=resolved_config.viewport.model_dump(),
            max_ticks_per_request=resolved_config.ui.max_ticks_per_request,
        )

    @app.post("/api/graphs", tags=["graph"], summary="Open a graph session", status_code=201)
    def create_session(payload: CreateSessionRequest) -> SessionResponse:
        service = _require_service(app)
        session_id, session = service.create_session(
            payload.node_data,
            payload.edge_data,
            width=payload.width,
            height=payload.height,
        )
        return SessionResponse(session_id=session_id, frame=session.frame().to_dict())

    @app.put("/api/graphs/{session_id}/data", tags=["graph"], summary="Replace the graph input")
    def reload_session(session_id: str, payload: ReloadRequest) -> SessionResponse:
        service = _require_service(app)
        try:
            session = service.reload(
                session_id,
                payload.node_data,
                payload.edge_data,
                reset_interaction=payload.reset_interaction,
            )
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Graph session not found") from exc
        return SessionResponse(session_id=session_id, frame=session.frame().to_dict())

    @app.get("/api/graphs/{session_id}/frame", tags=["graph"], summary="Pull the current frame")
    def get_frame(session_id: str) -> Dict[str, Any]:
        return _lookup(app, session_id).frame().to_dict()

    @app.post("/api/graphs/{session_id}/tick", tags=["graph"], summary="Advance the layout")
    def tick(session_id: str, steps: int = Query(1, ge=1)) -> Dict[str, Any]:
        service = _require_service(app)
        try:
            session = service.advance(session_id, steps)
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Graph session not found") from exc
        return session.frame().to_dict()

    @app.post("/api/graphs/{session_id}/filter", tags=["interaction"], summary="Filter links by sign")
    def set_filter(session_id: str, payload: FilterRequest) -> EventResponse:
        session = _lookup(app, session_id)
        return _event_response(session, session.set_filter(payload.mode))

    @app.post(
        "/api/graphs/{session_id}/nodes/{node_id}/toggle",
        tags=["interaction"],
        summary="Toggle a node's visibility",
    )
    def toggle_node(session_id: str, node_id: str, generation: Optional[int] = Query(None)) -> EventResponse:
        session = _lookup(app, session_id)
        return _event_response(session, session.toggle_visibility(node_id, generation=generation))

    @app.post("/api/graphs/{session_id}/select-all", tags=["interaction"], summary="Show every node")
    def select_all(session_id: str) -> EventResponse:
        session = _lookup(app, session_id)
        return _event_response(session, session.select_all())

    @app.post("/api/graphs/{session_id}/select-none", tags=["interaction"], summary="Hide every node")
    def select_none(session_id: str) -> EventResponse:
        session = _lookup(app, session_id)
        return _event_response(session, session.select_none())

    @app.post("/api/graphs/{session_id}/hover", tags=["interaction"], summary="Hover a node or link")
    def hover(session_id: str, payload: HoverRequest) -> EventResponse:
        session = _lookup(app, session_id)
        if payload.node_id is not None and payload.link_index is not None:
            raise HTTPException(status_code=422, detail="Hover either a node or a link, not both")
        if payload.node_id is not None:
            applied = session.hover_node(payload.node_id, generation=payload.generation)
        elif payload.link_index is not None:
            applied = session.hover_link(payload.link_index, generation=payload.generation)
        else:
            applied = session.clear_hover()
        return _event_response(session, applied)

    @app.post("/api/graphs/{session_id}/drag", tags=["interaction"], summary="Drag a node")
    def drag(session_id: str, payload: DragRequest) -> EventResponse:
        session = _lookup(app, session_id)
        if payload.phase == "start":
            applied = session.drag_start(payload.node_id, generation=payload.generation)
        elif payload.phase == "move":
            if payload.x is None or payload.y is None:
                raise HTTPException(status_code=422, detail="Drag move requires x and y")
            applied = session.drag_move(payload.node_id, payload.x, payload.y, generation=payload.generation)
        else:
            applied = session.drag_end(payload.node_id, generation=payload.generation)
        return _event_response(session, applied)

    @app.post("/api/graphs/{session_id}/zoom", tags=["viewport"], summary="Apply a zoom transform")
    def zoom(session_id: str, payload: ZoomRequest) -> EventResponse:
        session = _lookup(app, session_id)
        session.apply_zoom(ZoomTransform(x=payload.x, y=payload.y, k=payload.k))
        return _event_response(session, True)

    @app.post("/api/graphs/{session_id}/recenter", tags=["viewport"], summary="Re-center the viewport")
    def recenter(session_id: str, payload: Optional[RecenterRequest] = None) -> EventResponse:
        session = _lookup(app, session_id)
        duration = payload.duration_seconds if payload is not None else None
        session.recenter(duration)
        return _event_response(session, True)

    @app.delete("/api/graphs/{session_id}", tags=["graph"], summary="Close a graph session")
    def close_session(session_id: str) -> dict[str, str]:
        service = _require_service(app)
        try:
            service.close_session(session_id)
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Graph session not found") from exc
        return {"status": "closed"}

    return app


def _require_service(app: FastAPI) -> GraphViewService:
    service = getattr(app.state, "graph_view_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Graph view service unavailable")
    return service


def _lookup(app: FastAPI, session_id: str) -> GraphSession:
    try:
        return _require_service(app).get_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Graph session not found") from exc


def _event_response(session: GraphSession, applied: bool) -> EventResponse:
    return EventResponse(applied=applied, frame=session.frame().to_dict())


__all__ = ["create_app"]
