"""Lifecycle glue binding one model generation to its simulation and interaction state."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from threading import RLock
from typing import Any, Callable, Iterable, List, Mapping, Optional

from ..config import AppConfig
from ..graph.model import GraphModel
from ..graph.scales import ScaleEngine
from ..graph.simulation import ForceSimulation
from .interaction import FilterMode, InteractionController
from .projection import VisualProjection, compute_projection
from .viewport import ViewportController, ZoomTransform

LOGGER = logging.getLogger(__name__)

FrameListener = Callable[["RenderFrame"], None]


class SessionClosedError(RuntimeError):
    """Raised when a closed session is used."""


@dataclass(frozen=True)
class RenderFrame:
    """Positions and visual state pulled by the renderer."""

    generation: int
    alpha: float
    running: bool
    tick_count: int
    transform: ZoomTransform
    projection: VisualProjection

    def to_dict(self) -> dict[str, object]:
        return {
            "generation": self.generation,
            "alpha": self.alpha,
            "running": self.running,
            "tick_count": self.tick_count,
            "transform": asdict(self.transform),
            **self.projection.to_dict(),
        }


class _Generation:
    """Model, scales, simulation and controller that must be rebuilt together."""

    def __init__(self, model: GraphModel, scales: ScaleEngine, simulation: ForceSimulation) -> None:
        self.model = model
        self.scales = scales
        self.simulation = simulation
        self.controller = InteractionController(model, simulation)


class GraphSession:
    """One interactive graph view.

    A session owns the current generation and the view-lifetime viewport.
    Loading new input stops the previous simulation before the next one is
    created, so a stale tick can never touch the new nodes. Events may name
    the generation they were produced for; events for any other generation
    are ignored.
    """

    def __init__(
        self,
        config: AppConfig,
        node_data: Optional[Mapping[str, Any]] = None,
        edge_data: Optional[Iterable[Any]] = None,
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> None:
        self._config = config
        self._width = float(width if width is not None else config.viewport.width)
        self._height = float(height if height is not None else config.viewport.height)
        self._seed = seed
        self._lock = RLock()
        self._generation_counter = 0
        self._current: Optional[_Generation] = None
        self._frame_listeners: List[FrameListener] = []
        self._closed = False
        self.viewport = ViewportController(
            config.graph_view.zoom_extent,
            recenter_duration=config.viewport.recenter_duration_seconds,
        )
        self.load(node_data or {}, edge_data or [])

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation_counter

    @property
    def model(self) -> GraphModel:
        return self._require_current().model

    @property
    def scales(self) -> ScaleEngine:
        return self._require_current().scales

    @property
    def simulation(self) -> ForceSimulation:
        return self._require_current().simulation

    @property
    def controller(self) -> InteractionController:
        return self._require_current().controller

    @property
    def closed(self) -> bool:
        return self._closed

    def _require_current(self) -> _Generation:
        if self._current is None:
            raise SessionClosedError("graph session has been closed")
        return self._current

    def load(
        self,
        node_data: Mapping[str, Any],
        edge_data: Iterable[Any],
        *,
        reset_interaction: bool = False,
    ) -> int:
        """Replace the graph with new input and return the new generation number.

        Raises:
            GraphValidationError: If the input is rejected; the previous
                generation stays active in that case.
        """

        with self._lock:
            if self._closed:
                raise SessionClosedError("graph session has been closed")
            next_generation = self._generation_counter + 1
            model = GraphModel.build(node_data, edge_data, generation=next_generation)
            scales = ScaleEngine.for_model(model, self._config.graph_view)
            previous = self._current
            if previous is not None:
                previous.simulation.stop()
            simulation = ForceSimulation(
                model,
                scales,
                self._config.graph_view,
                self._config.simulation,
                center=(self._width / 2, self._height / 2),
                seed=self._seed,
            )
            generation = _Generation(model, scales, simulation)
            if previous is not None and not reset_interaction:
                generation.controller.adopt(previous.controller)
            simulation.on_tick(self._notify_tick)
            self._current = generation
            self._generation_counter = next_generation
            return next_generation

    def resize(self, width: float, height: float) -> None:
        with self._lock:
            self._width = float(width)
            self._height = float(height)
            current = self._require_current()
            current.simulation.set_center(self._width / 2, self._height / 2)

    def on_frame(self, listener: FrameListener) -> None:
        """Register a callback receiving a frame after every simulation tick."""

        with self._lock:
            self._frame_listeners.append(listener)

    def _notify_tick(self, simulation: ForceSimulation) -> None:
        current = self._current
        if current is None or simulation is not current.simulation:
            return
        if not self._frame_listeners:
            return
        frame = self.frame()
        for listener in list(self._frame_listeners):
            listener(frame)

    def _is_stale(self, generation: Optional[int]) -> bool:
        if generation is not None and generation != self._generation_counter:
            LOGGER.debug(
                "Ignoring event for generation %s (current %d)", generation, self._generation_counter
            )
            return True
        return False

    # Scheduler

    def advance(self, steps: int = 1) -> bool:
        """Run up to ``steps`` simulation ticks; return whether ticking should continue."""

        with self._lock:
            simulation = self._require_current().simulation
            for _ in range(steps):
                if not simulation.advance():
                    break
            return simulation.active

    def step_viewport(self, elapsed: float) -> ZoomTransform:
        with self._lock:
            return self.viewport.advance(elapsed)

    # Control surface

    def set_filter(self, mode: FilterMode | str) -> bool:
        with self._lock:
            return self._require_current().controller.set_filter(mode)

    def toggle_visibility(self, node_id: str, *, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._is_stale(generation):
                return False
            return self._require_current().controller.toggle_visibility(node_id)

    def select_all(self) -> bool:
        with self._lock:
            return self._require_current().controller.select_all()

    def select_none(self) -> bool:
        with self._lock:
            return self._require_current().controller.select_none()

    def hover_node(self, node_id: str, *, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._is_stale(generation):
                return False
            return self._require_current().controller.hover_node(node_id)

    def hover_link(self, index: int, *, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._is_stale(generation):
                return False
            return self._require_current().controller.hover_link(index)

    def clear_hover(self) -> bool:
        with self._lock:
            return self._require_current().controller.clear_hover()

    def drag_start(self, node_id: str, *, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._is_stale(generation):
                return False
            return self._require_current().controller.drag_start(node_id)

    def drag_move(self, node_id: str, x: float, y: float, *, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._is_stale(generation):
                return False
            return self._require_current().controller.drag_move(node_id, x, y)

    def drag_end(self, node_id: str, *, generation: Optional[int] = None) -> bool:
        with self._lock:
            if self._is_stale(generation):
                return False
            return self._require_current().controller.drag_end(node_id)

    def apply_zoom(self, transform: ZoomTransform) -> ZoomTransform:
        with self._lock:
            return self.viewport.apply_zoom_delta(transform)

    def recenter(self, duration: Optional[float] = None) -> None:
        with self._lock:
            self.viewport.reset_to_identity(duration)

    # Output

    def projection(self) -> VisualProjection:
        with self._lock:
            current = self._require_current()
            return compute_projection(
                current.model,
                current.scales,
                current.controller.snapshot(),
                self._config.graph_view,
            )

    def frame(self) -> RenderFrame:
        with self._lock:
            current = self._require_current()
            return RenderFrame(
                generation=current.model.generation,
                alpha=current.simulation.alpha,
                running=current.simulation.active,
                tick_count=current.simulation.tick_count,
                transform=self.viewport.transform,
                projection=self.projection(),
            )

    def close(self) -> None:
        """Tear the view down; the simulation stops and no further frames fire."""

        with self._lock:
            if self._closed:
                return
            if self._current is not None:
                self._current.simulation.stop()
            self._frame_listeners.clear()
            self._current = None
            self._closed = True


__all__ = ["GraphSession", "RenderFrame", "SessionClosedError"]
