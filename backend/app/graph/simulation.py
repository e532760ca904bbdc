"""Force-directed layout engine advanced one tick at a time by an external scheduler."""
from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..config import GraphViewConfig, SimulationConfig
from .model import GraphModel, Node
from .scales import ScaleEngine

LOGGER = logging.getLogger(__name__)

TickListener = Callable[["ForceSimulation"], None]

JIGGLE_SCALE = 1e-6


class ForceSimulation:
    """Superposes link, charge, center and collision forces over cooling ticks.

    Node records stay the source of truth for positions: each tick reads
    ``x``/``y``/``vx``/``vy``/``fx``/``fy`` from the model's nodes into arrays,
    applies the forces, and writes the integrated state back.
    """

    def __init__(
        self,
        model: GraphModel,
        scales: ScaleEngine,
        graph_config: GraphViewConfig,
        simulation_config: SimulationConfig,
        *,
        center: Tuple[float, float] = (0.0, 0.0),
        seed: Optional[int] = None,
    ) -> None:
        self._model = model
        self._graph_config = graph_config
        self._config = simulation_config
        self._center = (float(center[0]), float(center[1]))
        resolved_seed = seed if seed is not None else simulation_config.seed
        self._rng = np.random.default_rng(resolved_seed)

        self.alpha = 1.0
        self.alpha_target = 0.0
        self.alpha_min = simulation_config.alpha_min
        self.alpha_decay = simulation_config.resolved_alpha_decay
        self.tick_count = 0
        self._active = True
        self._stopped = False
        self._listeners: List[TickListener] = []

        nodes = model.nodes
        self._link_sources = np.array([model.index_of(link.source_id) for link in model.links], dtype=np.intp)
        self._link_targets = np.array([model.index_of(link.target_id) for link in model.links], dtype=np.intp)
        degrees = np.array(model.degrees(), dtype=float)
        if len(model.links):
            source_degree = degrees[self._link_sources]
            target_degree = degrees[self._link_targets]
            self._link_bias = source_degree / (source_degree + target_degree)
        else:
            self._link_bias = np.zeros(0, dtype=float)
        self._collision_radii = np.array([scales.collision_radius(node) for node in nodes], dtype=float)
        self._initialize_positions(nodes)

    @property
    def model(self) -> GraphModel:
        return self._model

    @property
    def generation(self) -> int:
        return self._model.generation

    @property
    def center(self) -> Tuple[float, float]:
        return self._center

    @property
    def active(self) -> bool:
        """Whether the scheduler should keep calling :meth:`advance`."""

        return self._active and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _initialize_positions(self, nodes: Sequence[Node]) -> None:
        count = len(nodes)
        if not count:
            return
        spread = self._config.initial_radius * math.sqrt(count)
        radii = spread * np.sqrt(self._rng.random(count))
        angles = 2.0 * math.pi * self._rng.random(count)
        xs = self._center[0] + radii * np.cos(angles)
        ys = self._center[1] + radii * np.sin(angles)
        for node, x, y in zip(nodes, xs, ys):
            node.x = float(x)
            node.y = float(y)
            node.vx = 0.0
            node.vy = 0.0

    def on_tick(self, listener: TickListener) -> None:
        """Register a callback invoked after every tick."""

        self._listeners.append(listener)

    def remove_listener(self, listener: TickListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_center(self, x: float, y: float) -> None:
        self._center = (float(x), float(y))

    def restart(self) -> "ForceSimulation":
        """Resume ticking; a stopped simulation cannot be restarted."""

        if self._stopped:
            LOGGER.debug("Ignoring restart of stopped simulation generation=%d", self.generation)
            return self
        self._active = True
        return self

    def stop(self) -> None:
        """Halt ticking for good; no listener fires after this call."""

        if self._stopped:
            return
        self._stopped = True
        self._active = False
        self._listeners.clear()
        LOGGER.debug("Stopped simulation generation=%d after %d ticks", self.generation, self.tick_count)

    def reheat(self, target: float) -> "ForceSimulation":
        self.alpha_target = target
        return self.restart()

    def cool(self) -> "ForceSimulation":
        self.alpha_target = 0.0
        return self

    def advance(self) -> bool:
        """Scheduler entry point: run one tick if active and report whether to continue."""

        if not self.active:
            return False
        self.tick()
        if self.alpha < self.alpha_min:
            self._active = False
            LOGGER.debug("Simulation generation=%d settled after %d ticks", self.generation, self.tick_count)
        return self.active

    def settle(self, max_ticks: int = 1000) -> int:
        """Advance until the layout settles or ``max_ticks`` elapse; return ticks run."""

        ticks = 0
        while ticks < max_ticks and self.active:
            self.advance()
            ticks += 1
        return ticks

    def tick(self) -> None:
        """Advance the layout by one step and notify listeners."""

        if self._stopped:
            return
        nodes = self._model.nodes
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self.tick_count += 1
        if nodes:
            self._step(nodes)
        for listener in list(self._listeners):
            if self._stopped:
                break
            listener(self)

    def _step(self, nodes: Sequence[Node]) -> None:
        x = np.array([node.x for node in nodes], dtype=float)
        y = np.array([node.y for node in nodes], dtype=float)
        vx = np.array([node.vx for node in nodes], dtype=float)
        vy = np.array([node.vy for node in nodes], dtype=float)

        self._apply_link_force(x, y, vx, vy)
        self._apply_charge_force(x, y, vx, vy)
        self._apply_center_force(x, y)
        self._apply_collision_force(x, y, vx, vy)

        retain = 1.0 - self._config.velocity_decay
        vx *= retain
        vy *= retain
        x += vx
        y += vy

        for index, node in enumerate(nodes):
            if node.fx is not None and node.fy is not None:
                node.x = float(node.fx)
                node.y = float(node.fy)
                node.vx = 0.0
                node.vy = 0.0
                continue
            node.x = float(x[index])
            node.y = float(y[index])
            node.vx = float(vx[index])
            node.vy = float(vy[index])

    def _jiggle(self, size: int) -> np.ndarray:
        return (self._rng.random(size) - 0.5) * JIGGLE_SCALE

    def _apply_link_force(self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray) -> None:
        if not len(self._link_sources):
            return
        src = self._link_sources
        dst = self._link_targets
        dx = x[dst] + vx[dst] - x[src] - vx[src]
        dy = y[dst] + vy[dst] - y[src] - vy[src]
        zero_x = dx == 0
        if zero_x.any():
            dx[zero_x] = self._jiggle(int(zero_x.sum()))
        zero_y = dy == 0
        if zero_y.any():
            dy[zero_y] = self._jiggle(int(zero_y.sum()))
        length = np.sqrt(dx * dx + dy * dy)
        factor = (length - self._config.link_distance) / length * self.alpha * self._graph_config.link_strength
        dx *= factor
        dy *= factor
        bias = self._link_bias
        np.add.at(vx, dst, -dx * bias)
        np.add.at(vy, dst, -dy * bias)
        np.add.at(vx, src, dx * (1.0 - bias))
        np.add.at(vy, src, dy * (1.0 - bias))

    def _apply_charge_force(self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray) -> None:
        count = x.size
        if count < 2:
            return
        # dx[i, j] points from node i toward node j
        dx = x[np.newaxis, :] - x[:, np.newaxis]
        dy = y[np.newaxis, :] - y[:, np.newaxis]
        dist_sq = dx * dx + dy * dy
        off_diagonal = ~np.eye(count, dtype=bool)
        coincident = (dist_sq == 0) & off_diagonal
        if coincident.any():
            jitter = self._jiggle(int(coincident.sum()))
            dx[coincident] = jitter
            dist_sq[coincident] = jitter * jitter
        min_sq = self._config.charge_distance_min ** 2
        close = dist_sq < min_sq
        dist_sq = np.where(close, np.sqrt(min_sq * dist_sq), dist_sq)
        with np.errstate(divide="ignore", invalid="ignore"):
            weight = np.where(off_diagonal, self._graph_config.node_charge * self.alpha / dist_sq, 0.0)
        vx += np.sum(dx * weight, axis=1)
        vy += np.sum(dy * weight, axis=1)

    def _apply_center_force(self, x: np.ndarray, y: np.ndarray) -> None:
        strength = self._config.center_strength
        shift_x = (x.mean() - self._center[0]) * strength
        shift_y = (y.mean() - self._center[1]) * strength
        x -= shift_x
        y -= shift_y

    def _apply_collision_force(self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray) -> None:
        count = x.size
        if count < 2:
            return
        radii = self._collision_radii
        px = x + vx
        py = y + vy
        # dx[i, j] points from node j toward node i
        dx = px[:, np.newaxis] - px[np.newaxis, :]
        dy = py[:, np.newaxis] - py[np.newaxis, :]
        reach = radii[:, np.newaxis] + radii[np.newaxis, :]
        dist_sq = dx * dx + dy * dy
        overlapping = (dist_sq < reach * reach) & ~np.eye(count, dtype=bool)
        if not overlapping.any():
            return
        coincident = overlapping & (dx == 0)
        if coincident.any():
            dx[coincident] = self._jiggle(int(coincident.sum()))
            dist_sq = dx * dx + dy * dy
        coincident = overlapping & (dy == 0)
        if coincident.any():
            dy[coincident] = self._jiggle(int(coincident.sum()))
            dist_sq = dx * dx + dy * dy
        dist = np.sqrt(dist_sq)
        radii_sq = radii * radii
        # share of the push taken by node i is proportional to the other node's area
        share = radii_sq[np.newaxis, :] / (radii_sq[:, np.newaxis] + radii_sq[np.newaxis, :])
        with np.errstate(divide="ignore", invalid="ignore"):
            push = np.where(
                overlapping,
                (reach - dist) / dist * self._config.collision_strength * share,
                0.0,
            )
        vx += np.sum(dx * push, axis=1)
        vy += np.sum(dy * push, axis=1)

    def drag_start(self, node_id: str) -> bool:
        """Pin ``node_id`` at its current coordinates and reheat to the drag temperature."""

        node = self._model.node(node_id)
        if node is None or self._stopped:
            return False
        self.reheat(self._graph_config.simulation_alpha)
        node.fx = node.x
        node.fy = node.y
        return True

    def drag_to(self, node_id: str, x: float, y: float) -> bool:
        node = self._model.node(node_id)
        if node is None or self._stopped:
            return False
        node.fx = float(x)
        node.fy = float(y)
        return True

    def drag_end(self, node_id: str) -> bool:
        """Release the pin on ``node_id`` and let the layout cool back to rest."""

        node = self._model.node(node_id)
        if node is None or self._stopped:
            return False
        self.cool()
        node.fx = None
        node.fy = None
        return True


__all__ = ["ForceSimulation", "TickListener"]
