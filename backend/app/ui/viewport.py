"""Zoom/pan transform owned by the view, independent of the layout."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoomTransform:
    """Translate-then-scale affine transform: ``point * k + (x, y)``."""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, point: Tuple[float, float]) -> Tuple[float, float]:
        return (point[0] * self.k + self.x, point[1] * self.k + self.y)

    def invert(self, point: Tuple[float, float]) -> Tuple[float, float]:
        return ((point[0] - self.x) / self.k, (point[1] - self.y) / self.k)

    def to_svg(self) -> str:
        return f"translate({self.x:g},{self.y:g}) scale({self.k:g})"

    @property
    def is_identity(self) -> bool:
        return self.x == 0.0 and self.y == 0.0 and self.k == 1.0


IDENTITY = ZoomTransform()


@dataclass(frozen=True)
class ViewportTransition:
    """Eased interpolation between two transforms over ``duration`` seconds."""

    start: ZoomTransform
    end: ZoomTransform
    duration: float

    def at(self, elapsed: float) -> ZoomTransform:
        if self.duration <= 0 or elapsed >= self.duration:
            return self.end
        t = _ease_cubic_in_out(max(elapsed, 0.0) / self.duration)
        # scale interpolates geometrically so zooming feels uniform
        k = math.exp(math.log(self.start.k) * (1 - t) + math.log(self.end.k) * t)
        return ZoomTransform(
            x=self.start.x + (self.end.x - self.start.x) * t,
            y=self.start.y + (self.end.y - self.start.y) * t,
            k=k,
        )


def _ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


class ViewportController:
    """Holds the current zoom transform bounded to ``[min_zoom, max_zoom]``."""

    def __init__(self, zoom_extent: Tuple[float, float], *, recenter_duration: float = 0.75) -> None:
        self._min_zoom, self._max_zoom = float(zoom_extent[0]), float(zoom_extent[1])
        self._recenter_duration = recenter_duration
        self._transform = IDENTITY
        self._transition: Optional[ViewportTransition] = None
        self._elapsed = 0.0

    @property
    def transform(self) -> ZoomTransform:
        return self._transform

    @property
    def zoom_extent(self) -> Tuple[float, float]:
        return (self._min_zoom, self._max_zoom)

    @property
    def is_animating(self) -> bool:
        return self._transition is not None

    def _clamp(self, k: float) -> float:
        return min(max(k, self._min_zoom), self._max_zoom)

    def apply_zoom_delta(self, transform: ZoomTransform) -> ZoomTransform:
        """Adopt a transform proposed by the gesture recognizer, clamping its scale.

        A user gesture interrupts any running re-center animation. Transforms with
        non-finite components are ignored and the current transform is kept.
        """

        if not all(math.isfinite(part) for part in (transform.x, transform.y, transform.k)):
            LOGGER.debug("Ignoring non-finite zoom transform %s", transform)
            return self._transform
        self._transition = None
        self._transform = ZoomTransform(x=transform.x, y=transform.y, k=self._clamp(transform.k))
        return self._transform

    def scale_by(self, factor: float, anchor: Tuple[float, float] = (0.0, 0.0)) -> ZoomTransform:
        """Zoom by ``factor`` keeping the screen point ``anchor`` fixed."""

        current = self._transform
        k = self._clamp(current.k * factor)
        local = current.invert(anchor)
        return self.apply_zoom_delta(
            ZoomTransform(x=anchor[0] - local[0] * k, y=anchor[1] - local[1] * k, k=k)
        )

    def reset_to_identity(self, duration: Optional[float] = None) -> ViewportTransition:
        """Start the animated return to the identity transform."""

        resolved = self._recenter_duration if duration is None else duration
        transition = ViewportTransition(start=self._transform, end=IDENTITY, duration=resolved)
        self._elapsed = 0.0
        if resolved <= 0:
            self._transform = IDENTITY
            self._transition = None
        else:
            self._transition = transition
        LOGGER.debug("Re-centering viewport over %.2fs", resolved)
        return transition

    def advance(self, elapsed: float) -> ZoomTransform:
        """Step a running transition by ``elapsed`` seconds and return the new transform."""

        if self._transition is None:
            return self._transform
        self._elapsed += elapsed
        self._transform = self._transition.at(self._elapsed)
        if self._elapsed >= self._transition.duration:
            self._transition = None
        return self._transform

    def finish(self) -> ZoomTransform:
        """Jump to the end of a running transition."""

        if self._transition is not None:
            self._transform = self._transition.end
            self._transition = None
        return self._transform


__all__ = ["IDENTITY", "ViewportController", "ViewportTransition", "ZoomTransform"]
