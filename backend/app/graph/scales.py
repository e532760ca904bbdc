"""Value-to-visual scales for node radius, link width and group color."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import GraphViewConfig
from .model import GraphModel, Link, Node

LOGGER = logging.getLogger(__name__)

LINK_WIDTH_EXPONENT = 3.0


@dataclass(frozen=True)
class LinearScale:
    """Unclamped linear map from ``domain`` to ``range``."""

    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return r0
        return r0 + (value - d0) / (d1 - d0) * (r1 - r0)


@dataclass(frozen=True)
class PowerScale:
    """Power map: inputs and domain are raised to ``exponent`` (sign preserved) before interpolation."""

    domain: Tuple[float, float]
    range: Tuple[float, float]
    exponent: float = LINK_WIDTH_EXPONENT

    def _raise(self, value: float) -> float:
        if value < 0:
            return -((-value) ** self.exponent)
        return value ** self.exponent

    def __call__(self, value: float) -> float:
        d0 = self._raise(self.domain[0])
        d1 = self._raise(self.domain[1])
        r0, r1 = self.range
        if d1 == d0:
            return r0
        return r0 + (self._raise(value) - d0) / (d1 - d0) * (r1 - r0)


class OrdinalScale:
    """Assigns palette entries to keys in first-seen order, wrapping on overflow."""

    def __init__(self, palette: Sequence[str], keys: Sequence[str] = ()) -> None:
        if not palette:
            raise ValueError("ordinal scale requires a non-empty palette")
        self._palette: Tuple[str, ...] = tuple(palette)
        self._assigned: Dict[str, int] = {}
        for key in keys:
            self._ordinal(key)

    @property
    def palette(self) -> Tuple[str, ...]:
        return self._palette

    @property
    def domain(self) -> List[str]:
        return list(self._assigned)

    def _ordinal(self, key: str) -> int:
        ordinal = self._assigned.get(key)
        if ordinal is None:
            ordinal = len(self._assigned)
            self._assigned[key] = ordinal
        return ordinal

    def __call__(self, key: str) -> str:
        return self._palette[self._ordinal(key) % len(self._palette)]


class ScaleEngine:
    """Size, width and color scales derived from one model generation."""

    def __init__(
        self,
        size: LinearScale,
        width: PowerScale,
        color: OrdinalScale,
        *,
        collision_padding: float = 0.0,
    ) -> None:
        self.size = size
        self.width = width
        self.color = color
        self._collision_padding = collision_padding

    @classmethod
    def for_model(cls, model: GraphModel, config: GraphViewConfig) -> "ScaleEngine":
        """Build the scales for ``model`` using the configured ranges.

        Empty or all-zero inputs fall back to a unit domain so the scales stay
        well defined.
        """

        size_max = _domain_max(model.max_node_value)
        width_max = _domain_max(model.max_abs_link_value)
        groups = model.groups()
        if len(groups) > len(config.colors):
            LOGGER.warning(
                "Graph has %d groups but palette holds %d colors; colors will repeat",
                len(groups),
                len(config.colors),
            )
        return cls(
            size=LinearScale(domain=(0.0, size_max), range=(config.min_node_size, config.max_node_size)),
            width=PowerScale(
                domain=(0.0, width_max),
                range=(config.min_link_width, config.max_link_width),
            ),
            color=OrdinalScale(config.colors, groups),
            collision_padding=config.collision_force,
        )

    def radius(self, node: Node) -> float:
        return self.size(node.value)

    def link_width(self, link: Link) -> float:
        return self.width(link.magnitude)

    def fill(self, node: Node) -> str:
        return self.color(node.group)

    def collision_radius(self, node: Node) -> float:
        return self.size(node.value) + self._collision_padding


def _domain_max(value: Optional[float]) -> float:
    if not value:
        return 1.0
    return float(value)


__all__ = ["LinearScale", "OrdinalScale", "PowerScale", "ScaleEngine", "LINK_WIDTH_EXPONENT"]
