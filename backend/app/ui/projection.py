"""Pure derivation of per-element visual state from model, scales and interaction state."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple

from ..config import GraphViewConfig
from ..graph.model import GraphModel, Link, Node
from ..graph.scales import ScaleEngine
from .interaction import FilterMode, HoverKind, InteractionSnapshot

HOVERED_LINK_OPACITY = 1.0
HOVERED_LINK_WIDTH_FACTOR = 1.5
LEGEND_VISIBLE_OPACITY = 1.0
EXPONENT_THRESHOLD = 1e21


@dataclass(frozen=True)
class NodeVisual:
    """Rendering attributes for one node circle."""

    id: str
    x: float
    y: float
    radius: float
    fill: str
    opacity: float
    visible: bool
    title: str


@dataclass(frozen=True)
class LinkVisual:
    """Rendering attributes for one link line; ``stroke`` of ``None`` means the sign-class default."""

    index: int
    source_id: str
    target_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    width: float
    stroke: Optional[str]
    opacity: float
    sign: str
    rendered: bool
    highlighted: bool
    title: str


@dataclass(frozen=True)
class LabelVisual:
    """Label text anchored at the node centre and offset by ``dx``/``dy``."""

    id: str
    x: float
    y: float
    dx: float
    dy: float
    text: str
    opacity: float


@dataclass(frozen=True)
class LegendEntry:
    id: str
    name: str
    color: str
    opacity: float
    visible: bool


@dataclass(frozen=True)
class VisualProjection:
    """Everything a renderer needs to draw the current frame."""

    nodes: Tuple[NodeVisual, ...]
    links: Tuple[LinkVisual, ...]
    labels: Tuple[LabelVisual, ...]
    legend: Tuple[LegendEntry, ...]
    filter_mode: FilterMode
    hover_kind: HoverKind
    has_negative_links: bool

    def node(self, node_id: str) -> Optional[NodeVisual]:
        for visual in self.nodes:
            if visual.id == node_id:
                return visual
        return None

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serialisable payload for API responses."""

        return {
            "nodes": [asdict(visual) for visual in self.nodes],
            "links": [asdict(visual) for visual in self.links],
            "labels": [asdict(visual) for visual in self.labels],
            "legend": [asdict(entry) for entry in self.legend],
            "filter_mode": self.filter_mode.value,
            "hover_kind": self.hover_kind.value,
            "has_negative_links": self.has_negative_links,
        }


def _plain_number(value: float) -> str:
    # integral values print without a fraction; from 1e21 up they switch to exponent form
    if abs(value) >= EXPONENT_THRESHOLD:
        return repr(float(value))
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_link_value(value: float) -> str:
    """Show a link value as-is when it has at most three decimals, else rounded to three."""

    if abs(value) >= EXPONENT_THRESHOLD or float(value).is_integer():
        return _plain_number(value)
    text = repr(float(value))
    if "e" not in text and len(text.split(".", 1)[1]) <= 3:
        return text
    return f"{value:.3f}"


def format_node_title(node: Node) -> str:
    return f"{node.original_name}: {_plain_number(node.value)}"


def compute_projection(
    model: GraphModel,
    scales: ScaleEngine,
    snapshot: InteractionSnapshot,
    config: GraphViewConfig,
) -> VisualProjection:
    """Resolve the baseline, node-hover or link-hover overlay into visual records.

    Args:
        model: Current model generation; node positions are read as-is.
        scales: Scales derived from ``model``.
        snapshot: Interaction state to project.
        config: Opacity tiers, label offset and legend palette.

    Returns:
        VisualProjection: Immutable per-element visual records.
    """

    node_opacity = _node_opacity_resolver(snapshot, config)
    node_visuals: List[NodeVisual] = []
    label_visuals: List[LabelVisual] = []
    legend: List[LegendEntry] = []
    for node in model.nodes:
        radius = scales.radius(node)
        opacity = node_opacity(node)
        node_visuals.append(
            NodeVisual(
                id=node.id,
                x=node.x,
                y=node.y,
                radius=radius,
                fill=scales.fill(node),
                opacity=opacity,
                visible=node.visible,
                title=format_node_title(node),
            )
        )
        label_visuals.append(
            LabelVisual(
                id=node.id,
                x=node.x,
                y=node.y,
                dx=radius + config.label_offset,
                dy=radius / 2,
                text=node.original_name,
                opacity=opacity,
            )
        )
        legend.append(
            LegendEntry(
                id=node.id,
                name=node.original_name,
                color=config.colors[node.index % len(config.colors)],
                opacity=LEGEND_VISIBLE_OPACITY if node.visible else config.legend_opacity,
                visible=node.visible,
            )
        )

    hover_color: Optional[str] = None
    if snapshot.hover_kind is HoverKind.NODE and snapshot.hover_node_id is not None:
        hovered = model.node(snapshot.hover_node_id)
        if hovered is not None:
            hover_color = scales.fill(hovered)

    link_visuals = [
        _link_visual(model, scales, snapshot, config, link, hover_color) for link in model.links
    ]
    return VisualProjection(
        nodes=tuple(node_visuals),
        links=tuple(link_visuals),
        labels=tuple(label_visuals),
        legend=tuple(legend),
        filter_mode=snapshot.filter_mode,
        hover_kind=snapshot.hover_kind,
        has_negative_links=model.has_negative_links,
    )


def _node_opacity_resolver(snapshot: InteractionSnapshot, config: GraphViewConfig):
    highlighted = snapshot.connected_node_ids
    hovering = snapshot.hover_kind is not HoverKind.NONE

    def resolve(node: Node) -> float:
        if not node.visible:
            return config.faded_opacity
        if not hovering or node.id in highlighted:
            return config.highlight_opacity
        return config.faded_opacity

    return resolve


def _link_visual(
    model: GraphModel,
    scales: ScaleEngine,
    snapshot: InteractionSnapshot,
    config: GraphViewConfig,
    link: Link,
    hover_color: Optional[str],
) -> LinkVisual:
    source = model.node(link.source_id)
    target = model.node(link.target_id)
    rendered = (
        source is not None
        and target is not None
        and source.visible
        and target.visible
        and snapshot.filter_mode.admits(link)
    )
    width = scales.link_width(link)
    stroke: Optional[str] = None
    highlighted = link.index in snapshot.connected_link_indices
    if snapshot.hover_kind is HoverKind.NODE:
        opacity = config.highlight_opacity if highlighted else config.faded_opacity
        if highlighted:
            stroke = hover_color
    elif snapshot.hover_kind is HoverKind.LINK:
        opacity = HOVERED_LINK_OPACITY if highlighted else config.faded_opacity
        if highlighted:
            width *= HOVERED_LINK_WIDTH_FACTOR
    else:
        opacity = config.default_link_opacity
    return LinkVisual(
        index=link.index,
        source_id=link.source_id,
        target_id=link.target_id,
        x1=source.x if source is not None else 0.0,
        y1=source.y if source is not None else 0.0,
        x2=target.x if target is not None else 0.0,
        y2=target.y if target is not None else 0.0,
        width=width,
        stroke=stroke,
        opacity=opacity,
        sign=link.sign,
        rendered=rendered,
        highlighted=highlighted,
        title=format_link_value(link.value),
    )


__all__ = [
    "LabelVisual",
    "LegendEntry",
    "LinkVisual",
    "NodeVisual",
    "VisualProjection",
    "compute_projection",
    "format_link_value",
    "format_node_title",
]
