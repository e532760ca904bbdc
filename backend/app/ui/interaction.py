"""Interaction state machine resolving filter, visibility, hover and drag events."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Set, Tuple

from ..graph.model import NEGATIVE, POSITIVE, GraphModel, Link
from ..graph.simulation import ForceSimulation

LOGGER = logging.getLogger(__name__)


class FilterMode(str, Enum):
    """Which link sign classes are rendered."""

    ALL = "all"
    POSITIVE = "positive"
    NEGATIVE = "negative"

    def admits(self, link: Link) -> bool:
        if self is FilterMode.ALL:
            return True
        if self is FilterMode.POSITIVE:
            return link.sign == POSITIVE
        return link.sign == NEGATIVE


class HoverKind(str, Enum):
    """Overlay currently applied on top of the baseline projection."""

    NONE = "none"
    NODE = "node"
    LINK = "link"


@dataclass(frozen=True)
class InteractionSnapshot:
    """Immutable view of the interaction state consumed by the projection."""

    filter_mode: FilterMode = FilterMode.ALL
    hover_kind: HoverKind = HoverKind.NONE
    hover_node_id: Optional[str] = None
    hover_link_index: Optional[int] = None
    connected_node_ids: FrozenSet[str] = frozenset()
    connected_link_indices: FrozenSet[int] = frozenset()
    drag_node_id: Optional[str] = None


class InteractionController:
    """Owns filter mode, visibility, hover target and drag target for one model generation.

    Every operation runs to completion and returns whether it changed state;
    events naming nodes or links absent from the model are ignored.
    """

    def __init__(self, model: GraphModel, simulation: Optional[ForceSimulation] = None) -> None:
        if simulation is not None and simulation.model is not model:
            raise ValueError("simulation must belong to the same model generation")
        self._model = model
        self._simulation = simulation
        self._filter_mode = FilterMode.ALL
        self._hover_kind = HoverKind.NONE
        self._hover_node_id: Optional[str] = None
        self._hover_link_index: Optional[int] = None
        self._connected_nodes: FrozenSet[str] = frozenset()
        self._connected_links: FrozenSet[int] = frozenset()
        self._drag_node_id: Optional[str] = None

    @property
    def model(self) -> GraphModel:
        return self._model

    @property
    def filter_mode(self) -> FilterMode:
        return self._filter_mode

    @property
    def hover_kind(self) -> HoverKind:
        return self._hover_kind

    @property
    def drag_target(self) -> Optional[str]:
        return self._drag_node_id

    def adopt(self, previous: "InteractionController") -> None:
        """Carry filter mode and per-id visibility over from a superseded generation."""

        self._filter_mode = previous.filter_mode
        carried = 0
        for node in previous.model.nodes:
            current = self._model.node(node.id)
            if current is not None:
                current.visible = node.visible
                carried += 1
        LOGGER.debug("Adopted interaction state for %d nodes (filter=%s)", carried, self._filter_mode.value)

    # Filter and visibility

    def set_filter(self, mode: FilterMode | str) -> bool:
        """Switch the link filter; the layout is left untouched."""

        resolved = FilterMode(mode)
        if resolved is self._filter_mode:
            return False
        self._filter_mode = resolved
        self._refresh_hover()
        return True

    def reset_filter(self) -> bool:
        return self.set_filter(FilterMode.ALL)

    def toggle_visibility(self, node_id: str) -> bool:
        node = self._model.node(node_id)
        if node is None:
            LOGGER.debug("Ignoring visibility toggle for unknown node %s", node_id)
            return False
        node.visible = not node.visible
        self._refresh_hover()
        return True

    def select_all(self) -> bool:
        return self._set_all_visible(True)

    def select_none(self) -> bool:
        return self._set_all_visible(False)

    def _set_all_visible(self, visible: bool) -> bool:
        changed = False
        for node in self._model.nodes:
            if node.visible is not visible:
                node.visible = visible
                changed = True
        if changed:
            self._refresh_hover()
        return changed

    def is_link_rendered(self, link: Link) -> bool:
        """A link renders iff both endpoints are visible and its sign passes the filter."""

        source = self._model.node(link.source_id)
        target = self._model.node(link.target_id)
        if source is None or target is None:
            return False
        return source.visible and target.visible and self._filter_mode.admits(link)

    def rendered_link_indices(self) -> Tuple[int, ...]:
        return tuple(link.index for link in self._model.links if self.is_link_rendered(link))

    # Hover

    def connected_to(self, node_id: str) -> Tuple[FrozenSet[str], FrozenSet[int]]:
        """Return the connected node ids (including ``node_id``) and qualifying link indices."""

        node_ids: Set[str] = {node_id}
        link_indices: Set[int] = set()
        for link in self._model.links:
            other_id = link.other_end(node_id)
            if other_id is None:
                continue
            other = self._model.node(other_id)
            if other is None or not other.visible:
                continue
            if not self._filter_mode.admits(link):
                continue
            node_ids.add(other_id)
            link_indices.add(link.index)
        return frozenset(node_ids), frozenset(link_indices)

    def hover_node(self, node_id: str) -> bool:
        """Highlight ``node_id`` and its one-hop neighbourhood; hidden nodes are ignored."""

        node = self._model.node(node_id)
        if node is None:
            LOGGER.debug("Ignoring hover on unknown node %s", node_id)
            return False
        if not node.visible:
            return False
        self._connected_nodes, self._connected_links = self.connected_to(node_id)
        self._hover_kind = HoverKind.NODE
        self._hover_node_id = node_id
        self._hover_link_index = None
        return True

    def hover_link(self, index: int) -> bool:
        """Highlight one rendered link and its endpoints."""

        link = self._model.link(index)
        if link is None:
            LOGGER.debug("Ignoring hover on unknown link index %s", index)
            return False
        if not self.is_link_rendered(link):
            return False
        self._hover_kind = HoverKind.LINK
        self._hover_node_id = None
        self._hover_link_index = index
        self._connected_nodes = frozenset((link.source_id, link.target_id))
        self._connected_links = frozenset((index,))
        return True

    def clear_hover(self) -> bool:
        if self._hover_kind is HoverKind.NONE:
            return False
        self._hover_kind = HoverKind.NONE
        self._hover_node_id = None
        self._hover_link_index = None
        self._connected_nodes = frozenset()
        self._connected_links = frozenset()
        return True

    def _refresh_hover(self) -> None:
        # A filter or visibility change while hovering re-resolves the overlay.
        if self._hover_kind is HoverKind.NODE and self._hover_node_id is not None:
            node_id = self._hover_node_id
            self.clear_hover()
            self.hover_node(node_id)
        elif self._hover_kind is HoverKind.LINK and self._hover_link_index is not None:
            index = self._hover_link_index
            self.clear_hover()
            self.hover_link(index)

    # Drag

    def drag_start(self, node_id: str) -> bool:
        if self._simulation is None or self._drag_node_id is not None:
            return False
        if not self._simulation.drag_start(node_id):
            LOGGER.debug("Ignoring drag start on unknown node %s", node_id)
            return False
        self._drag_node_id = node_id
        return True

    def drag_move(self, node_id: str, x: float, y: float) -> bool:
        if self._simulation is None or node_id != self._drag_node_id:
            return False
        return self._simulation.drag_to(node_id, x, y)

    def drag_end(self, node_id: str) -> bool:
        if self._simulation is None or node_id != self._drag_node_id:
            return False
        self._drag_node_id = None
        return self._simulation.drag_end(node_id)

    def snapshot(self) -> InteractionSnapshot:
        return InteractionSnapshot(
            filter_mode=self._filter_mode,
            hover_kind=self._hover_kind,
            hover_node_id=self._hover_node_id,
            hover_link_index=self._hover_link_index,
            connected_node_ids=self._connected_nodes,
            connected_link_indices=self._connected_links,
            drag_node_id=self._drag_node_id,
        )


__all__ = ["FilterMode", "HoverKind", "InteractionController", "InteractionSnapshot"]
