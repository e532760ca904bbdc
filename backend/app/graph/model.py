"""Canonical node/link arena built from raw graph input."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..contracts import EdgeDatum, GraphInput

LOGGER = logging.getLogger(__name__)

POSITIVE = "positive"
NEGATIVE = "negative"

_VALUE_ERROR_TYPES = {"finite_number", "float_parsing", "float_type"}


class GraphValidationError(ValueError):
    """Raised when raw graph input is rejected at ingestion."""

    def __init__(self, message: str, *, kind: str) -> None:
        super().__init__(message)
        self.kind = kind

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "GraphValidationError":
        """Summarise a pydantic error, preferring the ``invalid-value`` kind."""

        errors = exc.errors()
        kind = "invalid-record"
        for error in errors:
            if error.get("type") in _VALUE_ERROR_TYPES:
                kind = "invalid-value"
                break
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{first.get('msg', 'invalid graph input')} at {location or 'input'}"
        return cls(message, kind=kind)


@dataclass(eq=False)
class Node:
    """Graph node; positions are owned by the simulation, ``fx``/``fy`` by dragging."""

    id: str
    original_name: str
    group: str
    value: float
    index: int
    visible: bool = True
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None

    @property
    def is_fixed(self) -> bool:
        return self.fx is not None and self.fy is not None


@dataclass(frozen=True)
class Link:
    """Undirected link between two node ids."""

    source_id: str
    target_id: str
    value: float
    index: int

    @property
    def sign(self) -> str:
        return POSITIVE if self.value >= 0 else NEGATIVE

    @property
    def magnitude(self) -> float:
        return abs(self.value)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source_id, self.target_id)

    def other_end(self, node_id: str) -> Optional[str]:
        """Return the opposite endpoint, or ``None`` when ``node_id`` is not an endpoint."""

        if node_id == self.source_id:
            return self.target_id
        if node_id == self.target_id:
            return self.source_id
        return None


class GraphModel:
    """Arena of nodes indexed by id together with links that reference ids only."""

    def __init__(self, nodes: Sequence[Node], links: Sequence[Link], *, generation: int = 0) -> None:
        self._nodes: Tuple[Node, ...] = tuple(nodes)
        self._links: Tuple[Link, ...] = tuple(links)
        self._index: Dict[str, int] = {node.id: node.index for node in self._nodes}
        self.generation = generation

    @classmethod
    def build(
        cls,
        node_data: Mapping[str, Any],
        edge_data: Iterable[Any],
        *,
        generation: int = 0,
    ) -> "GraphModel":
        """Build a model from a value map and an edge list.

        Args:
            node_data: Mapping of node id to a finite numeric value. Insertion
                order is preserved and drives legend and color ordering.
            edge_data: Sequence of ``{source, target, value}`` records or
                :class:`EdgeDatum` instances.
            generation: Generation number stamped on the model.

        Returns:
            GraphModel: Model whose links all reference existing nodes.

        Raises:
            GraphValidationError: If a value is non-finite or a record is malformed.
        """

        try:
            payload = GraphInput(node_data=node_data, edge_data=list(edge_data))
        except ValidationError as exc:
            error = GraphValidationError.from_validation_error(exc)
            LOGGER.warning("Rejected graph input (%s): %s", error.kind, error)
            raise error from exc
        return cls.from_input(payload, generation=generation)

    @classmethod
    def from_input(cls, payload: GraphInput, *, generation: int = 0) -> "GraphModel":
        """Build a model from an already validated :class:`GraphInput`."""

        nodes = [
            Node(id=node_id, original_name=node_id, group=node_id, value=float(value), index=index)
            for index, (node_id, value) in enumerate(payload.node_data.items())
        ]
        known = {node.id for node in nodes}
        links: List[Link] = []
        dropped = 0
        for edge in payload.edge_data:
            if edge.source not in known or edge.target not in known:
                dropped += 1
                LOGGER.debug("Dropping dangling edge %s -> %s", edge.source, edge.target)
                continue
            links.append(Link(source_id=edge.source, target_id=edge.target, value=float(edge.value), index=len(links)))
        LOGGER.info(
            "Built graph model generation=%d nodes=%d links=%d dropped_edges=%d",
            generation,
            len(nodes),
            len(links),
            dropped,
        )
        return cls(nodes, links, generation=generation)

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def links(self) -> Tuple[Link, ...]:
        return self._links

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def link_count(self) -> int:
        return len(self._links)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def index_of(self, node_id: str) -> Optional[int]:
        return self._index.get(node_id)

    def node(self, node_id: str) -> Optional[Node]:
        """Resolve a node through the arena; ``None`` for unknown ids."""

        index = self._index.get(node_id)
        if index is None:
            return None
        return self._nodes[index]

    def link(self, index: int) -> Optional[Link]:
        if 0 <= index < len(self._links):
            return self._links[index]
        return None

    def links_touching(self, node_id: str) -> List[Link]:
        return [link for link in self._links if link.touches(node_id)]

    def degrees(self) -> List[int]:
        """Return the number of links incident to each node, by node index."""

        counts = [0] * len(self._nodes)
        for link in self._links:
            counts[self._index[link.source_id]] += 1
            counts[self._index[link.target_id]] += 1
        return counts

    @property
    def has_negative_links(self) -> bool:
        return any(link.value < 0 for link in self._links)

    @property
    def max_node_value(self) -> Optional[float]:
        if not self._nodes:
            return None
        return max(node.value for node in self._nodes)

    @property
    def max_abs_link_value(self) -> Optional[float]:
        if not self._links:
            return None
        return max(link.magnitude for link in self._links)

    def groups(self) -> List[str]:
        """Return distinct groups in first-seen node order."""

        seen: Dict[str, None] = {}
        for node in self._nodes:
            seen.setdefault(node.group, None)
        return list(seen)


__all__ = [
    "EdgeDatum",
    "GraphModel",
    "GraphValidationError",
    "Link",
    "NEGATIVE",
    "Node",
    "POSITIVE",
]
