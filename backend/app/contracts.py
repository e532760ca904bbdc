"""Immutable input contracts for the NetView backend."""
from __future__ import annotations

from typing import Dict, List

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, Strict, StrictStr
from typing_extensions import Annotated

# ints are accepted, numeric strings and booleans are not
StrictFiniteFloat = Annotated[float, Strict(), AllowInfNan(False)]


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability after creation."""

    model_config = ConfigDict(frozen=True)


class EdgeDatum(_FrozenBaseModel):
    """Raw edge record supplied by the hosting application."""

    source: StrictStr = Field(..., description="Node id of the first endpoint.")
    target: StrictStr = Field(..., description="Node id of the second endpoint.")
    value: StrictFiniteFloat = Field(..., description="Signed weight; the sign picks the link class.")


class GraphInput(_FrozenBaseModel):
    """Flat value map plus ordered edge list describing one graph."""

    node_data: Dict[StrictStr, StrictFiniteFloat] = Field(default_factory=dict)
    edge_data: List[EdgeDatum] = Field(default_factory=list)

    @property
    def node_count(self) -> int:
        return len(self.node_data)

    @property
    def edge_count(self) -> int:
        return len(self.edge_data)


__all__ = [
    "EdgeDatum",
    "GraphInput",
    "StrictFiniteFloat",
]
