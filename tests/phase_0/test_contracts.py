from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from backend.app.contracts import EdgeDatum, GraphInput


def test_edge_datum_accepts_signed_values() -> None:
    edge = EdgeDatum(source="A", target="B", value=-0.4)
    assert edge.value == -0.4


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_edge_datum_rejects_non_finite_values(value: float) -> None:
    with pytest.raises(ValidationError):
        EdgeDatum(source="A", target="B", value=value)


def test_graph_input_preserves_node_order() -> None:
    payload = GraphInput(node_data={"C": 1, "A": 2, "B": 3}, edge_data=[])
    assert list(payload.node_data) == ["C", "A", "B"]
    assert payload.node_count == 3
    assert payload.edge_count == 0


def test_graph_input_rejects_non_finite_node_value() -> None:
    with pytest.raises(ValidationError):
        GraphInput(node_data={"A": math.inf})


def test_graph_input_rejects_edge_without_target() -> None:
    with pytest.raises(ValidationError):
        GraphInput(node_data={"A": 1}, edge_data=[{"source": "A", "value": 1}])


def test_graph_input_is_frozen() -> None:
    payload = GraphInput(node_data={"A": 1})
    with pytest.raises(ValidationError):
        payload.node_data = {}


@pytest.mark.parametrize("value", ["10", True, b"3"])
def test_node_values_must_be_real_numbers(value) -> None:
    with pytest.raises(ValidationError):
        GraphInput(node_data={"A": value})


def test_integer_values_are_accepted_as_floats() -> None:
    payload = GraphInput(node_data={"A": 3}, edge_data=[{"source": "A", "target": "A", "value": -2}])
    assert payload.node_data["A"] == 3.0
    assert isinstance(payload.edge_data[0].value, float)
