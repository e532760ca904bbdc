"""Tests for the size, width and color scales."""

from __future__ import annotations

import pytest

from backend.app.config import load_config
from backend.app.graph import GraphModel, LinearScale, OrdinalScale, PowerScale, ScaleEngine


@pytest.fixture()
def graph_config():
    return load_config().graph_view


def test_node_radius_spans_configured_range(graph_config) -> None:
    model = GraphModel.build({"A": 10, "B": 5, "C": 0}, [])
    scales = ScaleEngine.for_model(model, graph_config)

    assert scales.radius(model.node("A")) == pytest.approx(20)
    assert scales.radius(model.node("B")) == pytest.approx(12.5)
    assert scales.radius(model.node("C")) == pytest.approx(5)


def test_link_width_uses_cubic_power_of_magnitude(graph_config) -> None:
    model = GraphModel.build(
        {"A": 1, "B": 1, "C": 1},
        [
            {"source": "A", "target": "B", "value": 0.8},
            {"source": "B", "target": "C", "value": -0.4},
        ],
    )
    scales = ScaleEngine.for_model(model, graph_config)

    strongest, weaker = model.links
    assert scales.link_width(strongest) == pytest.approx(3.0)
    # (0.4 / 0.8) ** 3 of the way from 1.25 to 3
    assert scales.link_width(weaker) == pytest.approx(1.25 + 0.125 * 1.75)


def test_linear_scale_is_unclamped() -> None:
    scale = LinearScale(domain=(0.0, 10.0), range=(5.0, 20.0))

    assert scale(-10.0) == pytest.approx(-10.0)
    assert scale(20.0) == pytest.approx(35.0)


def test_power_scale_preserves_sign() -> None:
    scale = PowerScale(domain=(0.0, 2.0), range=(0.0, 8.0))

    assert scale(1.0) == pytest.approx(1.0)
    assert scale(-1.0) == pytest.approx(-1.0)


def test_degenerate_domains_fall_back_to_unit(graph_config) -> None:
    model = GraphModel.build({"A": 0, "B": 0}, [{"source": "A", "target": "B", "value": 0}])
    scales = ScaleEngine.for_model(model, graph_config)

    assert scales.size.domain == (0.0, 1.0)
    assert scales.width.domain == (0.0, 1.0)
    assert scales.radius(model.node("A")) == pytest.approx(5)
    assert scales.link_width(model.links[0]) == pytest.approx(1.25)


def test_ordinal_scale_assigns_first_seen_and_wraps() -> None:
    scale = OrdinalScale(["#111111", "#222222"], keys=["x", "y"])

    assert scale("x") == "#111111"
    assert scale("y") == "#222222"
    assert scale("z") == "#111111"
    assert scale.domain == ["x", "y", "z"]


def test_palette_overflow_repeats_colors(graph_config) -> None:
    node_data = {f"n{index}": 1 for index in range(len(graph_config.colors) + 2)}
    model = GraphModel.build(node_data, [])
    scales = ScaleEngine.for_model(model, graph_config)

    assert scales.fill(model.node("n0")) == graph_config.colors[0]
    assert scales.fill(model.node("n20")) == graph_config.colors[0]
    assert scales.fill(model.node("n21")) == graph_config.colors[1]


def test_collision_radius_adds_padding(graph_config) -> None:
    model = GraphModel.build({"A": 10}, [])
    scales = ScaleEngine.for_model(model, graph_config)

    assert scales.collision_radius(model.node("A")) == pytest.approx(20 + graph_config.collision_force)
