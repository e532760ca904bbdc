"""Tests for the generation lifecycle of a graph session."""

from __future__ import annotations

import math
from typing import List

import pytest

from backend.app.config import load_config
from backend.app.graph import GraphValidationError
from backend.app.ui import FilterMode, GraphSession, RenderFrame, SessionClosedError, ZoomTransform

NODE_DATA = {"A": 10, "B": 20, "C": 15}
EDGE_DATA = [
    {"source": "A", "target": "B", "value": 5},
    {"source": "B", "target": "C", "value": -3},
]


@pytest.fixture()
def session() -> GraphSession:
    return GraphSession(load_config(), NODE_DATA, EDGE_DATA, width=400, height=200, seed=5)


def test_first_load_is_generation_one(session: GraphSession) -> None:
    assert session.generation == 1
    assert session.model.generation == 1
    assert session.simulation.center == (200.0, 100.0)
    assert session.simulation.active is True


def test_reload_stops_previous_simulation(session: GraphSession) -> None:
    previous = session.simulation

    generation = session.load({"A": 1, "D": 2}, [{"source": "A", "target": "D", "value": 1}])

    assert generation == 2
    assert previous.stopped is True
    assert session.simulation is not previous
    assert session.simulation.active is True
    assert [node.id for node in session.model.nodes] == ["A", "D"]


def test_reload_carries_filter_and_visibility(session: GraphSession) -> None:
    session.set_filter(FilterMode.POSITIVE)
    session.toggle_visibility("A")

    session.load(NODE_DATA, EDGE_DATA)

    assert session.controller.filter_mode is FilterMode.POSITIVE
    assert session.model.node("A").visible is False


def test_reload_with_reset_interaction(session: GraphSession) -> None:
    session.set_filter("negative")
    session.toggle_visibility("A")

    session.load(NODE_DATA, EDGE_DATA, reset_interaction=True)

    assert session.controller.filter_mode is FilterMode.ALL
    assert session.model.node("A").visible is True


def test_invalid_reload_keeps_current_generation(session: GraphSession) -> None:
    simulation = session.simulation

    with pytest.raises(GraphValidationError):
        session.load({"A": math.nan}, [])

    assert session.generation == 1
    assert session.simulation is simulation
    assert simulation.stopped is False


def test_events_for_previous_generation_are_ignored(session: GraphSession) -> None:
    session.load(NODE_DATA, EDGE_DATA)

    assert session.toggle_visibility("A", generation=1) is False
    assert session.hover_node("B", generation=1) is False
    assert session.drag_start("A", generation=1) is False
    assert session.model.node("A").visible is True
    assert session.toggle_visibility("A", generation=2) is True


def test_frames_follow_ticks_of_current_generation(session: GraphSession) -> None:
    frames: List[RenderFrame] = []
    session.on_frame(frames.append)
    stale = session.simulation

    assert session.advance(3) is True
    session.load(NODE_DATA, EDGE_DATA)
    stale.tick()
    session.advance(2)

    assert [frame.generation for frame in frames] == [1, 1, 1, 2, 2]
    assert [frame.tick_count for frame in frames] == [1, 2, 3, 1, 2]


def test_advance_stops_once_settled(session: GraphSession) -> None:
    assert session.advance(1000) is False
    assert session.frame().running is False


def test_drag_reheats_settled_layout(session: GraphSession) -> None:
    session.advance(1000)

    assert session.drag_start("B") is True
    assert session.drag_move("B", 10.0, 20.0) is True
    assert session.advance(1) is True
    node = session.model.node("B")
    assert (node.x, node.y) == (10.0, 20.0)
    assert session.drag_end("B") is True


def test_viewport_is_kept_across_reloads(session: GraphSession) -> None:
    session.apply_zoom(ZoomTransform(x=5, y=5, k=2))
    session.load(NODE_DATA, EDGE_DATA)

    assert session.frame().transform == ZoomTransform(x=5, y=5, k=2)
    session.recenter(0)
    assert session.frame().transform.is_identity


def test_resize_moves_simulation_center(session: GraphSession) -> None:
    session.resize(1000, 500)

    assert session.simulation.center == (500.0, 250.0)


def test_frame_to_dict(session: GraphSession) -> None:
    payload = session.frame().to_dict()

    assert payload["generation"] == 1
    assert payload["running"] is True
    assert payload["transform"] == {"x": 0.0, "y": 0.0, "k": 1.0}
    assert [node["id"] for node in payload["nodes"]] == ["A", "B", "C"]
    assert payload["has_negative_links"] is True


def test_close_stops_simulation(session: GraphSession) -> None:
    simulation = session.simulation

    session.close()

    assert session.closed is True
    assert simulation.stopped is True
    with pytest.raises(SessionClosedError):
        session.load(NODE_DATA, EDGE_DATA)
    with pytest.raises(SessionClosedError):
        session.frame()
    with pytest.raises(RuntimeError):
        session.select_all()
