"""Tests for the layout simulation CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts.simulate_layout import main, settle_layout

GRAPH = {
    "node_data": {"A": 10, "B": 20, "C": 15},
    "edge_data": [
        {"source": "A", "target": "B", "value": 5},
        {"source": "B", "target": "C", "value": -3},
    ],
}


@pytest.fixture()
def graph_file(tmp_path: Path) -> Path:
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(GRAPH), encoding="utf-8")
    return path


def test_settle_layout_runs_to_rest() -> None:
    result = settle_layout(GRAPH, max_ticks=1000, seed=2, width=200, height=100)

    assert result["settled"] is True
    assert result["alpha"] < 0.001
    assert [node["id"] for node in result["nodes"]] == ["A", "B", "C"]
    assert [link["sign"] for link in result["links"]] == ["positive", "negative"]


def test_settle_layout_is_reproducible_with_seed() -> None:
    first = settle_layout(GRAPH, max_ticks=20, seed=9)
    second = settle_layout(GRAPH, max_ticks=20, seed=9)

    assert first["nodes"] == second["nodes"]
    assert first["ticks"] == 20
    assert first["settled"] is False


def test_main_prints_layout_json(graph_file: Path, capsys) -> None:
    exit_code = main([str(graph_file), "--max-ticks", "5", "--seed", "1"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["ticks"] == 5
    assert len(payload["nodes"]) == 3


def test_main_rejects_invalid_graph(tmp_path: Path, capsys) -> None:
    path = tmp_path / "graph.json"
    path.write_text(json.dumps({"node_data": {"A": "x"}, "edge_data": []}), encoding="utf-8")

    assert main([str(path)]) == 2
    assert "invalid-value" in capsys.readouterr().err


def test_main_reports_missing_file(tmp_path: Path) -> None:
    assert main([str(tmp_path / "absent.json")]) == 1
