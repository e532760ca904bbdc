from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from backend.app.config import AppConfig, ConfigError, GraphViewConfig, load_config


@pytest.fixture(autouse=True)
def _fresh_config_cache():
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def _write_config(tmp_path: Path, mutate) -> Path:
    raw = yaml.safe_load(AppConfig.default_path().read_text(encoding="utf-8"))
    mutate(raw)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")
    return path


def test_config_loads_expected_structure() -> None:
    config = load_config()
    assert isinstance(config, AppConfig)
    assert config.service.version == "1.0.0"
    view = config.graph_view
    assert (view.min_node_size, view.max_node_size) == (5, 20)
    assert (view.min_link_width, view.max_link_width) == (1.25, 3)
    assert view.label_offset == 5
    assert view.default_link_opacity == 0.6
    assert view.highlight_opacity == 1
    assert view.faded_opacity == 0.05
    assert view.legend_opacity == 0.5
    assert view.zoom_extent == (0.1, 8)
    assert view.node_charge == -200
    assert view.link_strength == 0.001
    assert view.collision_force == 5
    assert view.simulation_alpha == 0.005
    assert len(view.colors) == 20
    assert view.colors[0] == "#e6194B"
    assert config.viewport.recenter_duration_seconds == 0.75
    assert config.ui.max_ticks_per_request == 300


def test_alpha_decay_derived_from_alpha_min() -> None:
    config = load_config()
    decay = config.simulation.resolved_alpha_decay
    assert config.simulation.alpha_decay is None
    assert decay == pytest.approx(1 - 0.001 ** (1 / 300))
    # alpha reaches alpha_min after ~300 ticks of decay toward zero
    assert (1 - decay) ** 300 == pytest.approx(0.001)


def test_config_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")


def test_config_invalid_yaml_raises(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("graph_view: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_config_rejects_positive_charge(tmp_path: Path) -> None:
    path = _write_config(tmp_path, lambda raw: raw["graph_view"].update({"node_charge": 10}))
    with pytest.raises(ConfigError):
        load_config(path)


def test_config_rejects_inverted_size_range(tmp_path: Path) -> None:
    path = _write_config(tmp_path, lambda raw: raw["graph_view"].update({"min_node_size": 30}))
    with pytest.raises(ConfigError):
        load_config(path)


def test_config_rejects_oversized_palette(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path, lambda raw: raw["graph_view"].update({"colors": ["#000000"] * 21})
    )
    with pytest.raises(ConfigError):
        load_config(path)


def test_graph_view_rejects_non_hex_color() -> None:
    payload = load_config().graph_view.model_dump()
    payload["colors"] = ["red"]
    with pytest.raises(ValueError):
        GraphViewConfig(**payload)


def test_allowed_origins_override_from_env(monkeypatch) -> None:
    monkeypatch.setenv("NETVIEW_ALLOWED_ORIGINS", "http://a.test, http://b.test http://a.test")
    config = load_config()
    assert config.ui.allowed_origins == ["http://a.test", "http://b.test"]


def test_simulation_seed_override_from_env(monkeypatch) -> None:
    monkeypatch.setenv("NETVIEW_SIMULATION_SEED", "42")
    assert load_config().simulation.seed == 42


def test_invalid_simulation_seed_override_raises(monkeypatch) -> None:
    monkeypatch.setenv("NETVIEW_SIMULATION_SEED", "forty-two")
    with pytest.raises(ConfigError):
        load_config()


def test_env_file_fills_blank_environment_value(monkeypatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local overrides\nexport NETVIEW_SIMULATION_SEED=7  # pinned\n", encoding="utf-8"
    )
    monkeypatch.setenv("NETVIEW_SIMULATION_SEED", "")
    monkeypatch.setenv("NETVIEW_ENV_FILE", str(env_file))

    assert load_config().simulation.seed == 7


def test_missing_env_file_override_is_tolerated(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NETVIEW_ENV_FILE", str(tmp_path / "absent.env"))
    assert load_config().service.version == "1.0.0"
