"""Configuration loader for the NetView backend."""
from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"

MAX_PALETTE_SIZE = 20
HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class ServiceConfig(_FrozenModel):
    """Service-level configuration."""

    version: str = Field(..., min_length=1)


class GraphViewConfig(_FrozenModel):
    """Visual constants and force magnitudes for the interactive graph."""

    min_node_size: float = Field(..., gt=0)
    max_node_size: float = Field(..., gt=0)
    min_link_width: float = Field(..., gt=0)
    max_link_width: float = Field(..., gt=0)
    label_offset: float = Field(..., ge=0)
    default_link_opacity: float = Field(..., ge=0.0, le=1.0)
    highlight_opacity: float = Field(..., ge=0.0, le=1.0)
    faded_opacity: float = Field(..., ge=0.0, le=1.0)
    legend_opacity: float = Field(..., ge=0.0, le=1.0)
    zoom_extent: Tuple[float, float]
    node_charge: float = Field(..., lt=0)
    link_strength: float = Field(..., ge=0)
    collision_force: float = Field(..., ge=0)
    simulation_alpha: float = Field(..., gt=0, le=1.0)
    colors: List[str] = Field(..., min_length=1, max_length=MAX_PALETTE_SIZE)

    @field_validator("colors")
    @classmethod
    def _validate_colors(cls, values: List[str]) -> List[str]:
        """Ensure every palette entry is a hex color string."""

        for value in values:
            if not HEX_COLOR_PATTERN.match(value):
                msg = f"palette entry '{value}' is not a hex color"
                raise ValueError(msg)
        return values

    @field_validator("zoom_extent")
    @classmethod
    def _validate_zoom_extent(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        low, high = value
        if low <= 0 or high < low:
            raise ValueError("zoom_extent must be an increasing pair of positive scales")
        return value

    @model_validator(mode="after")
    def _validate_ranges(self) -> "GraphViewConfig":
        if self.min_node_size > self.max_node_size:
            raise ValueError("graph_view.min_node_size cannot exceed graph_view.max_node_size")
        if self.min_link_width > self.max_link_width:
            raise ValueError("graph_view.min_link_width cannot exceed graph_view.max_link_width")
        return self


class SimulationConfig(_FrozenModel):
    """Integrator parameters for the force-directed layout."""

    alpha_min: float = Field(0.001, gt=0, lt=1.0)
    alpha_decay: Optional[float] = Field(default=None, gt=0, lt=1.0)
    velocity_decay: float = Field(0.4, ge=0.0, le=1.0)
    link_distance: float = Field(30.0, gt=0)
    charge_distance_min: float = Field(1.0, gt=0)
    center_strength: float = Field(1.0, ge=0.0, le=1.0)
    collision_strength: float = Field(1.0, ge=0.0, le=1.0)
    initial_radius: float = Field(10.0, gt=0)
    seed: Optional[int] = Field(default=None, ge=0)

    @property
    def resolved_alpha_decay(self) -> float:
        """Return the per-tick alpha decay, derived so cooling takes ~300 ticks."""

        if self.alpha_decay is not None:
            return self.alpha_decay
        return 1.0 - self.alpha_min ** (1.0 / 300.0)


class ViewportConfig(_FrozenModel):
    """Default canvas dimensions and re-centering animation."""

    width: float = Field(960.0, gt=0)
    height: float = Field(600.0, gt=0)
    recenter_duration_seconds: float = Field(0.75, ge=0)


class UIConfig(_FrozenModel):
    """HTTP surface configuration values."""

    allowed_origins: List[str] = Field(default_factory=list)
    max_sessions: int = Field(64, ge=1)
    max_ticks_per_request: int = Field(300, ge=1)


class AppConfig(_FrozenModel):
    """Top-level application configuration composed from config.yaml."""

    service: ServiceConfig
    graph_view: GraphViewConfig
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    ui: UIConfig = Field(default_factory=UIConfig)

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        Returns:
            Path: Absolute path to config.yaml at the repository root.
        """
        return REPO_ROOT / "config.yaml"


def _determine_env_file_path() -> Optional[Path]:
    """Return the path to the environment file if one should be loaded."""

    override = os.getenv("NETVIEW_ENV_FILE")
    if override:
        candidate = Path(override).expanduser()
        if candidate.exists():
            return candidate
        LOGGER.warning("Configured environment file override does not exist: %s", candidate)
        return None
    if DEFAULT_ENV_FILE.exists():
        return DEFAULT_ENV_FILE
    return None


def _strip_inline_comment(value: str) -> str:
    """Remove inline comments from an environment value when unquoted."""

    comment_index = value.find("#")
    if comment_index == -1:
        return value
    return value[:comment_index].rstrip()


def _load_env_file(path: Path) -> None:
    """Populate ``os.environ`` with values read from a ``.env`` file."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.lower().startswith("export "):
                    line = line[7:].lstrip()
                if "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                key = key.strip()
                if not key:
                    continue
                existing_value = os.environ.get(key)
                if existing_value is not None and existing_value.strip() != "":
                    continue
                value = raw_value.strip()
                if not value:
                    os.environ[key] = ""
                    continue
                if value[0] in {'"', "'"} and value[-1] == value[0]:
                    os.environ[key] = value[1:-1]
                    continue
                os.environ[key] = _strip_inline_comment(value)
    except OSError:
        LOGGER.warning("Unable to read environment file at %s", path)


def _parse_origins(value: str) -> List[str]:
    """Parse a comma or whitespace separated list of CORS origins, de-duplicated."""

    unique: List[str] = []
    for candidate in re.split(r"[,\s]+", value):
        candidate = candidate.strip()
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def _apply_environment_overrides(raw_content: Dict[str, Any]) -> Dict[str, Any]:
    """Merge environment-based overrides into the raw configuration mapping.

    Args:
        raw_content: Parsed YAML configuration prior to Pydantic validation.

    Returns:
        Dict[str, Any]: Configuration mapping with environment overrides applied.

    Raises:
        ConfigError: If an override value cannot be interpreted.
    """

    env_file_path = _determine_env_file_path()
    if env_file_path is not None:
        _load_env_file(env_file_path)

    raw_origins = os.getenv("NETVIEW_ALLOWED_ORIGINS")
    if raw_origins:
        origins = _parse_origins(raw_origins)
        if origins:
            raw_content.setdefault("ui", {})["allowed_origins"] = origins
            LOGGER.info("Allowed origins overridden from environment (count=%d)", len(origins))

    raw_seed = os.getenv("NETVIEW_SIMULATION_SEED")
    if raw_seed is not None and raw_seed.strip():
        try:
            seed = int(raw_seed.strip())
        except ValueError as exc:
            LOGGER.error("NETVIEW_SIMULATION_SEED must be an integer, got %r", raw_seed)
            raise ConfigError("Invalid simulation seed override") from exc
        raw_content.setdefault("simulation", {})["seed"] = seed
        LOGGER.info("Simulation seed overridden from environment (seed=%d)", seed)
    return raw_content


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read YAML content from disk.

    Args:
        path: Location of the YAML file.

    Returns:
        Dict[str, Any]: Parsed YAML content.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Configuration file missing at %s", path)
        raise ConfigError("Configuration file not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in %s", path)
        raise ConfigError("Invalid YAML syntax") from exc
    if not isinstance(data, dict):
        LOGGER.error("Configuration root must be a mapping: %s", path)
        raise ConfigError("Configuration root must be a mapping")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        AppConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or AppConfig.default_path()
    raw_content = _read_yaml(config_path)
    raw_content = _apply_environment_overrides(raw_content)
    try:
        return AppConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc
