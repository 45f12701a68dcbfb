"""
Configuration: typed balance, physics, and storage settings.

All tunable numbers of the simulation live here as dataclasses with defaults,
optionally overridden from a YAML file (configs/game_balance.yaml).
"""

from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "configs" / "game_balance.yaml"


class ConfigError(ValueError):
    """Raised when a configuration file cannot be parsed or has unknown keys."""


# ==============================================================================
# SECTIONS
# ==============================================================================

@dataclass
class PhysicsConfig:
    """Vehicle speed model (mph and mph per second)."""
    min_speed: float = 0.0
    max_speed: float = 80.0
    acceleration: float = 15.0
    friction: float = 5.0

    def __post_init__(self) -> None:
        assert self.max_speed > self.min_speed >= 0, "speed range must be non-empty and non-negative"
        assert self.acceleration >= 0, "acceleration cannot be negative"
        assert self.friction >= 0, "friction cannot be negative"


@dataclass
class SpeedTierSpec:
    """One speed band: upper bound, scoring multiplier, and interaction-time scaling."""
    name: str
    max_speed: float
    multiplier: float
    time_scaling: float


def _default_tiers() -> List[SpeedTierSpec]:
    return [
        SpeedTierSpec(name="crawling", max_speed=15.0, multiplier=1.0, time_scaling=1.0),
        SpeedTierSpec(name="moderate", max_speed=35.0, multiplier=0.75, time_scaling=0.8),
        SpeedTierSpec(name="fast", max_speed=55.0, multiplier=0.5, time_scaling=0.6),
        SpeedTierSpec(name="racing", max_speed=80.0, multiplier=0.25, time_scaling=0.4),
    ]


@dataclass
class SpeedTierConfig:
    """Ordered speed tiers; the last tier also covers anything above its bound."""
    tiers: List[SpeedTierSpec] = field(default_factory=_default_tiers)

    def __post_init__(self) -> None:
        self.tiers = [
            tier if isinstance(tier, SpeedTierSpec) else SpeedTierSpec(**tier)
            for tier in self.tiers
        ]
        assert self.tiers, "at least one speed tier is required"
        bounds = [tier.max_speed for tier in self.tiers]
        assert bounds == sorted(bounds), "speed tiers must be ordered by max_speed"


@dataclass
class ViewportConfig:
    """Landscape geometry in pixels, used for range checks and culling."""
    game_width: int = 800
    game_height: int = 600
    landscape_width: int = 1200
    vehicle_x_position: int = 100
    feature_interaction_range: float = 80.0
    feature_render_distance: float = 400.0


@dataclass
class GenerationConfig:
    """Configuration for landscape feature generation."""

    # Density
    features_per_mile_min: float = 2.0
    features_per_mile_max: float = 6.0
    min_features: int = 1

    # Clustering
    cluster_fraction: float = 0.3
    cluster_size_min: int = 2
    cluster_size_max: int = 4
    cluster_spread: float = 0.5       # miles either side of the centre
    cluster_center_margin: float = 1.0
    cluster_edge_margin: float = 0.1

    # Scattered features keep away from the route ends
    scatter_edge_margin: float = 0.5

    # Cosmetics
    size_min: float = 24.0
    size_max: float = 40.0

    def __post_init__(self) -> None:
        assert 0 <= self.features_per_mile_min <= self.features_per_mile_max, \
            "features_per_mile range is invalid"
        assert 0.0 <= self.cluster_fraction <= 1.0, "cluster_fraction must be [0, 1]"
        assert 1 <= self.cluster_size_min <= self.cluster_size_max, "cluster size range is invalid"
        assert self.min_features >= 1, "min_features must be at least 1"


@dataclass
class InteractionConfig:
    """Base durations (seconds) and completion thresholds for mini-games."""
    base_times: Dict[str, float] = field(default_factory=lambda: {
        'click': 0.5,
        'hold': 3.0,
        'sequence': 5.0,
        'trace': 4.0,
    })
    hold_required_time: float = 2.0
    sequence_elements: Tuple[str, ...] = ("fire", "water", "earth", "air")
    trace_completion_threshold: float = 0.8
    trace_max_distance: float = 30.0  # pixels
    trace_target_path: Tuple[Tuple[float, float], ...] = (
        (50.0, 50.0),
        (100.0, 75.0),
        (150.0, 50.0),
        (200.0, 75.0),
        (250.0, 50.0),
    )

    def __post_init__(self) -> None:
        self.sequence_elements = tuple(self.sequence_elements)
        self.trace_target_path = tuple(tuple(float(c) for c in point) for point in self.trace_target_path)
        assert self.hold_required_time > 0, "hold_required_time must be positive"
        assert self.trace_max_distance > 0, "trace_max_distance must be positive"
        assert self.sequence_elements, "sequence_elements cannot be empty"


@dataclass
class ScoringConfig:
    """Dwell-reading reward parameters."""
    dwell_base_rate: float = 10.0          # points per second of reading
    dwell_minimum_multiplier: float = 0.5


@dataclass
class StorageConfig:
    """History persistence settings."""
    history_path: str = "data/history.json"
    max_stored_games: int = 100
    version: int = 1

    def __post_init__(self) -> None:
        assert self.max_stored_games > 0, "max_stored_games must be positive"


@dataclass
class PerformanceConfig:
    """Tick cadence used by drivers to clamp delta time."""
    target_fps: int = 60
    max_frame_skip: int = 5

    @property
    def fixed_timestep(self) -> float:
        return 1.0 / self.target_fps

    @property
    def max_delta_time(self) -> float:
        return self.fixed_timestep * self.max_frame_skip


# ==============================================================================
# ROOT CONFIG
# ==============================================================================

@dataclass
class GameConfig:
    """Complete engine configuration."""
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    speed_tiers: SpeedTierConfig = field(default_factory=SpeedTierConfig)
    viewport: ViewportConfig = field(default_factory=ViewportConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    interactions: InteractionConfig = field(default_factory=InteractionConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "GameConfig":
        """
        Build a config from a (possibly partial) dictionary.

        Missing sections and keys keep their defaults.

        Raises:
            ConfigError: if a section or key is unknown
        """
        sections = {f.name: f for f in fields(GameConfig)}
        kwargs: Dict[str, Any] = {}
        for section_name, values in (data or {}).items():
            if section_name not in sections:
                raise ConfigError(f"Unknown config section: {section_name}")
            section_type = sections[section_name].default_factory().__class__
            if not isinstance(values, dict):
                raise ConfigError(f"Config section '{section_name}' must be a mapping")
            known = {f.name for f in fields(section_type)}
            unknown = set(values) - known
            if unknown:
                raise ConfigError(
                    f"Unknown keys in section '{section_name}': {', '.join(sorted(unknown))}"
                )
            try:
                kwargs[section_name] = section_type(**values)
            except (AssertionError, TypeError) as exc:
                raise ConfigError(f"Invalid values in section '{section_name}': {exc}") from exc
        return GameConfig(**kwargs)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Safely get a value using a 'dot.path'.

        Example: config.get('physics.max_speed')
        """
        value: Any = self
        for key in key_path.split('.'):
            if is_dataclass(value) and hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict) and key in value:
                value = value[key]
            else:
                logger.debug("Config key not found: %s", key_path)
                return default
        return value


def load_config(path: Optional[str] = None) -> GameConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: YAML file path (defaults to configs/game_balance.yaml)

    Returns:
        GameConfig with file values merged over defaults
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", config_path)
        return GameConfig()
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse config file {config_path}: {exc}") from exc

    if data is None:
        return GameConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return GameConfig.from_dict(data)


DEFAULT_CONFIG = GameConfig()
