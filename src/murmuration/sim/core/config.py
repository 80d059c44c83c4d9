from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

BOUNDARY_POLICIES = ("clamp", "wrap")
NEIGHBOR_INDEXES = ("grid", "all_pairs")
SPAWN_STRATEGIES = ("disk", "square", "edge")


class ConfigError(ValueError):
    """Raised when a simulation option is out of range or unknown."""


@dataclass
class BehaviorWeights:
    alignment: float = 1.5
    cohesion: float = 1.0
    separation: float = 1.5
    separation_radius: float = 25.0
    neighbor_radius: float = 50.0


@dataclass
class MovementSettings:
    max_speed: float = 120.0
    max_force: float = 20.0


@dataclass
class WanderSettings:
    weight: float = 0.01


@dataclass
class AvoidanceSettings:
    enabled: bool = False
    weight: float = 1.0
    radius: float = 200.0
    max_force: float = 150.0


def _edge_defaults() -> AvoidanceSettings:
    return AvoidanceSettings(radius=50.0, max_force=20.0)


@dataclass
class SpawnSettings:
    strategy: str = "disk"
    radius: float = 300.0


@dataclass
class SimulationConfig:
    num_agents: int = 150
    boundary_policy: str = "wrap"
    neighbor_index: str = "grid"
    cell_size: Optional[float] = None
    world_width: float = 1280.0
    world_height: float = 720.0
    time_step: float = 1.0 / 64.0
    seed: int = 42
    config_version: str = "v1"
    behavior: BehaviorWeights = field(default_factory=BehaviorWeights)
    movement: MovementSettings = field(default_factory=MovementSettings)
    wander: WanderSettings = field(default_factory=WanderSettings)
    pointer: AvoidanceSettings = field(default_factory=AvoidanceSettings)
    edges: AvoidanceSettings = field(default_factory=_edge_defaults)
    spawn: SpawnSettings = field(default_factory=SpawnSettings)

    @property
    def interaction_radius(self) -> float:
        return max(self.behavior.neighbor_radius, self.behavior.separation_radius)

    @property
    def effective_cell_size(self) -> float:
        # A cell at least as wide as the largest radius keeps every neighbor inside the 3x3 block.
        if self.cell_size is not None:
            return self.cell_size
        return self.interaction_radius

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")
        return load_config(data)

    def validate(self) -> "SimulationConfig":
        behavior = self.behavior
        for name in ("alignment", "cohesion", "separation"):
            _require_weight(f"behavior.{name}", getattr(behavior, name))
        _require_positive("behavior.separation_radius", behavior.separation_radius)
        _require_positive("behavior.neighbor_radius", behavior.neighbor_radius)
        _require_positive("movement.max_speed", self.movement.max_speed)
        _require_positive("movement.max_force", self.movement.max_force)
        _require_weight("wander.weight", self.wander.weight)
        for prefix, settings in (("pointer", self.pointer), ("edges", self.edges)):
            _require_weight(f"{prefix}.weight", settings.weight)
            _require_positive(f"{prefix}.radius", settings.radius)
            _require_positive(f"{prefix}.max_force", settings.max_force)
        if self.spawn.strategy not in SPAWN_STRATEGIES:
            raise ConfigError(
                f"spawn.strategy must be one of {', '.join(SPAWN_STRATEGIES)}, got {self.spawn.strategy!r}"
            )
        _require_positive("spawn.radius", self.spawn.radius)
        if isinstance(self.num_agents, bool) or not isinstance(self.num_agents, int) or self.num_agents < 0:
            raise ConfigError(f"num_agents must be a non-negative integer, got {self.num_agents!r}")
        if self.boundary_policy not in BOUNDARY_POLICIES:
            raise ConfigError(
                f"boundary_policy must be one of {', '.join(BOUNDARY_POLICIES)}, got {self.boundary_policy!r}"
            )
        if self.neighbor_index not in NEIGHBOR_INDEXES:
            raise ConfigError(
                f"neighbor_index must be one of {', '.join(NEIGHBOR_INDEXES)}, got {self.neighbor_index!r}"
            )
        if self.cell_size is not None:
            _require_positive("cell_size", self.cell_size)
            if self.cell_size < self.interaction_radius:
                raise ConfigError(
                    f"cell_size ({self.cell_size}) must be at least the largest interaction radius "
                    f"({self.interaction_radius})"
                )
        _require_positive("world_width", self.world_width)
        _require_positive("world_height", self.world_height)
        _require_positive("time_step", self.time_step)
        return self


def _require_positive(name: str, value: Any) -> None:
    if not _is_number(value) or not math.isfinite(value) or value <= 0.0:
        raise ConfigError(f"{name} must be a positive number, got {value!r}")


def _require_weight(name: str, value: Any) -> None:
    if not _is_number(value) or not math.isfinite(value) or value < 0.0:
        raise ConfigError(f"{name} must be a non-negative number, got {value!r}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _build(
    cls: type,
    raw: Any,
    section: str,
    defaults: Mapping[str, Any] | None = None,
    **overrides: Any,
) -> Any:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{section}: expected a mapping, got {type(raw).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"{section}: unknown option(s) {', '.join(unknown)}")
    values = dict(defaults or {})
    values.update(raw)
    values.update(overrides)
    return cls(**values)


_SECTIONS = {
    "behavior": BehaviorWeights,
    "movement": MovementSettings,
    "wander": WanderSettings,
    "pointer": AvoidanceSettings,
    "spawn": SpawnSettings,
}


def load_config(raw: Mapping[str, Any]) -> SimulationConfig:
    sections: dict[str, Any] = {
        name: _build(cls, raw.get(name), name) for name, cls in _SECTIONS.items()
    }
    sections["edges"] = _build(AvoidanceSettings, raw.get("edges"), "edges", defaults=vars(_edge_defaults()))
    sim_values = {k: v for k, v in raw.items() if k not in sections}
    config = _build(SimulationConfig, sim_values, "simulation", **sections)
    return config.validate()
