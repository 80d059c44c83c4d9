from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pygame.math import Vector2

from .agent import Agent, AgentArena
from .config import SimulationConfig
from .environment import Environment
from .rng import DeterministicRng
from .spatial_grid import AllPairsIndex, SpatialHashGrid
from ..systems import boundary, integration, metrics as metrics_system, spawning, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import DeltaFn, _heading_from_velocity, delta_function

logger = logging.getLogger(__name__)

NeighborIndex = Union[SpatialHashGrid, AllPairsIndex]


class SimulationState(str, Enum):
    UNINITIALIZED = "Uninitialized"
    READY = "Ready"
    TICKING = "Ticking"


@dataclass
class TickContext:
    arena: AgentArena
    neighbor_index: NeighborIndex
    config: SimulationConfig
    environment: Environment
    delta: DeltaFn
    wander_samples: List[Vector2] = field(default_factory=list)
    neighbor_checks: int = 0


def rebuild_grid(context: TickContext) -> None:
    environment = context.environment
    context.neighbor_index.resize(environment.width, environment.height)
    context.neighbor_index.rebuild(context.arena)


Phase = Tuple[str, Callable[[TickContext], None]]

# Each phase runs for every agent before the next one starts.
TICK_PHASES: Tuple[Phase, ...] = (
    ("rebuild_grid", rebuild_grid),
    ("behavior", steering.compute_behavior),
    ("integrate", integration.integrate),
    ("boundary", boundary.resolve_boundaries),
)


class World:
    def __init__(self, config: SimulationConfig):
        self._config = config.validate()
        self._rng = DeterministicRng(config.seed)
        self._arena = AgentArena()
        self._index = self._create_index()
        self._delta = delta_function(config.boundary_policy)
        self._state = SimulationState.UNINITIALIZED
        self._environment: Optional[Environment] = None
        self._metrics: TickMetrics | None = None
        self._next_tick = 0

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def agents(self) -> List[Agent]:
        return self._arena.agents

    @property
    def arena(self) -> AgentArena:
        return self._arena

    @property
    def neighbor_index(self) -> NeighborIndex:
        return self._index

    @property
    def environment(self) -> Optional[Environment]:
        return self._environment

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def initialize(self, environment: Environment) -> None:
        if self._state is not SimulationState.UNINITIALIZED:
            return
        for position, velocity in spawning.initial_states(self._config, environment, self._rng):
            self._arena.spawn(position, velocity, heading=_heading_from_velocity(velocity))
        self._index.resize(environment.width, environment.height)
        self._environment = environment
        self._state = SimulationState.READY
        logger.debug(
            "spawned %d agents (%s placement, %s boundary)",
            len(self._arena),
            self._config.spawn.strategy,
            self._config.boundary_policy,
        )

    def reset(self) -> None:
        self._arena = AgentArena()
        self._index = self._create_index()
        self._rng.reset()
        self._state = SimulationState.UNINITIALIZED
        self._environment = None
        self._metrics = None
        self._next_tick = 0

    def spawn_agent(self, position: Vector2, velocity: Vector2) -> Agent:
        return self._arena.spawn(position, velocity, heading=_heading_from_velocity(velocity))

    def despawn_agent(self, agent_id: int) -> bool:
        return self._arena.despawn(agent_id)

    def step(self, environment: Environment, tick: Optional[int] = None) -> TickMetrics:
        start = perf_counter()
        if self._state is SimulationState.UNINITIALIZED:
            self.initialize(environment)
        if tick is None:
            tick = self._next_tick
        self._environment = environment

        context = TickContext(
            arena=self._arena,
            neighbor_index=self._index,
            config=self._config,
            environment=environment,
            delta=self._delta,
        )
        if environment.dt > 0.0:
            context.wander_samples = self._draw_wander_samples()
            self._state = SimulationState.TICKING
            for _name, phase in TICK_PHASES:
                phase(context)
        else:
            logger.debug("tick %d skipped: dt=%r", tick, environment.dt)

        self._next_tick = tick + 1
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick,
            self._arena,
            context.neighbor_checks,
            self._index.occupied_cells,
            elapsed_ms,
        )
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, self._arena, 0, 0, 0.0)
        environment = self._environment
        width = environment.width if environment is not None else self._config.world_width
        height = environment.height if environment is not None else self._config.world_height
        dt = environment.dt if environment is not None else self._config.time_step
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._arena],
            world=SnapshotWorld(width=width, height=height),
            metadata=SnapshotMetadata(
                sim_dt=dt,
                seed=self._config.seed,
                boundary_policy=self._config.boundary_policy,
                config_version=self._config.config_version,
            ),
        )

    def _create_index(self) -> NeighborIndex:
        if self._config.neighbor_index == "all_pairs":
            return AllPairsIndex()
        return SpatialHashGrid(self._config.effective_cell_size, wrap=self._config.boundary_policy == "wrap")

    def _draw_wander_samples(self) -> List[Vector2]:
        # Drawn up front in arena order so results never depend on how phase 2 is scheduled.
        if self._config.wander.weight <= 0.0:
            return []
        return [self._rng.next_symmetric() for _ in range(len(self._arena))]

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": agent.heading,
            "speed": agent.velocity.length(),
        }
