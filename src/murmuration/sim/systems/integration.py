from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Agent
from ..utils.math2d import HEADING_EPSILON, _clamp_length_xy_f, _heading_from_velocity

if TYPE_CHECKING:
    from ..core.world import TickContext


def apply_forces(agent: Agent, dt: float, max_speed: float) -> None:
    # Limits the change per tick, not the resulting speed.
    dvx, dvy = _clamp_length_xy_f(agent.acceleration.x * dt, agent.acceleration.y * dt, max_speed)
    agent.velocity.update(agent.velocity.x + dvx, agent.velocity.y + dvy)


def update_position(agent: Agent, dt: float) -> None:
    velocity = agent.velocity
    agent.position.update(agent.position.x + velocity.x * dt, agent.position.y + velocity.y * dt)
    if velocity.length_squared() > HEADING_EPSILON * HEADING_EPSILON:
        agent.heading = _heading_from_velocity(velocity)


def integrate(context: "TickContext") -> None:
    dt = context.environment.dt
    max_speed = context.config.movement.max_speed
    agents = context.arena.agents
    for agent in agents:
        apply_forces(agent, dt, max_speed)
    for agent in agents:
        update_position(agent, dt)
