from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Agent
from ..core.environment import Environment

if TYPE_CHECKING:
    from ..core.world import TickContext


def clamp_axis(value: float, extent: float) -> float:
    """Jump to the opposite edge once ``value`` leaves ``[-extent / 2, extent / 2]``."""
    if extent <= 0.0:
        return value
    half = extent * 0.5
    if value > half:
        return -half
    if value < -half:
        return half
    return value


def wrap_axis(value: float, extent: float) -> float:
    if extent <= 0.0:
        return value
    half = extent * 0.5
    # Python's float modulo takes the sign of the divisor, so negative inputs land in [0, extent).
    return (value + half) % extent - half


def resolve(agent: Agent, environment: Environment, policy: str) -> None:
    axis = wrap_axis if policy == "wrap" else clamp_axis
    position = agent.position
    position.update(axis(position.x, environment.width), axis(position.y, environment.height))


def resolve_boundaries(context: "TickContext") -> None:
    policy = context.config.boundary_policy
    environment = context.environment
    for agent in context.arena:
        resolve(agent, environment, policy)
