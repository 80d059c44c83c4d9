from __future__ import annotations

import math
from typing import List, Tuple

from pygame.math import Vector2

from ..core.config import SimulationConfig
from ..core.environment import Environment
from ..core.rng import DeterministicRng


def sample_position(config: SimulationConfig, environment: Environment, rng: DeterministicRng) -> Vector2:
    strategy = config.spawn.strategy
    half_w = environment.half_width
    half_h = environment.half_height
    if strategy == "square":
        return Vector2(rng.next_range(-half_w, half_w), rng.next_range(-half_h, half_h))
    if strategy == "edge":
        # Perimeter point, each edge chosen in proportion to its length.
        perimeter = 2.0 * (environment.width + environment.height)
        if perimeter <= 0.0:
            return Vector2()
        t = rng.next_range(0.0, perimeter)
        if t < environment.width:
            return Vector2(-half_w + t, -half_h)
        t -= environment.width
        if t < environment.height:
            return Vector2(half_w, -half_h + t)
        t -= environment.height
        if t < environment.width:
            return Vector2(half_w - t, half_h)
        t -= environment.width
        return Vector2(-half_w, half_h - t)
    angle = rng.next_angle()
    radius = rng.next_float() * config.spawn.radius
    return Vector2(radius * math.cos(angle), radius * math.sin(angle))


def sample_velocity(config: SimulationConfig, rng: DeterministicRng) -> Vector2:
    return rng.next_unit_circle() * config.movement.max_speed


def initial_states(
    config: SimulationConfig, environment: Environment, rng: DeterministicRng
) -> List[Tuple[Vector2, Vector2]]:
    states = []
    for _ in range(config.num_agents):
        position = sample_position(config, environment, rng)
        velocity = sample_velocity(config, rng)
        states.append((position, velocity))
    return states
