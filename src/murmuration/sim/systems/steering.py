from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.config import AvoidanceSettings
from ..core.spatial_grid import GridEntry
from ..utils.math2d import DeltaFn, _clamp_length, _clamp_length_xy_f, _safe_normalize

if TYPE_CHECKING:
    from ..core.world import TickContext


def reynolds(raw: Vector2, velocity: Vector2, max_speed: float, max_force: float) -> Vector2:
    """Turn a desired direction into a steering force: ``clamp(unit(raw) * max_speed - velocity, max_force)``."""
    if raw.length_squared() < 1e-12:
        return Vector2()
    desired = _safe_normalize(raw) * max_speed
    return _clamp_length(desired - velocity, max_force)


def separation(
    agent_id: int,
    position: Vector2,
    neighborhood: List[GridEntry],
    radius: float,
    delta: DeltaFn,
    width: float,
    height: float,
) -> Vector2:
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for entry in neighborhood:
        if entry.agent_id == agent_id:
            continue
        offset = delta(position, entry.position, width, height)
        dist_sq = offset.x * offset.x + offset.y * offset.y
        if dist_sq < 1e-12 or dist_sq >= radius * radius:
            continue
        # unit(offset) / distance == offset / distance^2
        inv_dist_sq = 1.0 / dist_sq
        sum_x += offset.x * inv_dist_sq
        sum_y += offset.y * inv_dist_sq
        count += 1
    if count == 0:
        return Vector2()
    inv = 1.0 / count
    return Vector2(sum_x * inv, sum_y * inv)


def alignment(
    agent_id: int,
    position: Vector2,
    neighborhood: List[GridEntry],
    radius: float,
    delta: DeltaFn,
    width: float,
    height: float,
) -> Vector2:
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for entry in neighborhood:
        if entry.agent_id == agent_id:
            continue
        offset = delta(position, entry.position, width, height)
        dist_sq = offset.length_squared()
        if dist_sq < 1e-12 or dist_sq >= radius * radius:
            continue
        sum_x += entry.velocity.x
        sum_y += entry.velocity.y
        count += 1
    if count == 0:
        return Vector2()
    inv = 1.0 / count
    return Vector2(sum_x * inv, sum_y * inv)


def cohesion(
    agent_id: int,
    position: Vector2,
    neighborhood: List[GridEntry],
    radius: float,
    delta: DeltaFn,
    width: float,
    height: float,
) -> Vector2:
    """Average offset from ``position`` to each neighbor, i.e. the direction of the local centre of mass."""
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for entry in neighborhood:
        if entry.agent_id == agent_id:
            continue
        offset = delta(entry.position, position, width, height)
        dist_sq = offset.length_squared()
        if dist_sq < 1e-12 or dist_sq >= radius * radius:
            continue
        sum_x += offset.x
        sum_y += offset.y
        count += 1
    if count == 0:
        return Vector2()
    inv = 1.0 / count
    return Vector2(sum_x * inv, sum_y * inv)


def _falloff(settings: AvoidanceSettings, distance: float) -> float:
    radius = settings.radius
    if radius <= 0.0 or distance >= radius:
        return 0.0
    t = (radius - max(0.0, distance)) / radius
    return settings.max_force * t * t


def pointer_avoidance(
    position: Vector2,
    pointer: Optional[Vector2],
    settings: AvoidanceSettings,
    delta: DeltaFn,
    width: float,
    height: float,
) -> Vector2:
    if pointer is None:
        return Vector2()
    to_pointer = delta(pointer, position, width, height)
    distance = to_pointer.length()
    if distance < 1e-6 or distance >= settings.radius:
        return Vector2()
    strength = _falloff(settings, distance)
    return to_pointer * (-strength / distance)


def edge_avoidance(position: Vector2, settings: AvoidanceSettings, width: float, height: float) -> Vector2:
    """Push inward from every world edge closer than ``settings.radius``."""
    if width <= 0.0 or height <= 0.0:
        return Vector2()
    half_w = width * 0.5
    half_h = height * 0.5
    push_x = _falloff(settings, position.x + half_w) - _falloff(settings, half_w - position.x)
    push_y = _falloff(settings, position.y + half_h) - _falloff(settings, half_h - position.y)
    push_x, push_y = _clamp_length_xy_f(push_x, push_y, settings.max_force)
    return Vector2(push_x, push_y)


def wander_force(sample: Vector2, velocity: Vector2, max_speed: float, max_force: float) -> Vector2:
    return reynolds(sample, velocity, max_speed, max_force)


def compute_acceleration(
    context: "TickContext",
    agent: Agent,
    neighborhood: Optional[List[GridEntry]],
    wander_sample: Optional[Vector2] = None,
) -> Vector2:
    if neighborhood is None:
        neighborhood = []
    config = context.config
    behavior = config.behavior
    movement = config.movement
    environment = context.environment
    delta = context.delta
    width = environment.width
    height = environment.height
    position = agent.position
    velocity = agent.velocity
    max_speed = movement.max_speed
    max_force = movement.max_force

    accel = Vector2()
    if behavior.separation > 0.0:
        raw = separation(agent.id, position, neighborhood, behavior.separation_radius, delta, width, height)
        accel += reynolds(raw, velocity, max_speed, max_force) * behavior.separation
    if behavior.alignment > 0.0:
        raw = alignment(agent.id, position, neighborhood, behavior.neighbor_radius, delta, width, height)
        accel += reynolds(raw, velocity, max_speed, max_force) * behavior.alignment
    if behavior.cohesion > 0.0:
        raw = cohesion(agent.id, position, neighborhood, behavior.neighbor_radius, delta, width, height)
        accel += reynolds(raw, velocity, max_speed, max_force) * behavior.cohesion
    if wander_sample is not None and config.wander.weight > 0.0:
        accel += wander_force(wander_sample, velocity, max_speed, max_force) * config.wander.weight
    if config.pointer.enabled and config.pointer.weight > 0.0:
        accel += (
            pointer_avoidance(position, environment.pointer, config.pointer, delta, width, height)
            * config.pointer.weight
        )
    if config.edges.enabled and config.edges.weight > 0.0:
        accel += edge_avoidance(position, config.edges, width, height) * config.edges.weight
    return accel


def compute_behavior(context: "TickContext") -> None:
    """Phase 2: every agent's acceleration from the grid snapshot. Positions and velocities are not touched."""
    index = context.neighbor_index
    samples = context.wander_samples
    checks = 0
    for i, agent in enumerate(context.arena):
        neighborhood = index.query_neighborhood(agent.position)
        checks += len(neighborhood)
        sample = samples[i] if i < len(samples) else None
        accel = compute_acceleration(context, agent, neighborhood, sample)
        agent.acceleration.update(accel.x, accel.y)
    context.neighbor_checks += checks
