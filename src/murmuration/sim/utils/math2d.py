from __future__ import annotations

import math
from typing import Callable, TypeVar

from pygame.math import Vector2, Vector3

# Forward axis of an agent is +y, so travel along +x faces -pi/2.
FACING_OFFSET = -math.pi / 2.0
HEADING_EPSILON = 1e-3

V = TypeVar("V", Vector2, Vector3)
DeltaFn = Callable[[Vector2, Vector2, float, float], Vector2]


def _safe_normalize(vector: V) -> V:
    magnitude_sq = vector.length_squared()
    if magnitude_sq < 1e-12:
        return type(vector)()
    return vector / math.sqrt(magnitude_sq)


def _clamp_length(vector: V, max_length: float) -> V:
    if max_length <= 0:
        return type(vector)()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return type(vector)(vector)
    return vector * (max_length / math.sqrt(magnitude_sq))


def _clamp_length_xy_f(x: float, y: float, max_length: float) -> tuple[float, float]:
    if max_length <= 0.0:
        return 0.0, 0.0
    magnitude_sq = x * x + y * y
    if magnitude_sq <= max_length * max_length:
        return x, y
    inv = max_length / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def _wrap_component(delta: float, extent: float) -> float:
    if extent <= 0.0:
        return delta
    if abs(delta) > extent * 0.5:
        return delta - math.copysign(extent, delta)
    return delta


def toroidal_delta(a: Vector2, b: Vector2, width: float, height: float) -> Vector2:
    """Vector from ``b`` to ``a`` along the shortest path on a torus of ``width`` x ``height``."""
    return Vector2(_wrap_component(a.x - b.x, width), _wrap_component(a.y - b.y, height))


def flat_delta(a: Vector2, b: Vector2, width: float = 0.0, height: float = 0.0) -> Vector2:
    return Vector2(a.x - b.x, a.y - b.y)


def delta_function(boundary_policy: str) -> DeltaFn:
    if boundary_policy == "wrap":
        return toroidal_delta
    return flat_delta


def _heading_from_velocity(vector: Vector2) -> float:
    return math.atan2(vector.y, vector.x) + FACING_OFFSET
