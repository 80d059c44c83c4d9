from __future__ import annotations

import math

from pygame.math import Vector2, Vector3
from pytest import approx

from murmuration.sim.utils.math2d import (
    FACING_OFFSET,
    _clamp_length,
    _clamp_length_xy_f,
    _heading_from_velocity,
    _safe_normalize,
    delta_function,
    flat_delta,
    toroidal_delta,
)


def test_safe_normalize_handles_zero_and_3d_vectors():
    assert _safe_normalize(Vector2()) == Vector2()
    assert _safe_normalize(Vector3()) == Vector3()
    assert isinstance(_safe_normalize(Vector3()), Vector3)

    unit = _safe_normalize(Vector3(0.0, 3.0, 4.0))
    assert unit.length() == approx(1.0)
    assert unit.z == approx(0.8)


def test_clamp_length_only_shrinks():
    short = Vector2(1.0, 1.0)
    assert _clamp_length(short, 5.0) == short
    assert _clamp_length(short, 5.0) is not short

    clamped = _clamp_length(Vector2(30.0, 40.0), 5.0)
    assert clamped.length() == approx(5.0)
    assert clamped.x == approx(3.0)

    assert _clamp_length(Vector3(0.0, 0.0, 10.0), 2.0).z == approx(2.0)
    assert _clamp_length(Vector2(1.0, 0.0), 0.0) == Vector2()
    assert _clamp_length_xy_f(6.0, 8.0, 5.0) == approx((3.0, 4.0))
    assert _clamp_length_xy_f(0.0, 0.0, 5.0) == (0.0, 0.0)


def test_toroidal_delta_takes_the_short_way_across_opposite_edges():
    width, height = 800.0, 600.0
    right = Vector2(399.0, 0.0)
    left = Vector2(-399.0, 0.0)

    delta = toroidal_delta(right, left, width, height)

    assert delta.length() == approx(2.0)
    assert delta.x == approx(-2.0)
    assert flat_delta(right, left).length() == approx(798.0)


def test_toroidal_delta_wraps_each_axis_with_its_own_extent():
    delta = toroidal_delta(Vector2(0.0, 290.0), Vector2(0.0, -290.0), 800.0, 600.0)
    assert delta.x == approx(0.0)
    assert delta.y == approx(-20.0)

    inside = toroidal_delta(Vector2(10.0, 20.0), Vector2(-30.0, 50.0), 800.0, 600.0)
    assert inside == Vector2(40.0, -30.0)


def test_toroidal_delta_ignores_unsized_axes():
    delta = toroidal_delta(Vector2(500.0, 500.0), Vector2(-500.0, -500.0), 0.0, 0.0)
    assert delta == Vector2(1000.0, 1000.0)


def test_delta_function_matches_boundary_policy():
    assert delta_function("wrap") is toroidal_delta
    assert delta_function("clamp") is flat_delta


def test_heading_points_forward_axis_along_travel():
    assert _heading_from_velocity(Vector2(1.0, 0.0)) == approx(FACING_OFFSET)
    assert _heading_from_velocity(Vector2(0.0, 1.0)) == approx(0.0)
    assert _heading_from_velocity(Vector2(-1.0, 0.0)) == approx(math.pi / 2.0)
