import pytest

from leap_arm_control.envelope import (
    EnvelopeBounds,
    SensorOffset,
    clamp_position,
    to_arm_space,
)
from leap_arm_control.geometry import Position3D

BOUNDS = EnvelopeBounds(min_y=0.0, max_y=415.0, min_z=0.0, max_z=800.0)


@pytest.mark.parametrize("position,expected", [
    (Position3D(10.0, 200.0, 300.0), Position3D(10.0, 200.0, 300.0)),
    (Position3D(10.0, -20.0, 300.0), Position3D(10.0, 0.0, 300.0)),
    (Position3D(10.0, 500.0, 300.0), Position3D(10.0, 415.0, 300.0)),
    (Position3D(10.0, 200.0, -1.0), Position3D(10.0, 200.0, 0.0)),
    (Position3D(10.0, 200.0, 900.0), Position3D(10.0, 200.0, 800.0)),
])
def test_clamp_position(position, expected):
    assert clamp_position(position, BOUNDS) == expected


def test_lateral_axis_is_not_clamped():
    p = Position3D(-5000.0, 100.0, 100.0)
    assert clamp_position(p, BOUNDS).x == -5000.0


@pytest.mark.parametrize("position", [
    Position3D(0.0, -1000.0, 5000.0),
    Position3D(3.0, 415.0, 0.0),
    Position3D(-7.0, 123.0, 456.0),
])
def test_clamp_is_idempotent(position):
    once = clamp_position(position, BOUNDS)
    assert clamp_position(once, BOUNDS) == once


def test_bounds_invariant():
    with pytest.raises(ValueError):
        EnvelopeBounds(min_y=10.0, max_y=0.0)
    with pytest.raises(ValueError):
        EnvelopeBounds(min_z=900.0, max_z=800.0)


def test_to_arm_space():
    raw = Position3D(10.0, 300.0, 50.0)
    assert to_arm_space(raw, SensorOffset()) == Position3D(10.0, 150.0, 150.0)
