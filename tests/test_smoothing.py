import pytest

from leap_arm_control.geometry import Position3D
from leap_arm_control.smoothing import InputSmoother


def test_first_observation_is_identity():
    smoother = InputSmoother(depth=5)
    p = Position3D(12.0, -3.5, 250.0)
    assert smoother.observe(p) == p


def test_second_observation_averages_with_previous():
    smoother = InputSmoother(depth=1)
    smoother.observe(Position3D(0.0, 100.0, 200.0))
    out = smoother.observe(Position3D(10.0, 120.0, 100.0))
    assert out == Position3D(5.0, 110.0, 150.0)


def test_deeper_history_weights_current_sample():
    # (3 * 40 + 30 + 20 + 10) / 4
    smoother = InputSmoother(depth=3)
    for x in (10.0, 20.0, 30.0):
        smoother.observe(Position3D(x, 0.0, 0.0))
    out = smoother.observe(Position3D(40.0, 0.0, 0.0))
    assert out.x == pytest.approx(45.0)
    assert out.y == 0.0
    assert out.z == 0.0


def test_history_stores_raw_input_most_recent_first():
    smoother = InputSmoother(depth=3)
    a = Position3D(0.0, 0.0, 0.0)
    b = Position3D(100.0, 100.0, 100.0)
    smoother.observe(a)
    smoother.observe(b)
    assert smoother.history == (b, a)


def test_oldest_entry_evicted_at_capacity():
    smoother = InputSmoother(depth=2)
    points = [Position3D(float(i), 0.0, 0.0) for i in range(4)]
    for p in points:
        smoother.observe(p)
    assert len(smoother) == 2
    assert smoother.history == (points[3], points[2])


@pytest.mark.parametrize("prev,current", [
    ((0.0, 0.0, 0.0), (100.0, -50.0, 20.0)),
    ((-30.0, 415.0, 800.0), (30.0, 0.0, 0.0)),
    ((5.5, 5.5, 5.5), (5.5, 5.5, 5.5)),
])
def test_single_entry_history_stays_within_range(prev, current):
    smoother = InputSmoother(depth=1)
    smoother.observe(Position3D(*prev))
    out = smoother.observe(Position3D(*current))
    for axis, lo_hi in zip(out, zip(prev, current)):
        assert min(lo_hi) <= axis <= max(lo_hi)


def test_smooth_does_not_touch_history():
    smoother = InputSmoother(depth=2)
    smoother.observe(Position3D(1.0, 1.0, 1.0))
    smoother.smooth(Position3D(3.0, 3.0, 3.0))
    assert len(smoother) == 1


def test_reset_clears_history():
    smoother = InputSmoother(depth=2)
    smoother.observe(Position3D(1.0, 1.0, 1.0))
    smoother.reset()
    p = Position3D(9.0, 9.0, 9.0)
    assert smoother.observe(p) == p


def test_invalid_depth():
    with pytest.raises(ValueError):
        InputSmoother(depth=0)
