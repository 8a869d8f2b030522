import math
import threading

import pytest

from leap_arm_control.config import ArmConfig
from leap_arm_control.geometry import Position3D
from leap_arm_control.message import JointAngles
from leap_arm_control.pipeline import AngleCell, ArmPipeline

# Sensor-space palm that lands on (x=0, y=300, z=300) in arm space
PALM = (0.0, 450.0, -100.0)
TIPS = [(0.0, 0.0, 0.0), (0.0, 0.0, 60.0)]


def test_reference_frame(config, make_frame):
    pipeline = ArmPipeline(config)
    angles = pipeline.process_frame(make_frame(PALM, TIPS))

    assert pipeline.last_target == Position3D(0.0, 300.0, 300.0)
    assert angles.base == pytest.approx(90.0)
    assert angles.shoulder == pytest.approx(102.97, abs=0.02)
    assert angles.elbow == pytest.approx(115.94, abs=0.02)
    assert angles.claw == pytest.approx(60 / 1.2 - 10)
    assert pipeline.cell.snapshot() == angles


def test_target_clamped_to_envelope(config, make_frame):
    pipeline = ArmPipeline(config)
    pipeline.process_frame(make_frame((25.0, 2000.0, 1000.0)))
    assert pipeline.last_target == Position3D(25.0, 415.0, 0.0)


def test_smoothing_uses_raw_history(config, make_frame):
    pipeline = ArmPipeline(config)
    pipeline.process_frame(make_frame((0.0, 250.0, 0.0)))
    pipeline.process_frame(make_frame((0.0, 350.0, 0.0)))
    assert pipeline.last_target.y == pytest.approx(150.0)
    assert pipeline.smoother.history[0] == Position3D(0.0, 200.0, 200.0)


def test_claw_held_when_fingers_missing(config, make_frame):
    pipeline = ArmPipeline(config)
    first = pipeline.process_frame(make_frame(PALM, TIPS))
    second = pipeline.process_frame(make_frame(PALM, TIPS[:1], frame_id=2))
    assert second.claw == first.claw


def test_claw_updates_without_hand(config, make_frame):
    pipeline = ArmPipeline(config)
    angles = pipeline.process_frame(make_frame(None, [(0, 0, 0), (0, 0, 24)]))
    assert angles.claw == pytest.approx(24 / 1.2 - 10)
    assert angles.base is None
    assert angles.shoulder is None


def test_dropout_holds_previous_angles(config, make_frame):
    pipeline = ArmPipeline(config)
    first = pipeline.process_frame(make_frame(PALM, TIPS))
    version = pipeline.cell.version

    held = pipeline.process_frame(make_frame(None, frame_id=2))
    assert held == first
    assert pipeline.cell.version == version


def test_unreachable_target_yields_nan(make_frame):
    pipeline = ArmPipeline(ArmConfig())  # 160/160 mm arm
    angles = pipeline.process_frame(make_frame(PALM))
    assert math.isnan(angles.shoulder)
    assert math.isnan(angles.elbow)
    assert angles.base == pytest.approx(90.0)


def test_angle_cell_snapshots_whole_values():
    cell = AngleCell()
    assert cell.snapshot() == JointAngles()

    def writer():
        for i in range(1000):
            cell.store(JointAngles(base=float(i), shoulder=float(i), elbow=float(i), claw=float(i)))

    t = threading.Thread(target=writer)
    t.start()
    for _ in range(1000):
        snap = cell.snapshot()
        if snap.base is not None:
            assert snap.base == snap.shoulder == snap.elbow == snap.claw
    t.join()
    assert cell.version == 1000
