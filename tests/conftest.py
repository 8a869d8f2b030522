import pytest

from leap_arm_control.config import ArmConfig
from leap_arm_control.frame_gate import SensorFrame
from leap_arm_control.geometry import Position3D
from leap_arm_control.kinematics import ArmGeometry


@pytest.fixture
def config():
    """Default config on a 400/400 mm arm so the reference target is reachable."""
    return ArmConfig(geometry=ArmGeometry(400.0, 400.0), dropout_timeout_ms=0).validate()


def leap_frame(palm=None, tips=(), frame_id=1):
    """SensorFrame from plain tuples in sensor space."""
    return SensorFrame(
        frame_id=frame_id,
        timestamp=frame_id * 1000,
        palm=Position3D(*palm) if palm is not None else None,
        fingertips=tuple(Position3D(*t) for t in tips),
    )


@pytest.fixture
def make_frame():
    return leap_frame
