import math

import pytest

from leap_arm_control.message import (
    JOINTS,
    CommandValidator,
    JointAngles,
    JointCommand,
    JointRange,
)


@pytest.fixture
def validator():
    return CommandValidator(
        base_range=JointRange(0.0, 180.0),
        claw_range=JointRange(0.0, 100.0),
    )


@pytest.mark.parametrize("joint", JOINTS)
@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_rejected_for_every_joint(validator, joint, bad):
    angles = JointAngles(base=90.0, shoulder=90.0, elbow=45.0, claw=40.0).with_updates(**{joint: bad})
    command = validator.validate(angles)
    assert getattr(command, joint) is None
    for other in JOINTS:
        if other != joint:
            assert getattr(command, other) is not None


def test_in_range_values_pass_unchanged(validator):
    angles = JointAngles(base=12.25, shoulder=102.97, elbow=115.94, claw=55.5)
    command = validator.validate(angles)
    assert command == JointCommand(base=12.25, shoulder=102.97, elbow=115.94, claw=55.5)


def test_range_bounds_are_inclusive(validator):
    command = validator.validate(JointAngles(base=0.0, shoulder=0.0, elbow=0.0, claw=100.0))
    assert command.base == 0.0
    assert command.claw == 100.0


def test_out_of_range_base_and_claw_dropped_not_clamped(validator):
    command = validator.validate(
        JointAngles(base=181.0, shoulder=90.0, elbow=45.0, claw=10 / 1.2 - 10)
    )
    assert command.base is None
    assert command.claw is None
    assert command.shoulder == 90.0


def test_shoulder_and_elbow_not_range_checked(validator):
    command = validator.validate(JointAngles(base=90.0, shoulder=500.0, elbow=-20.0, claw=50.0))
    assert command.shoulder == 500.0
    assert command.elbow == -20.0


def test_missing_angles_not_sent(validator):
    command = validator.validate(JointAngles(claw=30.0))
    assert list(command.items()) == [("claw", 30.0)]
    assert validator.get_stats()["missing"]["base"] == 1


def test_non_numeric_rejected(validator):
    valid, reason = validator.check("base", "90")
    assert not valid
    assert reason == "not_numeric"


def test_stats(validator):
    validator.validate(JointAngles(base=90.0, shoulder=math.nan, elbow=math.nan, claw=500.0))
    stats = validator.get_stats()
    assert stats["accepted"] == 1
    assert stats["dropped"] == 3
    assert stats["not_finite"]["shoulder"] == 1
    assert stats["out_of_range"]["claw"] == 1
    assert stats["drop_rate"] == pytest.approx(0.75)

    validator.reset_stats()
    assert validator.get_stats()["dropped"] == 0


def test_joint_command_items_order_and_empty():
    command = JointCommand(claw=1.0, base=2.0)
    assert list(command.items()) == [("base", 2.0), ("claw", 1.0)]
    assert not command.empty
    assert JointCommand().empty


def test_joint_range_invariant():
    with pytest.raises(ValueError):
        JointRange(10.0, 0.0)


def test_joint_angles_get_unknown_joint():
    with pytest.raises(KeyError):
        JointAngles().get("wrist")



def test_joint_angles_age():
    assert JointAngles(base=90.0).age_ms() is None
    assert JointAngles(base=90.0, ts_ms=1000).age_ms(now_ms=1250) == 250
