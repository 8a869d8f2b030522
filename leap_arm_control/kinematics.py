"""
Arm kinematics - joint angles from arm-space positions.

The arm is modelled as a planar two-link chain (shoulder and elbow) mounted
on a rotating base, with a claw whose opening follows the distance between
two fingertips.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from .geometry import Position3D, clamp, distance3d, square, to_degrees

CENTERED_BASE_ANGLE = 90.0

# Slack for acos arguments pushed past +/-1 by rounding at full extension
_ACOS_EPS = 1e-12


class BaseMode(str, Enum):
    """How lateral offset maps onto base rotation."""
    ATAN = "atan"
    COSINE = "cosine"


@dataclass(frozen=True)
class ArmGeometry:
    """Segment lengths of the two-link arm in mm."""
    segment1_length: float = 160.0
    segment2_length: float = 160.0

    def __post_init__(self):
        if not (self.segment1_length > 0 and self.segment2_length > 0):
            raise ValueError(
                f"segment lengths must be positive, got "
                f"{self.segment1_length} and {self.segment2_length}"
            )

    @property
    def reach(self) -> float:
        """Distance from shoulder pivot to claw at full extension."""
        return self.segment1_length + self.segment2_length


class TwoLinkSolution(NamedTuple):
    """Shoulder and elbow angles in degrees (NaN when unreachable)."""
    shoulder: float
    elbow: float

    @property
    def reachable(self) -> bool:
        return math.isfinite(self.shoulder) and math.isfinite(self.elbow)


def _safe_acos(x: float) -> float:
    """acos that returns NaN instead of raising outside [-1, 1]."""
    if not (-1.0 - _ACOS_EPS <= x <= 1.0 + _ACOS_EPS):
        return math.nan
    return math.acos(clamp(x, -1.0, 1.0))


def _safe_div(num: float, den: float) -> float:
    if den == 0:
        return math.nan
    return num / den


def solve_two_link(height: float, depth: float, geometry: ArmGeometry) -> TwoLinkSolution:
    """
    Law-of-cosines IK for a planar two-link arm.

    Args:
        height: Target height above the shoulder pivot (mm)
        depth: Target distance in front of the pivot (mm)
        geometry: Segment lengths

    Returns:
        TwoLinkSolution. Both angles are NaN when the target lies outside
        the arm's reach or on the pivot itself.
    """
    l1 = geometry.segment1_length
    l2 = geometry.segment2_length

    hypotenuse = math.sqrt(square(height) + square(depth))

    # Elevation of the target seen from the pivot
    if depth == 0:
        a = math.pi / 2
    else:
        a = math.atan(height / depth)

    b = _safe_acos(_safe_div(
        square(l1) + square(hypotenuse) - square(l2),
        2 * l1 * hypotenuse,
    ))
    c = _safe_acos((square(l1) + square(l2) - square(hypotenuse)) / (2 * l1 * l2))

    if math.isnan(b) or math.isnan(c):
        return TwoLinkSolution(math.nan, math.nan)

    shoulder = to_degrees(a + b)
    elbow = 180.0 - to_degrees(c)
    return TwoLinkSolution(shoulder, elbow)


def estimate_base_angle(
    lateral: float,
    depth: float,
    mode: BaseMode = BaseMode.ATAN,
    lateral_range: float = 200.0,
) -> float:
    """
    Base rotation for a lateral hand offset.

    Increasing lateral offset always lowers the angle; a centred hand gives
    90 degrees.

    Args:
        lateral: Lateral offset x (mm)
        depth: Depth z (mm)
        mode: ATAN uses the angle subtended at the base, COSINE maps
            x / lateral_range through acos independent of depth
        lateral_range: Offset that maps to 0 / 180 degrees in COSINE mode

    Returns:
        Base angle in degrees.
    """
    if BaseMode(mode) is BaseMode.COSINE:
        ratio = _safe_div(lateral, lateral_range)
        if math.isnan(ratio):
            return math.nan
        return to_degrees(math.acos(clamp(ratio, -1.0, 1.0)))

    if depth == 0:
        return CENTERED_BASE_ANGLE
    return CENTERED_BASE_ANGLE - to_degrees(math.atan(lateral / depth))


@dataclass(frozen=True)
class ClawCalibration:
    """Linear map from fingertip separation (mm) to claw angle."""
    scale: float = 1 / 1.2
    offset: float = 10.0


def estimate_claw_angle(
    tip1: Position3D,
    tip2: Position3D,
    calibration: ClawCalibration = ClawCalibration(),
) -> float:
    """Claw angle from the distance between two fingertips."""
    d = distance3d(tip1, tip2)
    return calibration.scale * d - calibration.offset
