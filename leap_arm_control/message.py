"""
Joint angle schema and command validation.

Defines the per-frame joint angle snapshot produced by the pipeline and
validates it before anything is handed to the servo board.
"""

import logging
import math
import numbers
import time
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

JOINTS = ("base", "shoulder", "elbow", "claw")


@dataclass(frozen=True)
class JointAngles:
    """
    Latest computed joint angles in degrees.

    Attributes:
        base: Base rotation
        shoulder: Shoulder angle from the IK solver
        elbow: Elbow angle from the IK solver
        claw: Claw aperture
        ts_ms: Timestamp in milliseconds (monotonic) of the producing frame

    A value of None means the joint has not been computed yet.
    """
    base: Optional[float] = None
    shoulder: Optional[float] = None
    elbow: Optional[float] = None
    claw: Optional[float] = None
    ts_ms: int = 0

    def get(self, joint: str) -> Optional[float]:
        """Angle for a joint name."""
        if joint not in JOINTS:
            raise KeyError(joint)
        return getattr(self, joint)

    def with_updates(self, **angles) -> 'JointAngles':
        """Copy with some joints replaced."""
        return replace(self, **angles)

    def age_ms(self, now_ms: Optional[int] = None) -> Optional[int]:
        """Milliseconds since the producing frame, or None if never computed."""
        if not self.ts_ms:
            return None
        if now_ms is None:
            now_ms = int(time.monotonic() * 1000)
        return now_ms - self.ts_ms


@dataclass(frozen=True)
class JointCommand:
    """
    Validated subset of a JointAngles snapshot.

    Joints set to None are not sent to the board this tick, so the servo
    keeps its previous position.
    """
    base: Optional[float] = None
    shoulder: Optional[float] = None
    elbow: Optional[float] = None
    claw: Optional[float] = None

    def items(self) -> Iterator[Tuple[str, float]]:
        """Yield (joint, angle) for every joint that passed validation."""
        for joint in JOINTS:
            angle = getattr(self, joint)
            if angle is not None:
                yield joint, angle

    @property
    def empty(self) -> bool:
        return all(getattr(self, j) is None for j in JOINTS)


@dataclass(frozen=True)
class JointRange:
    """Inclusive angle range in degrees."""
    minimum: float
    maximum: float

    def __post_init__(self):
        if self.minimum > self.maximum:
            raise ValueError(f"range minimum {self.minimum} > maximum {self.maximum}")

    def contains(self, angle: float) -> bool:
        return self.minimum <= angle <= self.maximum


@dataclass
class ValidatorStats:
    """Counters kept by CommandValidator."""
    accepted: Dict[str, int] = field(default_factory=lambda: {j: 0 for j in JOINTS})
    not_finite: Dict[str, int] = field(default_factory=lambda: {j: 0 for j in JOINTS})
    out_of_range: Dict[str, int] = field(default_factory=lambda: {j: 0 for j in JOINTS})
    missing: Dict[str, int] = field(default_factory=lambda: {j: 0 for j in JOINTS})


class CommandValidator:
    """
    Validates joint angles before dispatch.

    Rules:
    - None, NaN or infinite angles are dropped for every joint
    - base and claw outside their range are dropped, never clamped
    - shoulder and elbow pass through once finite; their range is set by
      the arm geometry upstream
    """

    def __init__(
        self,
        base_range: JointRange = JointRange(0.0, 180.0),
        claw_range: JointRange = JointRange(0.0, 100.0),
    ):
        """
        Initialize validator.

        Args:
            base_range: Accepted base angles (degrees)
            claw_range: Accepted claw angles (degrees)
        """
        self.ranges: Dict[str, JointRange] = {
            "base": base_range,
            "claw": claw_range,
        }
        self._stats = ValidatorStats()

    def check(self, joint: str, angle: Optional[float]) -> Tuple[bool, str]:
        """
        Validate a single joint angle.

        Returns:
            Tuple of (is_valid, reason_string)
        """
        if angle is None:
            self._stats.missing[joint] += 1
            return False, "missing"

        if isinstance(angle, bool) or not isinstance(angle, numbers.Real):
            self._stats.not_finite[joint] += 1
            logger.warning(f"Dropping {joint}: {angle!r} is not numeric")
            return False, "not_numeric"

        if not math.isfinite(angle):
            # Unreachable targets land here every frame; keep it quiet
            self._stats.not_finite[joint] += 1
            logger.debug(f"Dropping {joint}: {angle} is not finite")
            return False, "not_finite"

        joint_range = self.ranges.get(joint)
        if joint_range is not None and not joint_range.contains(angle):
            self._stats.out_of_range[joint] += 1
            logger.warning(
                f"Dropping {joint}: {angle:.1f} outside "
                f"[{joint_range.minimum}, {joint_range.maximum}]"
            )
            return False, "out_of_range"

        self._stats.accepted[joint] += 1
        return True, "ok"

    def validate(self, angles: JointAngles) -> JointCommand:
        """
        Validate all four joints.

        Args:
            angles: Latest computed angles

        Returns:
            JointCommand holding the angles that may be sent this tick.
        """
        passed = {}
        for joint in JOINTS:
            angle = angles.get(joint)
            valid, _ = self.check(joint, angle)
            passed[joint] = float(angle) if valid else None
        return JointCommand(**passed)

    def get_stats(self) -> dict:
        """Get validation statistics."""
        accepted = sum(self._stats.accepted.values())
        dropped = (
            sum(self._stats.not_finite.values())
            + sum(self._stats.out_of_range.values())
        )
        total = accepted + dropped
        return {
            "accepted": accepted,
            "dropped": dropped,
            "drop_rate": dropped / total if total > 0 else 0.0,
            "not_finite": dict(self._stats.not_finite),
            "out_of_range": dict(self._stats.out_of_range),
            "missing": dict(self._stats.missing),
        }

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self._stats = ValidatorStats()

