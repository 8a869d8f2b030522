"""
Arm Pipeline - per-frame joint angle computation.

Owns everything the frame callback mutates: smoothing history, the frame
gate and the shared cell holding the latest angles read by the servo tick.
"""

import logging
import threading
import time
from typing import Optional

from .config import ArmConfig
from .envelope import clamp_position, to_arm_space
from .frame_gate import FrameGate, SensorFrame
from .geometry import Position3D
from .kinematics import estimate_base_angle, estimate_claw_angle, solve_two_link
from .message import JointAngles
from .smoothing import InputSmoother

logger = logging.getLogger(__name__)


class AngleCell:
    """
    Single-writer/single-reader cell holding the latest JointAngles.

    Writers replace the whole immutable snapshot under a lock, so a reader
    on another thread never sees a partially updated set of angles.
    """

    def __init__(self, initial: Optional[JointAngles] = None):
        self._lock = threading.Lock()
        self._value = initial if initial is not None else JointAngles()
        self._version = 0

    def store(self, angles: JointAngles) -> None:
        with self._lock:
            self._value = angles
            self._version += 1

    def snapshot(self) -> JointAngles:
        with self._lock:
            return self._value

    @property
    def version(self) -> int:
        """Number of stores so far."""
        with self._lock:
            return self._version


class ArmPipeline:
    """
    Frame-to-angles pipeline for one controller instance.

    Palm positions are offset into arm space, smoothed, clamped to the
    envelope and solved into base/shoulder/elbow. The claw follows the raw
    fingertip distance. Joints whose inputs are missing from a frame keep
    their previous values.
    """

    def __init__(self, config: ArmConfig, cell: Optional[AngleCell] = None):
        """
        Initialize the pipeline.

        Args:
            config: Static controller configuration
            cell: Shared angle cell; a new one is created if omitted
        """
        self.config = config
        self.cell = cell if cell is not None else AngleCell()
        self.smoother = InputSmoother(config.smoothing_depth)
        self.frame_gate = FrameGate(dropout_timeout_ms=config.dropout_timeout_ms)

        self.last_target: Optional[Position3D] = None

    def process_frame(self, frame: SensorFrame) -> JointAngles:
        """
        Run one sensor frame through the pipeline.

        Args:
            frame: Frame delivered by the sensor

        Returns:
            The JointAngles snapshot now held by the cell.
        """
        result = self.frame_gate.validate(frame)
        angles = self.cell.snapshot()
        updates = {}

        if result.hand_ok:
            target = self.compute_target(result.palm)
            self.last_target = target
            updates.update(self.arm_angles(target))
        elif self.frame_gate.should_report_dropout():
            logger.debug(f"Dropout stats: {self.frame_gate.get_stats()}")

        if result.fingers_ok:
            tip1, tip2 = result.fingertips[:2]
            updates["claw"] = estimate_claw_angle(tip1, tip2, self.config.claw)

        if not updates:
            return angles

        angles = angles.with_updates(ts_ms=int(time.monotonic() * 1000), **updates)
        self.cell.store(angles)
        return angles

    def compute_target(self, palm: Position3D) -> Position3D:
        """Offset, smooth and clamp a raw palm position."""
        raw = to_arm_space(palm, self.config.sensor_offset)
        smoothed = self.smoother.observe(raw)
        return clamp_position(smoothed, self.config.envelope)

    def arm_angles(self, target: Position3D) -> dict:
        """Base, shoulder and elbow angles for a clamped target."""
        solution = solve_two_link(target.y, target.z, self.config.geometry)
        base = estimate_base_angle(
            target.x,
            target.z,
            mode=self.config.base_mode,
            lateral_range=self.config.base_lateral_range,
        )
        if not solution.reachable:
            logger.debug(
                f"Target unreachable: y={target.y:.1f} z={target.z:.1f} "
                f"(reach {self.config.geometry.reach:.0f}mm)"
            )
        return {
            "base": base,
            "shoulder": solution.shoulder,
            "elbow": solution.elbow,
        }
