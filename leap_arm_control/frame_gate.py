"""
Sensor Frame Gate - Validates tracking frames before processing.

Palm and fingertip positions that are missing or non-finite must not reach
the smoother or the claw estimator. The gate also tracks how long the hand
has been out of view so dropouts can be reported.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .geometry import Position3D, is_finite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorFrame:
    """
    One tracking frame from the sensor.

    Attributes:
        frame_id: Sensor frame counter
        timestamp: Sensor timestamp in microseconds
        palm: Palm position of the first tracked hand, if any
        fingertips: Tip positions of tracked fingers, most confident first
    """
    frame_id: int = 0
    timestamp: int = 0
    palm: Optional[Position3D] = None
    fingertips: Tuple[Position3D, ...] = field(default_factory=tuple)

    @classmethod
    def from_leap(cls, data: Dict[str, Any]) -> 'SensorFrame':
        """
        Build a frame from a decoded Leap service JSON frame.

        Only ``hands[0].palmPosition`` and ``pointables[i].tipPosition``
        are used.
        """
        hands = data.get("hands") or []
        pointables = data.get("pointables") or []

        palm = None
        if hands and hands[0].get("palmPosition") is not None:
            palm = Position3D.from_sequence(hands[0]["palmPosition"])

        tips = tuple(
            Position3D.from_sequence(p["tipPosition"])
            for p in pointables
            if p.get("tipPosition") is not None
        )
        return cls(
            frame_id=int(data.get("id", 0)),
            timestamp=int(data.get("timestamp", 0)),
            palm=palm,
            fingertips=tips,
        )


@dataclass
class FrameValidationResult:
    """Result of frame validation."""
    hand_ok: bool
    fingers_ok: bool
    reason: str
    palm: Optional[Position3D] = None
    fingertips: Tuple[Position3D, ...] = ()


def _finite(p: Position3D) -> bool:
    return all(is_finite(v) for v in p)


class FrameGate:
    """
    Quality gate for sensor frames.

    Validates:
    - A palm position is present and finite
    - At least two finite fingertip positions are present

    Tracks consecutive frames without a usable hand and reports a dropout
    once it exceeds the timeout threshold.
    """

    def __init__(self, dropout_timeout_ms: int = 500):
        """
        Initialize FrameGate.

        Args:
            dropout_timeout_ms: Time in ms without a usable hand after which
                a dropout is reported.
        """
        self.dropout_timeout_ms = dropout_timeout_ms

        # Tracking state
        self._dropout_start: Optional[float] = None
        self._dropout_reported: bool = False
        self._total_frames: int = 0
        self._hand_frames: int = 0
        self._finger_frames: int = 0
        self._rejected_points: int = 0

    def validate(self, frame: SensorFrame) -> FrameValidationResult:
        """
        Validate a frame from the sensor.

        Args:
            frame: Parsed sensor frame

        Returns:
            FrameValidationResult with the usable palm and first two usable
            fingertips.
        """
        now = time.monotonic()
        self._total_frames += 1

        palm = frame.palm
        if palm is not None and not _finite(palm):
            self._rejected_points += 1
            logger.warning(f"Frame {frame.frame_id}: non-finite palm {palm}")
            palm = None

        tips = []
        for tip in frame.fingertips:
            if _finite(tip):
                tips.append(tip)
            else:
                self._rejected_points += 1
        fingers_ok = len(tips) >= 2
        if fingers_ok:
            self._finger_frames += 1

        if palm is None:
            self._mark_dropout(now)
            return FrameValidationResult(
                False, fingers_ok, "no_hand", None, tuple(tips[:2])
            )

        self._mark_hand()
        reason = "ok" if fingers_ok else "few_fingers"
        return FrameValidationResult(True, fingers_ok, reason, palm, tuple(tips[:2]))

    def _mark_dropout(self, now: float) -> None:
        """Start dropout timing if not already running."""
        if self._dropout_start is None:
            self._dropout_start = now
            self._dropout_reported = False
            logger.debug("Hand lost, starting dropout tracking")

    def _mark_hand(self) -> None:
        """Reset dropout tracking on a usable hand."""
        self._hand_frames += 1
        if self._dropout_start is not None and self._dropout_reported:
            logger.info("Hand reacquired")
        self._dropout_start = None
        self._dropout_reported = False

    def should_report_dropout(self) -> bool:
        """
        Check if the current dropout has just exceeded the timeout.

        Returns:
            True once per dropout, when the hand has been missing for at
            least ``dropout_timeout_ms``.
        """
        if self._dropout_start is None:
            return False

        elapsed_ms = (time.monotonic() - self._dropout_start) * 1000

        if elapsed_ms >= self.dropout_timeout_ms and not self._dropout_reported:
            self._dropout_reported = True
            logger.warning(
                f"Hand dropout: {elapsed_ms:.0f}ms without a tracked palm, holding last angles"
            )
            return True

        return False

    def get_dropout_duration_ms(self) -> float:
        """Get the duration of the current dropout in milliseconds."""
        if self._dropout_start is None:
            return 0.0
        return (time.monotonic() - self._dropout_start) * 1000

    def get_stats(self) -> dict:
        """Get validation statistics."""
        total = self._total_frames
        return {
            "total_frames": total,
            "hand_frames": self._hand_frames,
            "finger_frames": self._finger_frames,
            "rejected_points": self._rejected_points,
            "hand_rate": self._hand_frames / total if total > 0 else 0.0,
            "current_dropout_ms": self.get_dropout_duration_ms(),
        }
