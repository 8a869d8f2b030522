"""
Input smoothing for palm positions.

Keeps a short rolling history of raw positions and blends each new sample
against it before the position reaches the envelope clamp and IK solver.
"""

import logging
from collections import deque
from typing import Deque, Tuple

from .geometry import Position3D

logger = logging.getLogger(__name__)


class InputSmoother:
    """
    Rolling-history smoother.

    Each history entry contributes ``current + entry`` to a per-axis sum that
    is divided by ``len(history) + 1``, so the current sample gains weight as
    the history grows. The history always stores the raw input, most recent
    first, never the smoothed output.
    """

    def __init__(self, depth: int = 1):
        """
        Initialize InputSmoother.

        Args:
            depth: Maximum number of past raw positions kept. Larger values
                add lag and reduce jitter.
        """
        if depth < 1:
            raise ValueError(f"smoothing depth must be >= 1, got {depth}")
        self.depth = depth
        self._history: Deque[Position3D] = deque(maxlen=depth)

    def observe(self, position: Position3D) -> Position3D:
        """
        Smooth one raw position and record it in the history.

        Args:
            position: Raw position for the current frame

        Returns:
            Smoothed position. The first observation is returned unchanged.
        """
        smoothed = self.smooth(position)
        # appendleft on a bounded deque evicts from the right (oldest)
        self._history.appendleft(position)
        return smoothed

    def smooth(self, current: Position3D) -> Position3D:
        """Compute the smoothed value without touching the history."""
        if not self._history:
            return current

        x = y = z = 0.0
        periods = len(self._history)
        for entry in self._history:
            x += current.x + entry.x
            y += current.y + entry.y
            z += current.z + entry.z

        periods += 1  # current frame
        return Position3D(x / periods, y / periods, z / periods)

    @property
    def history(self) -> Tuple[Position3D, ...]:
        """Snapshot of the history, most recent first."""
        return tuple(self._history)

    def reset(self) -> None:
        """Drop all history."""
        self._history.clear()
        logger.debug("Smoothing history cleared")

    def __len__(self) -> int:
        return len(self._history)
