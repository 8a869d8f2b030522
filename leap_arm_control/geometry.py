"""
Geometry primitives shared by the filtering and kinematics code.

All functions are pure and never raise for NaN or infinite input; callers
range-check the final angles instead.
"""

import math
from dataclasses import dataclass
from typing import Iterator

import numpy as np

RAD_TO_DEG = 180.0 / math.pi


@dataclass(frozen=True)
class Position3D:
    """
    A point in sensor (or arm) space.

    Attributes:
        x: Lateral offset in mm
        y: Height in mm
        z: Depth in mm
    """
    x: float
    y: float
    z: float

    def __iter__(self) -> Iterator[float]:
        return iter((self.x, self.y, self.z))

    def as_array(self) -> np.ndarray:
        """Return the position as a float64 numpy vector."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_sequence(cls, values) -> 'Position3D':
        """Build from any 3-element sequence such as a Leap ``palmPosition``."""
        x, y, z = values
        return cls(float(x), float(y), float(z))


def square(x: float) -> float:
    """Square a value."""
    return x * x


def to_degrees(radians: float) -> float:
    """Convert radians to degrees."""
    return radians * RAD_TO_DEG


def distance3d(a: Position3D, b: Position3D) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(b.as_array() - a.as_array()))


def clamp(v: float, lo: float, hi: float) -> float:
    """Clamp value between lo and hi."""
    return max(lo, min(hi, v))


def is_finite(v) -> bool:
    """True for real numbers that are neither NaN nor infinite."""
    if v is None or isinstance(v, bool):
        return False
    try:
        return math.isfinite(v)
    except TypeError:
        return False
