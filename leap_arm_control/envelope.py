"""
Safe operating envelope and sensor-to-arm coordinate offset.
"""

from dataclasses import dataclass

from .geometry import Position3D, clamp


@dataclass(frozen=True)
class EnvelopeBounds:
    """
    Safe input box in arm-space millimetres.

    Only height (y) and depth (z) are bounded. Lateral (x) is limited
    indirectly by the base estimator and the base range check.
    """
    min_y: float = 0.0
    max_y: float = 415.0
    min_z: float = 0.0
    max_z: float = 800.0

    def __post_init__(self):
        if self.min_y > self.max_y:
            raise ValueError(f"min_y ({self.min_y}) > max_y ({self.max_y})")
        if self.min_z > self.max_z:
            raise ValueError(f"min_z ({self.min_z}) > max_z ({self.max_z})")


@dataclass(frozen=True)
class SensorOffset:
    """
    Shift from Leap sensor space into the arm's working frame.

    Height is lowered by ``y_offset`` and depth is mirrored around
    ``z_origin`` so that reaching away from the user is positive depth.
    """
    y_offset: float = 150.0
    z_origin: float = 200.0


def clamp_position(position: Position3D, bounds: EnvelopeBounds) -> Position3D:
    """
    Saturate a position to the envelope.

    Args:
        position: Smoothed arm-space position
        bounds: Envelope to clamp to

    Returns:
        New position with y and z pinned into range, x unchanged.
    """
    return Position3D(
        position.x,
        clamp(position.y, bounds.min_y, bounds.max_y),
        clamp(position.z, bounds.min_z, bounds.max_z),
    )


def to_arm_space(position: Position3D, offset: SensorOffset) -> Position3D:
    """Apply the sensor offset to a raw palm position."""
    return Position3D(
        position.x,
        position.y - offset.y_offset,
        offset.z_origin - position.z,
    )
