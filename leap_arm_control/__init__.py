"""
Leap Arm Control - Hand-tracked control of a 4-DOF servo robot arm.

This package reads palm and fingertip positions from a Leap Motion service,
runs them through smoothing, envelope clamping and two-link inverse
kinematics, and drives base/shoulder/elbow/claw servos through a board
bridge on a fixed control tick.
"""

__version__ = "1.0.0"
