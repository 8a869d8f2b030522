"""
Configuration for the arm controller.

Values come from (highest precedence first) command-line flags, ``ARM_*``
environment variables, and the defaults below, which match the original
160/160 mm arm.

Environment Variables:
    ARM_SMOOTHING_DEPTH: Past frames kept for smoothing (default: 1)
    ARM_MIN_Y / ARM_MAX_Y: Height envelope in mm (default: 0 / 415)
    ARM_MIN_Z / ARM_MAX_Z: Depth envelope in mm (default: 0 / 800)
    ARM_SEGMENT1_MM / ARM_SEGMENT2_MM: Link lengths in mm (default: 160 / 160)
    ARM_BASE_MODE: "atan" or "cosine" (default: atan)
    ARM_BASE_LATERAL_RANGE_MM: Lateral offset mapped to 0/180 in cosine mode (default: 200)
    ARM_CLAW_SCALE / ARM_CLAW_OFFSET: Claw angle = scale * distance - offset
    ARM_BASE_MIN / ARM_BASE_MAX: Accepted base angles (default: 0 / 180)
    ARM_CLAW_MIN / ARM_CLAW_MAX: Accepted claw angles (default: 0 / 100)
    ARM_TICK_MS: Actuator tick period in ms (default: 30)
    ARM_DROPOUT_MS: Hand dropout report threshold in ms (default: 500)
    LEAP_URL: Leap service WebSocket URL (default: ws://127.0.0.1:6437/v6.json)
    ARM_BOARD: "dry-run" or "mqtt" (default: dry-run)
    MQTT_HOST / MQTT_PORT / MQTT_TOPIC: Servo board broker (default: localhost / 1883 / arm/servo)
"""

import argparse
import os
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from .envelope import EnvelopeBounds, SensorOffset
from .kinematics import ArmGeometry, BaseMode, ClawCalibration
from .message import JOINTS, JointRange

BOARD_TYPES = ("dry-run", "mqtt")

DEFAULT_PINS = {"base": 3, "shoulder": 9, "elbow": 10, "claw": 6}
DEFAULT_HOME_POSE = {"base": 90.0, "shoulder": 90.0, "elbow": 45.0, "claw": 40.0}


@dataclass
class ArmConfig:
    """Static controller configuration, loaded once at startup."""
    smoothing_depth: int = 1
    envelope: EnvelopeBounds = field(default_factory=EnvelopeBounds)
    geometry: ArmGeometry = field(default_factory=ArmGeometry)
    sensor_offset: SensorOffset = field(default_factory=SensorOffset)
    base_mode: BaseMode = BaseMode.ATAN
    base_lateral_range: float = 200.0
    claw: ClawCalibration = field(default_factory=ClawCalibration)
    base_range: JointRange = field(default_factory=lambda: JointRange(0.0, 180.0))
    claw_range: JointRange = field(default_factory=lambda: JointRange(0.0, 100.0))

    # Control loop
    tick_ms: int = 30
    dropout_timeout_ms: int = 500
    log_every: int = 10

    # Collaborators
    leap_url: str = "ws://127.0.0.1:6437/v6.json"
    board: str = "dry-run"
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "arm/servo"
    pins: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_PINS))
    home_pose: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_HOME_POSE))

    def validate(self) -> 'ArmConfig':
        """
        Check invariants not already enforced by the nested types.

        Raises:
            ValueError: On any invalid option.
        """
        if self.smoothing_depth < 1:
            raise ValueError(f"smoothing_depth must be >= 1, got {self.smoothing_depth}")
        if self.tick_ms <= 0:
            raise ValueError(f"tick_ms must be positive, got {self.tick_ms}")
        if self.dropout_timeout_ms < 0:
            raise ValueError(f"dropout_timeout_ms must be >= 0, got {self.dropout_timeout_ms}")
        if self.base_lateral_range <= 0:
            raise ValueError(f"base_lateral_range must be positive, got {self.base_lateral_range}")
        if self.board not in BOARD_TYPES:
            raise ValueError(f"board must be one of {BOARD_TYPES}, got {self.board!r}")
        if not 0 < self.mqtt_port < 65536:
            raise ValueError(f"mqtt_port out of range: {self.mqtt_port}")
        for name in ("pins", "home_pose"):
            missing = set(JOINTS) - set(getattr(self, name))
            if missing:
                raise ValueError(f"{name} missing joints: {sorted(missing)}")
        self.base_mode = BaseMode(self.base_mode)
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ArmConfig':
        """Build a config from environment variables over the defaults."""
        env = os.environ if environ is None else environ
        d = cls()

        def _f(key: str, default: float) -> float:
            return float(env.get(key, default))

        def _i(key: str, default: int) -> int:
            return int(env.get(key, default))

        return cls(
            smoothing_depth=_i("ARM_SMOOTHING_DEPTH", d.smoothing_depth),
            envelope=EnvelopeBounds(
                min_y=_f("ARM_MIN_Y", d.envelope.min_y),
                max_y=_f("ARM_MAX_Y", d.envelope.max_y),
                min_z=_f("ARM_MIN_Z", d.envelope.min_z),
                max_z=_f("ARM_MAX_Z", d.envelope.max_z),
            ),
            geometry=ArmGeometry(
                segment1_length=_f("ARM_SEGMENT1_MM", d.geometry.segment1_length),
                segment2_length=_f("ARM_SEGMENT2_MM", d.geometry.segment2_length),
            ),
            base_mode=BaseMode(env.get("ARM_BASE_MODE", d.base_mode.value).strip().lower()),
            base_lateral_range=_f("ARM_BASE_LATERAL_RANGE_MM", d.base_lateral_range),
            claw=ClawCalibration(
                scale=_f("ARM_CLAW_SCALE", d.claw.scale),
                offset=_f("ARM_CLAW_OFFSET", d.claw.offset),
            ),
            base_range=JointRange(
                _f("ARM_BASE_MIN", d.base_range.minimum),
                _f("ARM_BASE_MAX", d.base_range.maximum),
            ),
            claw_range=JointRange(
                _f("ARM_CLAW_MIN", d.claw_range.minimum),
                _f("ARM_CLAW_MAX", d.claw_range.maximum),
            ),
            tick_ms=_i("ARM_TICK_MS", d.tick_ms),
            dropout_timeout_ms=_i("ARM_DROPOUT_MS", d.dropout_timeout_ms),
            leap_url=env.get("LEAP_URL", d.leap_url),
            board=env.get("ARM_BOARD", d.board).strip().lower(),
            mqtt_host=env.get("MQTT_HOST", d.mqtt_host),
            mqtt_port=_i("MQTT_PORT", d.mqtt_port),
            mqtt_topic=env.get("MQTT_TOPIC", d.mqtt_topic),
        ).validate()

    def with_args(self, args: argparse.Namespace) -> 'ArmConfig':
        """Override with any command-line flags that were given."""
        updates = {}
        for name in ("smoothing_depth", "tick_ms", "leap_url", "board",
                     "mqtt_host", "mqtt_port", "log_every"):
            value = getattr(args, name, None)
            if value is not None:
                updates[name] = value
        if getattr(args, "base_mode", None) is not None:
            updates["base_mode"] = BaseMode(args.base_mode)
        if getattr(args, "segments", None) is not None:
            updates["geometry"] = ArmGeometry(*args.segments)
        return replace(self, **updates).validate()


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the config flags. Unset flags keep the environment value."""
    parser.add_argument(
        "--leap-url",
        type=str,
        default=None,
        help="Leap service WebSocket URL",
    )
    parser.add_argument(
        "--board",
        choices=BOARD_TYPES,
        default=None,
        help="Servo board bridge (dry-run only logs commands)",
    )
    parser.add_argument(
        "--mqtt-host",
        type=str,
        default=None,
        help="MQTT broker host for the servo board",
    )
    parser.add_argument(
        "--mqtt-port",
        type=int,
        default=None,
        help="MQTT broker port",
    )
    parser.add_argument(
        "--smoothing-depth",
        type=int,
        default=None,
        help="Number of past frames used for smoothing",
    )
    parser.add_argument(
        "--base-mode",
        choices=[m.value for m in BaseMode],
        default=None,
        help="Base angle mapping",
    )
    parser.add_argument(
        "--segments",
        type=float,
        nargs=2,
        metavar=("L1", "L2"),
        default=None,
        help="Arm segment lengths in mm",
    )
    parser.add_argument(
        "--tick-ms",
        type=int,
        default=None,
        help="Servo update period in ms",
    )
    parser.add_argument(
        "--log-every",
        type=int,
        default=None,
        help="Log computed angles every N servo ticks (0 disables)",
    )
