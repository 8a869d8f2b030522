#!/usr/bin/env python3
"""
Leap Arm Control - Main Entry Point

Reads hand frames from the Leap Motion service, turns them into joint
angles and drives the arm's servos on a fixed tick.

Usage:
    python -m leap_arm_control.main
    python -m leap_arm_control.main --board mqtt --mqtt-host 192.168.1.20
    python -m leap_arm_control.main --smoothing-depth 3 --base-mode cosine --debug
"""

import argparse
import asyncio
import logging
import math
import signal
import sys
import time
from typing import Optional

from .config import ArmConfig, add_config_arguments
from .frame_gate import SensorFrame
from .leap_client import LeapClient
from .message import CommandValidator, JointAngles, JointCommand
from .pipeline import ArmPipeline
from .servo_bridge import AsyncServoBridge, ServoBoard, create_board

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_angles(angles: JointAngles) -> str:
    """Angles in the ``Base: 90  Shoulder: 102 ...`` console layout."""
    def _f(v: Optional[float]) -> str:
        if v is None:
            return "-"
        if not math.isfinite(v):
            return "NaN"
        return str(math.floor(v))

    return (
        f"Base: {_f(angles.base)}\tShoulder: {_f(angles.shoulder)}"
        f"\tElbow: {_f(angles.elbow)}\tClaw: {_f(angles.claw)}"
    )


class ArmControlClient:
    """
    Main controller that integrates all components:
    - Leap Motion frame stream
    - Frame gate, smoothing, envelope and kinematics pipeline
    - Command validation
    - Servo board bridge

    The Leap frame callback writes the latest angles; the servo tick reads
    them. Both run on the same event loop.
    """

    def __init__(
        self,
        config: ArmConfig,
        board: Optional[ServoBoard] = None,
        leap_client: Optional[LeapClient] = None,
    ):
        """
        Initialize the controller.

        Args:
            config: Controller configuration
            board: Servo board; built from the config if omitted
            leap_client: Leap client; built from the config if omitted
        """
        self.config = config

        # Components
        self.pipeline = ArmPipeline(config)
        self.validator = CommandValidator(
            base_range=config.base_range,
            claw_range=config.claw_range,
        )
        self.board = AsyncServoBridge(board if board is not None else create_board(config))
        self.leap = leap_client if leap_client is not None else LeapClient(
            url=config.leap_url,
            on_frame=self.on_frame,
            on_connected=self._on_connected,
            on_disconnected=self._on_disconnected,
        )

        # State
        self._started = False
        self._running = False
        self._ticks = 0
        self._validated_version: Optional[int] = None
        self._command = JointCommand()

    async def start(self) -> None:
        """Bring up the board, move home and start reading frames."""
        logger.info("Starting Leap Arm Control...")

        if not await self.board.start():
            await self.board.stop()
            raise RuntimeError("Failed to start servo board")

        await self.board.move_all(self.config.home_pose)
        logger.info(f"Moved to home pose {self.config.home_pose}")

        await self.leap.start()
        self._started = True
        self._running = True
        logger.info("Leap Arm Control started")

    async def stop(self) -> None:
        """Stop reading frames and release the board."""
        self._running = False
        if not self._started:
            return
        self._started = False
        logger.info("Stopping Leap Arm Control...")

        await self.leap.stop()
        await self.board.stop()

        logger.info(f"Validator stats: {self.validator.get_stats()}")
        logger.info("Leap Arm Control stopped")

    def request_stop(self) -> None:
        """Ask the servo loop to exit after the current tick."""
        self._running = False

    async def run(self) -> None:
        """Servo tick loop."""
        target_dt = self.config.tick_ms / 1000.0

        while self._running:
            loop_start = time.monotonic()

            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error in servo loop: {e}")

            elapsed = time.monotonic() - loop_start
            if elapsed < target_dt:
                await asyncio.sleep(target_dt - elapsed)

    async def tick(self) -> JointCommand:
        """Validate the latest angles and send the valid joints."""
        # Held angles are validated once per new frame and resent as-is
        version = self.pipeline.cell.version
        angles = self.pipeline.cell.snapshot()
        if version != self._validated_version:
            self._command = self.validator.validate(angles)
            self._validated_version = version
            if self._command.empty:
                logger.debug("No valid joints in latest angles")
        command = self._command

        for joint, angle in command.items():
            await self.board.move(joint, angle)

        self._ticks += 1
        log_every = self.config.log_every
        if log_every > 0 and self._ticks % log_every == 0:
            line = format_angles(angles)
            age = angles.age_ms()
            if age is not None:
                line += f"\tAge: {age}ms"
            logger.info(line)

        return command

    def on_frame(self, frame: SensorFrame) -> None:
        """Leap frame callback."""
        try:
            self.pipeline.process_frame(frame)
        except Exception as e:
            logger.error(f"Error processing frame {frame.frame_id}: {e}")

    async def _on_connected(self) -> None:
        """Callback when the Leap service connects."""
        logger.info("Leap service connected")

    async def _on_disconnected(self) -> None:
        """Callback when the Leap service disconnects."""
        logger.warning("Leap service disconnected, holding last angles")


async def main_async(config: ArmConfig) -> None:
    """Async main entry point."""
    client = ArmControlClient(config)

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown signal received")
        client.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await client.start()
        await client.run()
    except RuntimeError as e:
        logger.error(f"Controller error: {e}")
    finally:
        await client.stop()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Leap Motion robot arm controller",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_config_arguments(parser)
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = ArmConfig.from_env().with_args(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    try:
        asyncio.run(main_async(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
