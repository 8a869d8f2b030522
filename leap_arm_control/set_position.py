#!/usr/bin/env python3
"""
Move every servo to one angle and exit.

Handy for centring horns before assembly or parking the arm.

Usage:
    python -m leap_arm_control.set_position 90 --board mqtt
"""

import argparse
import logging
import sys

from .config import ArmConfig, add_config_arguments
from .message import JOINTS
from .servo_bridge import ServoBoard, create_board

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def set_position(board: ServoBoard, position: float) -> int:
    """
    Command all four joints to the same angle.

    Returns:
        Number of joints the board accepted.
    """
    logger.info(f"Moving all servos to {position}")
    return board.move_all({joint: position for joint in JOINTS})


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Move all arm servos to one angle",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "position",
        type=float,
        nargs="?",
        default=0.0,
        help="Target angle in degrees",
    )
    add_config_arguments(parser)
    args = parser.parse_args()

    try:
        config = ArmConfig.from_env().with_args(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    board = create_board(config)
    if not board.start():
        logger.error("Servo board not available")
        sys.exit(1)

    try:
        moved = set_position(board, args.position)
    finally:
        board.stop()

    if moved != len(JOINTS):
        logger.warning(f"Only {moved}/{len(JOINTS)} servos accepted the command")
        sys.exit(1)


if __name__ == "__main__":
    main()
