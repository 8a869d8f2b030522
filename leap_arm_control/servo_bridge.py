"""
Servo board bridges.

Handles:
- Per-joint "move to angle" commands for the base/shoulder/elbow/claw servos
- Publishing those commands to the board firmware over MQTT
- A dry-run board that only logs, for running without hardware
"""

import asyncio
import json
import logging
import time
from typing import Callable, Dict, Optional

import paho.mqtt.client as mqtt

from .message import JOINTS

logger = logging.getLogger(__name__)


class ServoBoard:
    """
    Interface to the servo hardware.

    Subclasses implement ``move``; servos hold their last commanded
    position between calls.
    """

    def __init__(self, pins: Optional[Dict[str, int]] = None):
        self.pins = dict(pins) if pins else {}
        self.positions: Dict[str, float] = {}
        self._moves = 0

    def start(self) -> bool:
        """Bring the board up. Returns True when ready."""
        return True

    def stop(self) -> None:
        """Release the board."""

    def move(self, joint: str, angle: float) -> bool:
        """Command one servo to an angle in degrees."""
        raise NotImplementedError

    def move_all(self, pose: Dict[str, float]) -> int:
        """Move several joints. Returns how many commands were accepted."""
        return sum(1 for joint, angle in pose.items() if self.move(joint, angle))

    @property
    def connected(self) -> bool:
        return True

    def _record(self, joint: str, angle: float) -> None:
        self.positions[joint] = angle
        self._moves += 1

    def get_stats(self) -> dict:
        """Get board statistics."""
        return {
            "connected": self.connected,
            "moves": self._moves,
            "positions": dict(self.positions),
        }


class DryRunBoard(ServoBoard):
    """Board that logs commands instead of moving anything."""

    def start(self) -> bool:
        logger.info("SAFETY MODE: servo commands will be logged but not executed")
        return True

    def move(self, joint: str, angle: float) -> bool:
        if joint not in JOINTS:
            logger.warning(f"Unknown joint: {joint}")
            return False
        self._record(joint, angle)
        logger.debug(f"[dry-run] {joint} (pin {self.pins.get(joint, '?')}) -> {angle:.1f}")
        return True


class MQTTServoBridge(ServoBoard):
    """
    MQTT bridge to the servo board firmware.

    Every move is published as ``{"joint", "pin", "angle", "ts"}`` JSON on
    the command topic. Board telemetry on the telemetry topic is logged and
    forwarded to an optional callback.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1883,
        cmd_topic: str = "arm/servo",
        telemetry_topic: str = "arm/telemetry",
        pins: Optional[Dict[str, int]] = None,
        on_telemetry: Optional[Callable[[dict], None]] = None,
    ):
        """
        Initialize MQTT bridge.

        Args:
            host: MQTT broker host
            port: MQTT broker port
            cmd_topic: Topic for servo commands
            telemetry_topic: Topic for board telemetry
            pins: PWM pin per joint, included in each command
            on_telemetry: Callback for telemetry messages
        """
        super().__init__(pins)
        self.host = host
        self.port = port
        self.cmd_topic = cmd_topic
        self.telemetry_topic = telemetry_topic
        self.on_telemetry = on_telemetry

        # MQTT client
        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._running = False

        # Statistics
        self._messages_failed = 0
        self._messages_received = 0
        self._last_send_time: Optional[float] = None

    def start(self) -> bool:
        """
        Start the MQTT bridge.

        Returns:
            True if connection successful, False otherwise
        """
        if self._running:
            return True

        try:
            client_id = f"leap_arm_control_{int(time.time())}"
            self._client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION2, client_id=client_id
            )

            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            self._client.on_message = self._on_message

            logger.info(f"Connecting to MQTT broker at {self.host}:{self.port}")
            self._client.connect(self.host, self.port, keepalive=60)

            # Network loop runs in paho's background thread
            self._running = True
            self._client.loop_start()

            for _ in range(50):  # 5 second timeout
                if self._connected:
                    break
                time.sleep(0.1)

            if not self._connected:
                logger.warning("MQTT connection timeout - servo commands will be dropped")
                return False

            return True

        except (OSError, ValueError) as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def stop(self) -> None:
        """Stop the MQTT bridge."""
        if not self._running:
            return

        self._running = False

        if self._client:
            # disconnect first so queued commands are flushed by the network loop
            self._client.disconnect()
            self._client.loop_stop()
            self._client = None

        self._connected = False
        logger.info("MQTT bridge stopped")

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT connection callback."""
        if reason_code == 0:
            self._connected = True
            logger.info("Connected to MQTT broker")

            client.subscribe(self.telemetry_topic)
            logger.info(f"Subscribed to {self.telemetry_topic}")
        else:
            logger.error(f"MQTT connection failed with code: {reason_code}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT disconnection callback."""
        self._connected = False
        if reason_code != 0:
            logger.warning(f"Unexpected MQTT disconnection, code: {reason_code}")
        else:
            logger.info("Disconnected from MQTT broker")

    def _on_message(self, client, userdata, msg):
        """MQTT message callback."""
        self._messages_received += 1

        try:
            payload = json.loads(msg.payload.decode())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid telemetry JSON: {e}")
            return

        logger.debug(f"Telemetry received: {payload}")
        if self.on_telemetry:
            self.on_telemetry(payload)

    def build_payload(self, joint: str, angle: float) -> dict:
        """Command payload for one servo."""
        return {
            "joint": joint,
            "pin": self.pins.get(joint),
            "angle": round(float(angle), 1),
            "ts": int(time.time() * 1000),
        }

    def move(self, joint: str, angle: float) -> bool:
        """
        Publish a servo command.

        Returns:
            True if published successfully
        """
        if joint not in JOINTS:
            logger.warning(f"Unknown joint: {joint}")
            return False

        if not self._connected or not self._client:
            self._messages_failed += 1
            return False

        payload = self.build_payload(joint, angle)
        info = self._client.publish(
            self.cmd_topic,
            json.dumps(payload),
            qos=0,  # Fire and forget for low latency
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._messages_failed += 1
            logger.warning(f"Failed to publish {joint} command, rc={info.rc}")
            return False

        self._record(joint, payload["angle"])
        self._last_send_time = time.time()
        logger.debug(f"Published servo command: {payload}")
        return True

    @property
    def connected(self) -> bool:
        """Check if connected to MQTT broker."""
        return self._connected

    def get_stats(self) -> dict:
        """Get bridge statistics."""
        stats = super().get_stats()
        stats.update({
            "messages_failed": self._messages_failed,
            "messages_received": self._messages_received,
            "last_send_time": self._last_send_time,
        })
        return stats


class AsyncServoBridge:
    """
    Async wrapper for a ServoBoard.

    Blocking board calls run in the default executor so the event loop
    keeps serving sensor frames.
    """

    def __init__(self, board: ServoBoard):
        self.board = board

    async def start(self) -> bool:
        """Start the board."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.board.start)

    async def stop(self) -> None:
        """Stop the board."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.board.stop)

    async def move(self, joint: str, angle: float) -> bool:
        """Command one servo."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.board.move, joint, angle)

    async def move_all(self, pose: Dict[str, float]) -> int:
        """Command several servos."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.board.move_all, pose)

    @property
    def connected(self) -> bool:
        """Check if connected."""
        return self.board.connected

    def get_stats(self) -> dict:
        """Get statistics."""
        return self.board.get_stats()


def create_board(config) -> ServoBoard:
    """Build the servo board selected by an ArmConfig."""
    if config.board == "mqtt":
        return MQTTServoBridge(
            host=config.mqtt_host,
            port=config.mqtt_port,
            cmd_topic=config.mqtt_topic,
            pins=config.pins,
        )
    return DryRunBoard(pins=config.pins)
