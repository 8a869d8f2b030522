"""
Leap Motion WebSocket client.

Handles:
- Async WebSocket connection to the Leap service (v6 JSON protocol)
- Exponential backoff reconnection
- Frame parsing into SensorFrame objects
- Connect/disconnect lifecycle callbacks
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .frame_gate import SensorFrame

logger = logging.getLogger(__name__)

DEFAULT_LEAP_URL = "ws://127.0.0.1:6437/v6.json"


@dataclass
class ConnectionStats:
    """Statistics about the Leap connection."""
    connected: bool = False
    connect_time: Optional[float] = None
    disconnect_time: Optional[float] = None
    reconnect_attempts: int = 0
    frames_received: int = 0
    messages_invalid: int = 0
    last_frame_time: Optional[float] = None
    service_version: Optional[int] = None


class LeapClient:
    """
    Async Leap Motion client with automatic reconnection.

    Features:
    - Requests frames even when the app is not focused
    - Exponential backoff on connection failure (1s -> 30s max)
    - Calls ``on_frame`` synchronously for every tracking frame
    """

    def __init__(
        self,
        url: str = DEFAULT_LEAP_URL,
        on_frame: Optional[Callable[[SensorFrame], None]] = None,
        on_connected: Optional[Callable[[], Awaitable[None]]] = None,
        on_disconnected: Optional[Callable[[], Awaitable[None]]] = None,
        max_backoff_seconds: float = 30.0,
        initial_backoff_seconds: float = 1.0,
    ):
        """
        Initialize Leap client.

        Args:
            url: Leap service WebSocket URL
            on_frame: Callback for each parsed tracking frame
            on_connected: Callback when connection is established
            on_disconnected: Callback when connection is lost
            max_backoff_seconds: Maximum backoff time between reconnect attempts
            initial_backoff_seconds: Initial backoff time
        """
        self.url = url
        self.on_frame = on_frame
        self.on_connected = on_connected
        self.on_disconnected = on_disconnected
        self.max_backoff = max_backoff_seconds
        self.initial_backoff = initial_backoff_seconds

        # Connection state
        self._ws = None
        self._connected = False
        self._running = False

        self.stats = ConnectionStats()
        self._current_backoff = initial_backoff_seconds
        self._connect_task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        """Check if currently connected."""
        return self._connected and self._ws is not None

    async def start(self) -> None:
        """Start the connection task."""
        if self._running:
            return

        self._running = True
        self._connect_task = asyncio.create_task(self._connection_loop())
        logger.info(f"Leap client started, connecting to {self.url}")

    async def stop(self) -> None:
        """Stop the client and close the connection."""
        if not self._running:
            return

        logger.info("Leap client stopping...")
        self._running = False

        if self._connect_task:
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
            self._connect_task = None

        if self._ws:
            await self._ws.close()
            self._ws = None

        self._connected = False
        logger.info("Leap client stopped")

    async def _connection_loop(self) -> None:
        """Main connection loop with automatic reconnection."""
        while self._running:
            try:
                await self._connect()
                self._current_backoff = self.initial_backoff
            except asyncio.CancelledError:
                break
            except (OSError, WebSocketException) as e:
                logger.error(f"Leap connection error: {e}")
            except Exception as e:
                logger.error(f"Leap client error: {e}")

            if not self._running:
                break

            logger.info(f"Reconnecting to Leap in {self._current_backoff:.1f}s...")
            await asyncio.sleep(self._current_backoff)

            self._current_backoff = min(
                self._current_backoff * 2,
                self.max_backoff,
            )
            self.stats.reconnect_attempts += 1

    async def _connect(self) -> None:
        """Connect and consume frames until the socket closes."""
        logger.info(f"Connecting to {self.url}...")

        try:
            self._ws = await websockets.connect(
                self.url,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=5,
            )
        except ConnectionRefusedError:
            logger.error("Connection refused - is the Leap service running?")
            raise

        self._connected = True
        self.stats.connected = True
        self.stats.connect_time = time.time()
        logger.info("Leap Connected.")

        try:
            # Ask for frames even when another app has focus
            await self._ws.send(json.dumps({"focused": True}))

            if self.on_connected:
                await self.on_connected()

            try:
                async for message in self._ws:
                    self.handle_message(message)
            except ConnectionClosed:
                pass
        finally:
            self._connected = False
            self._ws = None
            self.stats.connected = False
            self.stats.disconnect_time = time.time()

            if self.on_disconnected:
                await self.on_disconnected()

    def handle_message(self, message) -> Optional[SensorFrame]:
        """
        Decode one message from the Leap service.

        Args:
            message: Raw text frame

        Returns:
            The SensorFrame passed to ``on_frame``, or None for handshake,
            event and malformed messages.
        """
        try:
            data = json.loads(message)
        except (TypeError, ValueError) as e:
            self.stats.messages_invalid += 1
            logger.warning(f"Invalid Leap message: {e}")
            return None

        if not isinstance(data, dict):
            self.stats.messages_invalid += 1
            return None

        if "version" in data and "id" not in data:
            self.stats.service_version = data.get("version")
            logger.info(
                f"Leap service version {data.get('serviceVersion', '?')} "
                f"(protocol {data.get('version')})"
            )
            return None

        if "event" in data:
            event = data["event"]
            event_type = event.get("type", "unknown") if isinstance(event, dict) else event
            logger.info(f"Leap event: {event_type}")
            return None

        try:
            frame = SensorFrame.from_leap(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.stats.messages_invalid += 1
            logger.warning(f"Malformed Leap frame: {e}")
            return None

        self.stats.frames_received += 1
        self.stats.last_frame_time = time.time()

        if self.on_frame:
            self.on_frame(frame)
        return frame

    def get_stats(self) -> dict:
        """Get connection statistics."""
        return {
            "connected": self.connected,
            "connect_time": self.stats.connect_time,
            "disconnect_time": self.stats.disconnect_time,
            "reconnect_attempts": self.stats.reconnect_attempts,
            "frames_received": self.stats.frames_received,
            "messages_invalid": self.stats.messages_invalid,
            "last_frame_time": self.stats.last_frame_time,
            "service_version": self.stats.service_version,
        }
