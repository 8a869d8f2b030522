import asyncio
import json
from types import SimpleNamespace

import paho.mqtt.client as mqtt

from leap_arm_control.config import ArmConfig
from leap_arm_control.servo_bridge import (
    AsyncServoBridge,
    DryRunBoard,
    MQTTServoBridge,
    create_board,
)

PINS = {"base": 3, "shoulder": 9, "elbow": 10, "claw": 6}


class FakeMQTTClient:
    def __init__(self, rc=mqtt.MQTT_ERR_SUCCESS):
        self.rc = rc
        self.published = []

    def publish(self, topic, payload, qos=0):
        self.published.append((topic, json.loads(payload), qos))
        return SimpleNamespace(rc=self.rc)


def connected_bridge(rc=mqtt.MQTT_ERR_SUCCESS):
    bridge = MQTTServoBridge(cmd_topic="arm/servo", pins=PINS)
    bridge._client = FakeMQTTClient(rc)
    bridge._connected = True
    return bridge


def test_dry_run_board_records_moves():
    board = DryRunBoard(pins=PINS)
    assert board.start()
    assert board.move("base", 90.0)
    assert not board.move("wrist", 10.0)
    assert board.move_all({"shoulder": 90.0, "elbow": 45.0, "claw": 40.0}) == 3
    assert board.positions == {"base": 90.0, "shoulder": 90.0, "elbow": 45.0, "claw": 40.0}
    assert board.get_stats()["moves"] == 4


def test_mqtt_move_publishes_command():
    bridge = connected_bridge()
    assert bridge.move("elbow", 115.944)

    topic, payload, qos = bridge._client.published[0]
    assert topic == "arm/servo"
    assert qos == 0
    assert payload["joint"] == "elbow"
    assert payload["pin"] == 10
    assert payload["angle"] == 115.9
    assert bridge.positions["elbow"] == 115.9


def test_mqtt_move_dropped_when_disconnected():
    bridge = MQTTServoBridge(pins=PINS)
    assert not bridge.move("base", 90.0)
    assert bridge.get_stats()["messages_failed"] == 1


def test_mqtt_publish_failure():
    bridge = connected_bridge(rc=mqtt.MQTT_ERR_NO_CONN)
    assert not bridge.move("claw", 40.0)
    assert "claw" not in bridge.positions


def test_mqtt_telemetry_forwarded():
    received = []
    bridge = MQTTServoBridge(on_telemetry=received.append)
    bridge._on_message(None, None, SimpleNamespace(payload=b'{"vbat": 5.1}'))
    bridge._on_message(None, None, SimpleNamespace(payload=b"garbage"))
    assert received == [{"vbat": 5.1}]
    assert bridge.get_stats()["messages_received"] == 2


def test_mqtt_connect_callbacks():
    bridge = MQTTServoBridge()
    client = SimpleNamespace(subscribe=lambda topic: None)
    bridge._on_connect(client, None, {}, 0, None)
    assert bridge.connected
    bridge._on_disconnect(client, None, {}, 0, None)
    assert not bridge.connected


def test_create_board():
    assert isinstance(create_board(ArmConfig()), DryRunBoard)
    bridge = create_board(ArmConfig(board="mqtt", mqtt_host="arm.local", mqtt_topic="a/b"))
    assert isinstance(bridge, MQTTServoBridge)
    assert bridge.host == "arm.local"
    assert bridge.cmd_topic == "a/b"
    assert bridge.pins["claw"] == 6


def test_async_bridge():
    board = DryRunBoard(pins=PINS)
    bridge = AsyncServoBridge(board)

    async def scenario():
        assert await bridge.start()
        assert await bridge.move("base", 45.0)
        assert await bridge.move_all({"claw": 20.0}) == 1
        await bridge.stop()

    asyncio.run(scenario())
    assert board.positions == {"base": 45.0, "claw": 20.0}
