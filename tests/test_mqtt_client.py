"""Tests for the MQTT adapter that do not need a broker."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from hiupaus.mqtt import MQTTClient


@pytest.fixture
def client() -> MQTTClient:
    return MQTTClient(broker="localhost", port=1883, client_id="test-client", use_tls=False)


@pytest.mark.parametrize(
    "topic, pattern, expected",
    [
        ("monitor/hiu-paus/data", "monitor/hiu-paus/data", True),
        ("monitor/hiu-paus/data/command", "monitor/hiu-paus/data", False),
        ("monitor/hiu-paus/data/command", "monitor/hiu-paus/data/command", True),
        ("monitor/hiu-paus/data", "monitor/+/data", True),
        ("monitor/hiu-paus/data/command", "monitor/#", True),
        ("monitor", "monitor/#", True),
        ("other/hiu-paus/data", "monitor/#", False),
    ],
)
def test_topic_matching(topic: str, pattern: str, expected: bool) -> None:
    assert MQTTClient._topic_matches(topic, pattern) is expected


def test_dispatch_routes_by_topic(client) -> None:
    received: list[tuple[str, str, bytes]] = []

    async def on_data(topic: str, payload: bytes) -> None:
        received.append(("data", topic, payload))

    async def on_command(topic: str, payload: bytes) -> None:
        received.append(("command", topic, payload))

    client.register_callback("monitor/hiu-paus/data", on_data)
    client.register_callback("monitor/hiu-paus/data/command", on_command)

    asyncio.run(client.dispatch("monitor/hiu-paus/data/command", b"{}"))

    assert received == [("command", "monitor/hiu-paus/data/command", b"{}")]


def test_callback_errors_are_contained(client) -> None:
    async def broken(topic: str, payload: bytes) -> None:
        raise RuntimeError("boom")

    client.register_callback("a/b", broken)

    asyncio.run(client.dispatch("a/b", b""))


def test_messages_from_network_thread_are_dispatched_in_order(client) -> None:
    received: list[bytes] = []

    async def on_data(topic: str, payload: bytes) -> None:
        received.append(payload)

    client.register_callback("monitor/hiu-paus/data", on_data)

    async def run() -> None:
        dispatcher = asyncio.create_task(client.dispatch_forever())
        await asyncio.sleep(0)
        for i in range(3):
            message = SimpleNamespace(topic="monitor/hiu-paus/data", payload=str(i).encode())
            client._on_message(None, None, message)
        while len(received) < 3:
            await asyncio.sleep(0.001)
        dispatcher.cancel()

    asyncio.run(run())

    assert received == [b"0", b"1", b"2"]


def test_publish_requires_connection(client) -> None:
    assert client.publish("fish/monitor/command", {"command": "pump_on"}) is False
