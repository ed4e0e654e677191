"""Shared fixtures and fakes for the relay tests."""

from __future__ import annotations

import json

import pytest

from hiupaus.storage import TelemetryDatabase


class RecordingClient:
    """Live-view client that records every pushed envelope."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict] = []

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.messages.append(json.loads(data))

    def events(self, name: str) -> list:
        return [message["data"] for message in self.messages if message["event"] == name]


class RecordingPublisher:
    def __init__(self) -> None:
        self.published: list[tuple[str, dict]] = []

    def publish(self, topic: str, payload) -> bool:
        self.published.append((topic, payload))
        return True


class FakeMQTT(RecordingPublisher):
    """Stands in for MQTTClient where no broker is available."""

    def __init__(self) -> None:
        super().__init__()
        self.connected = False
        self.callbacks: dict = {}
        self.on_connection_lost = None

    def register_callback(self, topic_pattern, callback) -> None:
        self.callbacks[topic_pattern] = callback

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def dispatch_forever(self) -> None:
        return None


@pytest.fixture
def database(tmp_path) -> TelemetryDatabase:
    db = TelemetryDatabase(str(tmp_path / "telemetry.db"))
    db.initialize()
    return db


@pytest.fixture
def live_client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
