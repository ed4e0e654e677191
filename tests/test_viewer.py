"""Tests for the live-view dashboard state."""

from __future__ import annotations

import asyncio
import json

import pytest

from hiupaus.dashboard import LiveViewState, viewer
from hiupaus.dashboard.series import CSV_HEADER
from hiupaus.dashboard.viewer import LiveViewClient, format_number
from hiupaus.services.broadcaster import encode_event
from hiupaus.services.normalizer import normalize


def _reading(**raw) -> dict:
    raw.setdefault("timestamp", 1_700_000_000)
    return normalize(raw).to_dict()


def test_data_event_updates_series_trail_and_table() -> None:
    state = LiveViewState()

    state.handle_event("data", _reading(speed_cms=12.34, latitude=-7.79, longitude=110.37, quality=88))

    assert len(state.series) == 1
    assert list(state.trail) == [(-7.79, 110.37)]
    row = state.table[0]
    assert row[1] == "12.3"
    assert row[-1] == "88%"
    assert state.latest["speed_cms"] == 12.34


def test_zero_position_is_not_added_to_trail() -> None:
    state = LiveViewState()

    state.handle_event("data", _reading())

    assert list(state.trail) == []


def test_table_keeps_newest_ten_rows() -> None:
    state = LiveViewState()
    for i in range(12):
        state.apply_data(_reading(depth=i))

    assert len(state.table) == 10
    assert state.table[0][5] == "11.0"
    assert state.table[-1][5] == "2.0"


def test_alert_banners_keep_three_newest() -> None:
    state = LiveViewState()
    alerts = [
        {"kind": k, "severity": "warning", "message": f"{k} alert", "value": 1}
        for k in ("temperature", "oxygen", "pressure", "depth")
    ]

    state.handle_event("alerts", alerts)

    assert [message for _, message in state.banners] == ["depth alert", "pressure alert", "oxygen alert"]


def test_history_rows_seed_series() -> None:
    state = LiveViewState()
    rows = [
        {"timestamp": 1_700_000_000 + i, "speed_cms": i, "accel_x": 0.5,
         "latitude": -7.0, "longitude": 110.0}
        for i in range(3)
    ]

    state.handle_event("history", rows)

    snapshot = state.series.snapshot()
    assert snapshot.channels["speed"] == (0.0, 1.0, 2.0)
    assert snapshot.channels["accel_x"] == (0.5, 0.5, 0.5)
    assert len(state.trail) == 3


def test_emergency_event_shows_danger_banner() -> None:
    state = LiveViewState()

    state.handle_event("emergency_activated", True)

    assert state.emergency_active is True
    assert state.banners[0] == ("danger", "Emergency release triggered!")


def test_clear_resets_series_and_trail() -> None:
    state = LiveViewState()
    state.apply_data(_reading(latitude=1.0, longitude=2.0))

    state.clear()

    assert len(state.series) == 0
    assert list(state.trail) == []
    assert state.banners[0] == ("success", "Data cleared")


def test_export_of_empty_state_writes_header_only(tmp_path) -> None:
    state = LiveViewState()

    path = state.export(tmp_path)

    assert path.read_text(encoding="utf-8") == ",".join(CSV_HEADER) + "\n"
    assert state.banners[0] == ("success", "Data exported successfully")


def test_client_dispatch_ignores_malformed_frames() -> None:
    client = LiveViewClient("ws://localhost:1/ws")

    client._dispatch("not json")
    client._dispatch(json.dumps({"data": {}}))
    client._dispatch(json.dumps({"event": "data", "data": _reading(speed_cms=5)}))

    assert client.state.series.snapshot().channels["speed"] == (5.0,)


def test_format_number_placeholder() -> None:
    assert format_number(None, 1) == "--"
    assert format_number("abc", 1) == "--"
    assert format_number(3.14159, 3) == "3.142"


def test_millisecond_timestamps_do_not_drop_readings() -> None:
    state = LiveViewState()
    rows = [{"timestamp": 1_700_000_000_000, "speed_cms": 1}, {"timestamp": 1_700_000_001, "speed_cms": 2}]

    state.handle_event("history", rows)
    state.handle_event("data", _reading(timestamp=1.7e12, speed_cms=3, latitude=1.0, longitude=2.0))

    assert state.series.snapshot().channels["speed"] == (1.0, 2.0, 3.0)
    assert list(state.trail) == [(1.0, 2.0)]
    assert state.table[0][1] == "3.0"


class FakeSocket:
    """Answers get_history with canned rows; drop() ends the stream."""

    def __init__(self, rows: list[dict], fail_send: bool = False) -> None:
        self.rows = rows
        self.fail_send = fail_send
        self.sent: list[dict] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.fail_send:
            raise ConnectionError("socket went away")
        envelope = json.loads(message)
        self.sent.append(envelope)
        if envelope["event"] == "get_history":
            self._inbox.put_nowait(encode_event("history", self.rows))

    def drop(self) -> None:
        self._inbox.put_nowait(None)

    async def close(self) -> None:
        self.closed = True
        self.drop()

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        message = await self._inbox.get()
        if message is None:
            raise StopAsyncIteration
        return message


def _patch_connect(monkeypatch, sockets: list[FakeSocket]) -> None:
    async def fake_connect(url):
        return sockets.pop(0)

    monkeypatch.setattr(viewer, "ws_connect", fake_connect)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_reconnect_does_not_duplicate_history(monkeypatch) -> None:
    rows = [{"timestamp": 1_700_000_000 + i, "speed_cms": i} for i in range(3)]

    async def run() -> tuple[LiveViewClient, list[FakeSocket]]:
        sockets = [FakeSocket(rows), FakeSocket(rows)]
        opened = list(sockets)
        _patch_connect(monkeypatch, sockets)
        client = LiveViewClient("ws://relay/ws")

        await client._connect()
        await _settle()
        opened[0].drop()
        await _settle()
        await client._connect()
        await _settle()
        return client, opened

    client, opened = asyncio.run(run())

    assert client.state.series.snapshot().channels["speed"] == (0.0, 1.0, 2.0)
    assert [m["event"] for m in opened[0].sent] == ["get_history"]
    assert opened[1].sent == []


def test_failed_history_request_closes_socket(monkeypatch) -> None:
    async def run() -> tuple[LiveViewClient, FakeSocket]:
        socket = FakeSocket([], fail_send=True)
        _patch_connect(monkeypatch, [socket])
        client = LiveViewClient("ws://relay/ws")

        with pytest.raises(ConnectionError):
            await client._connect()
        await _settle()
        return client, socket

    client, socket = asyncio.run(run())

    assert socket.closed is True
    assert client._websocket is None
    assert client._reader.done()
    assert client.state.history_loaded is False
