"""Live-view client - mirrors the dashboard state from the WebSocket push"""

import asyncio
import json
import logging
from collections import deque
from pathlib import Path
from typing import Any, Deque, List, Optional, Tuple, Union

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from ..core.supervisor import ConnectionState, ConnectionSupervisor
from ..services.broadcaster import encode_event
from ..services.normalizer import parse_float
from .series import SeriesBuffer, format_label
from .. import config

logger = logging.getLogger(__name__)


def format_number(value: Any, decimals: int) -> str:
    if value is None:
        return "--"
    try:
        return f"{float(value):.{decimals}f}"
    except (TypeError, ValueError):
        return "--"


class LiveViewState:
    """Everything a dashboard shows: charts, map trail, table and banners"""

    def __init__(self):
        self.series = SeriesBuffer(config.MAX_DATA_POINTS)
        self.trail: Deque[Tuple[float, float]] = deque(maxlen=config.MAP_TRAIL_LENGTH)
        self.table: Deque[List[str]] = deque(maxlen=config.TABLE_ROWS)
        self.banners: Deque[Tuple[str, str]] = deque(maxlen=config.MAX_BANNERS)
        self.latest: Optional[dict] = None
        self.connected = False
        self.emergency_active = False
        self.history_loaded = False

    def set_connected(self, connected: bool):
        self.connected = connected
        logger.info("Connected" if connected else "Disconnected")

    def show_banner(self, message: str, severity: str = "info"):
        """Newest banner first; only the most recent few are kept"""
        self.banners.appendleft((severity, message))

    def apply_data(self, reading: dict):
        """Handle a pushed canonical reading"""
        if not isinstance(reading, dict):
            logger.warning(f"Ignoring non-object reading: {reading!r}")
            return
        self.latest = reading
        self.series.push(reading)
        self._update_trail(reading.get("location") or {})
        self._update_table(reading)
        logger.info(self.summary(reading))

    def apply_alerts(self, alerts: List[dict]):
        for alert in alerts or []:
            if isinstance(alert, dict):
                self.show_banner(alert.get("message", ""), alert.get("severity", "warning"))

    def apply_history(self, rows: List[dict]):
        """Seed the series with stored readings (oldest first)"""
        loaded = 0
        for row in rows or []:
            if not isinstance(row, dict):
                continue
            self.series.push(row)
            self._update_trail({"lat": row.get("latitude"), "lon": row.get("longitude")})
            loaded += 1
        self.history_loaded = True
        logger.info(f"Loaded {loaded} historical readings")

    def handle_event(self, event: str, data: Any):
        if event == "data":
            self.apply_data(data)
        elif event == "alerts":
            self.apply_alerts(data)
        elif event == "history":
            self.apply_history(data)
        elif event == "welcome":
            logger.info(f"Server says: {(data or {}).get('message')}")
        elif event == "emergency_activated":
            self.emergency_active = bool(data)
            self.show_banner("Emergency release triggered!", "danger")
        else:
            logger.debug(f"Unhandled event: {event}")

    def _update_trail(self, location: dict):
        lat, lon = location.get("lat"), location.get("lon")
        if not lat or not lon:
            return
        self.trail.append((float(lat), float(lon)))

    def _update_table(self, reading: dict):
        self.table.appendleft([
            format_label(parse_float(reading.get("timestamp"))),
            format_number(reading.get("speed_cms"), 1),
            format_number(reading.get("temperature"), 1),
            format_number(reading.get("dissolved_oxygen"), 1),
            format_number(reading.get("pressure"), 1),
            format_number(reading.get("depth"), 1),
            f"{reading.get('quality') or 0}%",
        ])

    @staticmethod
    def summary(reading: dict) -> str:
        location = reading.get("location") or {}
        return (
            f"[{reading.get('device_id', config.DEFAULT_DEVICE_ID)}] "
            f"speed {format_number(reading.get('speed_cms'), 1)} cm/s | "
            f"temp {format_number(reading.get('temperature'), 1)}°C | "
            f"DO {format_number(reading.get('dissolved_oxygen'), 1)} mg/L | "
            f"pressure {format_number(reading.get('pressure'), 1)} kPa | "
            f"depth {format_number(reading.get('depth'), 1)} m | "
            f"pos {format_number(location.get('lat'), 6)},{format_number(location.get('lon'), 6)} | "
            f"pump {'ON' if reading.get('pump_state') else 'OFF'}"
        )

    def clear(self):
        """Reset charts and map trail"""
        self.series.clear()
        self.trail.clear()
        self.show_banner("Data cleared", "success")

    def export(self, directory: Union[str, Path] = ".") -> Path:
        path = self.series.export_csv(directory)
        self.show_banner("Data exported successfully", "success")
        return path


class LiveViewClient:
    """WebSocket client feeding a LiveViewState, reconnecting forever"""

    def __init__(self, url: str = config.VIEWER_URL, state: Optional[LiveViewState] = None):
        self.url = url
        self.state = state or LiveViewState()
        self.supervisor = ConnectionSupervisor(
            "Live view", self._connect, on_state_change=self._on_state_change
        )
        self._websocket = None
        self._reader: Optional[asyncio.Task] = None

    def _on_state_change(self, state: ConnectionState):
        if state is ConnectionState.CONNECTED:
            self.state.set_connected(True)
        elif self.state.connected:
            self.state.set_connected(False)

    async def _connect(self):
        websocket = await ws_connect(self.url)
        self._websocket = websocket
        self._reader = asyncio.create_task(self._read_loop(websocket))
        # History seeds the charts once; after a reconnect the series already holds it
        if self.state.history_loaded:
            return
        try:
            await self.request_history()
        except Exception:
            self._reader.cancel()
            self._websocket = None
            await websocket.close()
            raise

    async def _read_loop(self, websocket):
        try:
            async for message in websocket:
                self._dispatch(message)
        except ConnectionClosed as e:
            logger.warning(f"Connection lost: {e}")
        finally:
            self.supervisor.connection_lost()

    def _dispatch(self, message):
        try:
            envelope = json.loads(message)
            event, data = envelope["event"], envelope.get("data")
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Error processing message: {e}")
            return
        try:
            self.state.handle_event(event, data)
        except Exception as e:
            logger.error(f"Error applying '{event}': {e}", exc_info=True)

    async def _send(self, event: str, data: Any = None) -> bool:
        if self._websocket is None or not self.state.connected:
            self.state.show_banner("Not connected to system", "danger")
            return False
        await self._websocket.send(encode_event(event, data))
        return True

    async def request_history(self, limit: int = config.HISTORY_DEFAULT_LIMIT,
                              device_id: Optional[str] = None):
        if self._websocket is None:
            return
        request = {"limit": limit}
        if device_id:
            request["device_id"] = device_id
        await self._websocket.send(encode_event("get_history", request))

    async def send_command(self, command: dict) -> bool:
        return await self._send("command", command)

    async def emergency_release(self) -> bool:
        sent = await self.send_command({"type": "emergency_release"})
        if sent:
            self.state.show_banner("Emergency release triggered!", "danger")
        return sent

    async def run(self):
        await self.supervisor.run()

    async def stop(self):
        self.supervisor.stop()
        if self._websocket is not None:
            await self._websocket.close()
