"""MQTT client for the telemetry relay"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import paho.mqtt.client as mqtt

from .. import config

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, bytes], Awaitable[None]]


class MQTTClient:
    """MQTT client bridging paho's network thread onto the asyncio loop.

    Incoming messages are queued in delivery order and handed to the
    registered callbacks by a single dispatch task. Reconnection is left to a
    ConnectionSupervisor: on an unexpected disconnect the paho loop is stopped
    and ``on_connection_lost`` is invoked on the event loop.
    """

    def __init__(self, broker: str = config.MQTT_BROKER, port: int = config.MQTT_PORT,
                 client_id: str = config.MQTT_CLIENT_ID, use_tls: bool = config.MQTT_TLS,
                 connect_timeout: float = 10.0):
        self.broker = broker
        self.port = port
        self.connect_timeout = connect_timeout
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.connected = False
        self.callbacks: Dict[str, MessageCallback] = {}
        self.on_connection_lost: Optional[Callable[[], None]] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._connack: Optional[asyncio.Future] = None

        # Set callbacks
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        # Set credentials if provided
        if config.MQTT_USERNAME and config.MQTT_PASSWORD:
            self.client.username_pw_set(config.MQTT_USERNAME, config.MQTT_PASSWORD)

        if use_tls:
            self.client.tls_set()

        logger.info("MQTT client initialized")

    def bind_loop(self, loop: asyncio.AbstractEventLoop):
        """Attach the event loop that receives messages and connection events"""
        self._loop = loop
        if self._queue is None:
            self._queue = asyncio.Queue()

    async def connect(self):
        """Connect to the broker and wait for CONNACK. Raises on failure."""
        self.bind_loop(asyncio.get_running_loop())
        self._connack = self._loop.create_future()
        logger.info(f"Connecting to MQTT broker at {self.broker}:{self.port}")

        try:
            await asyncio.to_thread(self._connect_blocking)
            await asyncio.wait_for(self._connack, timeout=self.connect_timeout)
        except Exception:
            await asyncio.to_thread(self.client.loop_stop)
            raise
        finally:
            self._connack = None

    def _connect_blocking(self):
        # A previous network thread must be gone before reconnecting
        self.client.loop_stop()
        self.client.connect(self.broker, self.port, config.MQTT_KEEPALIVE)
        self.client.loop_start()

    async def disconnect(self):
        """Disconnect from MQTT broker"""
        self.connected = False
        self.client.disconnect()
        await asyncio.to_thread(self.client.loop_stop)
        logger.info("Disconnected from MQTT broker")

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Callback when connected (paho thread)"""
        if reason_code.is_failure:
            logger.error(f"Failed to connect to MQTT broker: {reason_code}")
            self._resolve_connack(ConnectionError(f"MQTT connection refused: {reason_code}"))
            return

        self.connected = True
        logger.info("Connected to MQTT broker successfully")

        for topic_pattern in self.callbacks:
            self.client.subscribe(topic_pattern)
            logger.info(f"Subscribed to: {topic_pattern}")

        self._resolve_connack(None)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        """Callback when disconnected (paho thread)"""
        was_connected = self.connected
        self.connected = False
        if not reason_code.is_failure:
            logger.info("Disconnected from MQTT broker")
            return

        logger.warning(f"Unexpected MQTT disconnection ({reason_code})")
        # Stop paho's built-in reconnect; the supervisor owns retries
        self.client.loop_stop()
        if was_connected and self._loop is not None:
            self._loop.call_soon_threadsafe(self._notify_lost)

    def _notify_lost(self):
        if self.on_connection_lost is not None:
            self.on_connection_lost()

    def _resolve_connack(self, error: Optional[Exception]):
        if self._loop is None:
            return

        def resolve():
            future = self._connack
            if future is None or future.done():
                return
            if error is None:
                future.set_result(True)
            else:
                future.set_exception(error)

        self._loop.call_soon_threadsafe(resolve)

    def _on_message(self, client, userdata, msg):
        """Callback when message received (paho thread)"""
        logger.debug(f"Received MQTT message - Topic: {msg.topic}, {len(msg.payload)} bytes")
        if self._loop is None:
            logger.warning(f"Dropping message on {msg.topic} - no event loop bound")
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, (msg.topic, bytes(msg.payload)))

    async def dispatch_forever(self):
        """Hand queued messages to their callbacks, one at a time, in order"""
        self.bind_loop(asyncio.get_running_loop())
        while True:
            topic, payload = await self._queue.get()
            try:
                await self.dispatch(topic, payload)
            finally:
                self._queue.task_done()

    async def dispatch(self, topic: str, payload: bytes):
        """Call every callback whose pattern matches the topic"""
        for topic_pattern, callback in list(self.callbacks.items()):
            if self._topic_matches(topic, topic_pattern):
                try:
                    await callback(topic, payload)
                except Exception as e:
                    logger.error(f"Error in callback for {topic}: {e}", exc_info=True)

    def publish(self, topic: str, payload: Any) -> bool:
        """Publish a message"""
        if isinstance(payload, dict):
            payload = json.dumps(payload)

        if self.connected:
            self.client.publish(topic, payload)
            logger.debug(f"Published to {topic}: {payload}")
            return True

        logger.warning("Cannot publish - MQTT not connected")
        return False

    def register_callback(self, topic_pattern: str, callback: MessageCallback):
        """Register callback for topic pattern; subscribed on every connect"""
        self.callbacks[topic_pattern] = callback
        if self.connected:
            self.client.subscribe(topic_pattern)
        logger.info(f"Registered callback for {topic_pattern}")

    @property
    def subscriptions(self) -> List[str]:
        return list(self.callbacks)

    @staticmethod
    def _topic_matches(topic, pattern):
        """Check if topic matches pattern"""
        topic_parts = topic.split('/')
        pattern_parts = pattern.split('/')

        for i, pattern_part in enumerate(pattern_parts):
            if pattern_part == '#':
                return True
            if i >= len(topic_parts):
                return False
            if pattern_part != '+' and pattern_part != topic_parts[i]:
                return False

        return len(topic_parts) == len(pattern_parts)
