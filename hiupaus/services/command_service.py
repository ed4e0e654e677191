"""Operator command routing - turns command messages into device publishes"""

import json
import logging
import time
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from ..models import CommandType, CommandMessage, OutboundCommand
from .broadcaster import Broadcaster
from .. import config

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    def publish(self, topic: str, payload: Any) -> bool: ...


class CommandService:
    """Handle commands arriving on the command topic or from live-view clients"""
    
    def __init__(self, publisher: Publisher, broadcaster: Broadcaster,
                 topic: str = config.MQTT_DEVICE_COMMAND_TOPIC):
        self.publisher = publisher
        self.broadcaster = broadcaster
        self.topic = topic
        logger.info("Command service initialized")
    
    async def handle_message(self, topic: str, raw: Any):
        """MQTT entry point: decode the payload, then route it"""
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode('utf-8')
            payload = json.loads(raw) if isinstance(raw, str) else raw
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(f"Command processing error: {e}")
            return
        
        await self.handle(payload)
    
    async def handle(self, payload: Any) -> Optional[dict]:
        """Route a decoded command; returns the published payload, if any"""
        if not isinstance(payload, dict):
            logger.warning(f"Ignoring non-object command: {payload!r}")
            return None
        
        try:
            message = CommandMessage.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Invalid command: {e}")
            return None
        
        logger.info(f"Command received: {payload}")
        
        try:
            command_type = CommandType(message.type)
        except ValueError:
            logger.warning(f"Unknown command: {message.type}")
            return None
        
        if command_type is CommandType.EMERGENCY_RELEASE:
            return await self._handle_emergency_release()
        if command_type is CommandType.PUMP_CONTROL:
            return self._handle_pump_control(message.state)
        return self._handle_calibration(message.sensor, message.value)
    
    def _publish(self, command: str, **extra) -> dict:
        outbound = OutboundCommand(command=command, timestamp=int(time.time() * 1000), **extra)
        payload = outbound.model_dump()
        self.publisher.publish(self.topic, payload)
        return payload
    
    async def _handle_emergency_release(self) -> dict:
        payload = self._publish("emergency_release")
        await self.broadcaster.emit("emergency_activated", True)
        logger.warning("Emergency release activated")
        return payload
    
    def _handle_pump_control(self, state: Any) -> dict:
        payload = self._publish("pump_on" if state else "pump_off")
        logger.info(f"Pump {'ON' if state else 'OFF'} command sent")
        return payload
    
    def _handle_calibration(self, sensor: Optional[str], value: Any) -> dict:
        payload = self._publish("calibrate", sensor=sensor, value=value)
        logger.info(f"Calibration command sent for {sensor}")
        return payload
