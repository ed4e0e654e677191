"""Ingestion pipeline - normalize, persist, broadcast, alert"""

import json
import logging
import time
from typing import Any, Optional

from ..models import CanonicalReading
from ..services.normalizer import normalize
from ..services.alerter import evaluate
from ..services.persistence import PersistenceSink
from ..services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)


class MalformedMessage(ValueError):
    """Raw payload is not a JSON object"""


def decode_payload(raw: Any) -> dict:
    """Decode a raw transport payload into a JSON object"""
    if isinstance(raw, dict):
        return raw
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode('utf-8')
        payload = json.loads(raw)
    except (TypeError, UnicodeDecodeError, ValueError) as e:
        raise MalformedMessage(f"payload is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedMessage(f"expected a JSON object, got {type(payload).__name__}")
    return payload


class IngestionPipeline:
    """Drives one inbound telemetry message through every stage.

    A failed store write does not hold back the live push or the alerts.
    A malformed message is dropped before any stage runs.
    """

    def __init__(self, sink: PersistenceSink, broadcaster: Broadcaster):
        self.sink = sink
        self.broadcaster = broadcaster
        self.latest: Optional[CanonicalReading] = None
        self.counters = {
            'received': 0,
            'malformed': 0,
            'alerts': 0,
            'errors': 0,
        }
        logger.info("Ingestion pipeline initialized")

    async def handle_message(self, topic: str, raw: bytes):
        """MQTT callback entry point"""
        await self.ingest(raw)

    async def ingest(self, raw: Any):
        """Process one raw message. Never raises."""
        received_at = time.time()
        try:
            payload = decode_payload(raw)
        except MalformedMessage as e:
            self.counters['malformed'] += 1
            logger.warning(f"Discarding malformed message: {e}")
            return

        self.counters['received'] += 1
        logger.info("📥 Data received from device")

        try:
            reading = normalize(payload, received_at=received_at)
            self.latest = reading

            await self.sink.save(reading)

            await self.broadcaster.emit("data", reading.to_dict())

            alerts = evaluate(reading)
            if alerts:
                self.counters['alerts'] += len(alerts)
                await self.broadcaster.emit("alerts", [alert.to_dict() for alert in alerts])
                await self.sink.save_alerts(alerts, reading.device_id)
                for alert in alerts:
                    logger.warning(f"⚠️ {alert.message} ({reading.device_id})")
        except Exception as e:
            self.counters['errors'] += 1
            logger.error(f"❌ Data processing error: {e}", exc_info=True)
