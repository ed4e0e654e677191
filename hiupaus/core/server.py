"""Core TelemetryServer - composition root for the relay"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import uvicorn

from ..mqtt import MQTTClient
from ..models import StatusReport
from ..services.broadcaster import Broadcaster
from ..services.command_service import CommandService
from ..services.persistence import PersistenceSink
from ..storage import TelemetryDatabase
from ..web import create_app
from .pipeline import IngestionPipeline
from .supervisor import ConnectionSupervisor
from .. import config

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Process-wide session state, owned by the composition root"""
    database: TelemetryDatabase
    mqtt: MQTTClient
    broadcaster: Broadcaster
    sink: PersistenceSink
    pipeline: IngestionPipeline
    commands: CommandService
    mqtt_supervisor: ConnectionSupervisor
    database_supervisor: ConnectionSupervisor
    started_at: float = field(default_factory=time.monotonic)

    def status(self) -> StatusReport:
        return StatusReport(
            mqtt=self.mqtt.connected,
            database=self.database.connected,
            clients=self.broadcaster.client_count,
            uptime=round(time.monotonic() - self.started_at, 3),
        )


def build_context(database: Optional[TelemetryDatabase] = None,
                  mqtt_client: Optional[MQTTClient] = None) -> AppContext:
    """Wire every component together"""
    database = database or TelemetryDatabase(config.DATABASE_PATH)
    mqtt_client = mqtt_client or MQTTClient()

    broadcaster = Broadcaster()
    sink = PersistenceSink(database)
    pipeline = IngestionPipeline(sink, broadcaster)
    commands = CommandService(mqtt_client, broadcaster)

    mqtt_client.register_callback(config.MQTT_TOPIC, pipeline.handle_message)
    mqtt_client.register_callback(config.MQTT_COMMAND_TOPIC, commands.handle_message)

    async def connect_database():
        await asyncio.to_thread(database.initialize)

    mqtt_supervisor = ConnectionSupervisor("MQTT broker", mqtt_client.connect)
    database_supervisor = ConnectionSupervisor("Database", connect_database)
    mqtt_client.on_connection_lost = mqtt_supervisor.connection_lost

    return AppContext(
        database=database,
        mqtt=mqtt_client,
        broadcaster=broadcaster,
        sink=sink,
        pipeline=pipeline,
        commands=commands,
        mqtt_supervisor=mqtt_supervisor,
        database_supervisor=database_supervisor,
    )


class TelemetryServer:
    """Runs the MQTT relay, the store and the HTTP/WebSocket server on one loop"""

    def __init__(self, context: Optional[AppContext] = None):
        logger.info("Initializing Hiu Paus telemetry server...")
        self.context = context or build_context()
        self.app = create_app(self.context)
        self.http = uvicorn.Server(uvicorn.Config(
            self.app,
            host=config.HTTP_HOST,
            port=config.HTTP_PORT,
            log_config=None,
        ))
        self.running = False
        logger.info("Telemetry server initialized successfully")

    async def start(self):
        """Start all components and run until stopped"""
        logger.info("Starting Hiu Paus telemetry server...")
        self.running = True
        context = self.context

        dispatcher = asyncio.create_task(context.mqtt.dispatch_forever())
        supervisors = [
            asyncio.create_task(context.database_supervisor.run()),
            asyncio.create_task(context.mqtt_supervisor.run()),
        ]
        logger.info(f"🚀 Dashboard: http://localhost:{config.HTTP_PORT}")

        # uvicorn owns SIGINT/SIGTERM; serve() returns once either arrives
        try:
            await self.http.serve()
        finally:
            await self.stop()
            dispatcher.cancel()
            await asyncio.gather(dispatcher, *supervisors, return_exceptions=True)

    async def stop(self):
        """Stop the server gracefully"""
        if not self.running:
            return
        logger.info("Stopping Hiu Paus telemetry server...")
        self.running = False

        self.context.mqtt_supervisor.stop()
        self.context.database_supervisor.stop()
        if self.context.mqtt.connected:
            await self.context.mqtt.disconnect()
        self.http.should_exit = True

        logger.info("Telemetry server stopped")
