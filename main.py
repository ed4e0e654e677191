"""
Hiu Paus telemetry relay

Subscribes to the device's MQTT telemetry, stores every reading in SQLite and
pushes readings and alerts to live-view clients over a WebSocket.
"""

import asyncio
import logging
import sys
from hiupaus.core import TelemetryServer
from hiupaus.utils import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


def handle_loop_exception(loop, context):
    """Log faults that escaped a task; the process keeps running"""
    exception = context.get("exception")
    logger.error(f"Unhandled error: {context.get('message')}", exc_info=exception)


async def main():
    """Main entry point"""
    asyncio.get_running_loop().set_exception_handler(handle_loop_exception)
    server = TelemetryServer()
    
    try:
        await server.start()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
    finally:
        await server.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server crashed: {e}", exc_info=True)
        sys.exit(1)
