"""
Hiu Paus live viewer

Connects to the relay's WebSocket, keeps the dashboard series in memory and
logs every reading. Set VIEWER_EXPORT_DIR to write the buffered samples to CSV
on exit.
"""

import asyncio
import logging
from hiupaus import config
from hiupaus.dashboard import LiveViewClient
from hiupaus.utils import setup_logging

setup_logging(log_file="logs/viewer.log")
logger = logging.getLogger(__name__)


async def main():
    client = LiveViewClient(config.VIEWER_URL)
    logger.info(f"Live view connecting to {config.VIEWER_URL}")
    try:
        await client.run()
    finally:
        await client.stop()
        if config.VIEWER_EXPORT_DIR:
            client.state.export(config.VIEWER_EXPORT_DIR)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Viewer stopped by user")
