"""Persistence sink - best-effort writes of readings and alerts"""

import asyncio
import logging
from typing import List, Optional

from ..models import CanonicalReading, AlertEvent
from ..storage import TelemetryDatabase

logger = logging.getLogger(__name__)


class PersistenceSink:
    """Append readings and alerts to the store without ever failing the caller.

    SQLite calls run in a worker thread so the event loop keeps dispatching
    messages while a write is in flight. Failed writes are logged and dropped.
    """
    
    def __init__(self, database: TelemetryDatabase):
        self.database = database
        self.saved = 0
        self.failed = 0
    
    async def save(self, reading: CanonicalReading) -> Optional[int]:
        """Persist a reading; returns the row id or None when it was not stored"""
        if not self.database.connected:
            logger.warning("Database not connected - reading not persisted")
            self.failed += 1
            return None
        
        try:
            row_id = await asyncio.to_thread(self.database.insert_reading, reading)
        except Exception as e:
            logger.error(f"Database save error: {e}")
            self.failed += 1
            return None
        
        self.saved += 1
        logger.debug(f"Saved to DB with ID: {row_id}")
        return row_id
    
    async def save_alerts(self, alerts: List[AlertEvent], device_id: str) -> int:
        """Persist alerts; returns how many rows were written"""
        if not alerts or not self.database.connected:
            return 0
        
        try:
            return await asyncio.to_thread(self.database.insert_alerts, alerts, device_id)
        except Exception as e:
            logger.error(f"Alert logging error: {e}")
            return 0
