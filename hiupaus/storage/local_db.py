"""
SQLite storage for Hiu Paus telemetry.
Keeps every canonical reading and every alert raised against it.
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Iterable, Optional
from contextlib import contextmanager

from ..models import CanonicalReading, AlertEvent

logger = logging.getLogger(__name__)

READING_COLUMNS = (
    "device_id", "timestamp", "speed_cms", "temperature", "dissolved_oxygen",
    "pressure", "depth", "latitude", "longitude",
    "accel_x", "accel_y", "accel_z", "gyro_x", "gyro_y", "gyro_z",
    "satellites", "quality", "pump_state",
)


class TelemetryDatabase:
    """SQLite database manager for telemetry storage."""

    def __init__(self, db_path: str = "data/hiupaus.db"):
        self.db_path = Path(db_path)
        self.connected = False

    def initialize(self):
        """Create the data directory and schema. Raises on failure."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        self.connected = True
        logger.info(f"Database ready at {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fish_monitoring (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    device_id TEXT NOT NULL,
                    timestamp REAL NOT NULL,
                    speed_cms REAL,
                    temperature REAL,
                    dissolved_oxygen REAL,
                    pressure REAL,
                    depth REAL,
                    latitude REAL,
                    longitude REAL,
                    accel_x REAL,
                    accel_y REAL,
                    accel_z REAL,
                    gyro_x REAL,
                    gyro_y REAL,
                    gyro_z REAL,
                    satellites INTEGER,
                    quality INTEGER,
                    pump_state INTEGER,
                    created_at REAL NOT NULL
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_monitoring_created
                ON fish_monitoring(created_at)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_monitoring_device
                ON fish_monitoring(device_id)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    device_id TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    message TEXT NOT NULL,
                    value REAL,
                    created_at REAL NOT NULL
                )
            """)

    # =========================================================================
    # WRITES
    # =========================================================================

    def insert_reading(self, reading: CanonicalReading) -> int:
        """Insert a reading and return its row id."""
        row = reading.to_row()
        placeholders = ", ".join("?" for _ in READING_COLUMNS)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO fish_monitoring ({', '.join(READING_COLUMNS)}, created_at) "
                f"VALUES ({placeholders}, ?)",
                tuple(row[column] for column in READING_COLUMNS) + (time.time(),)
            )
            return cursor.lastrowid

    def insert_alerts(self, alerts: Iterable[AlertEvent], device_id: str) -> int:
        """Insert alerts raised for a device; returns how many were written."""
        now = time.time()
        rows = [
            (device_id, alert.kind, alert.severity, alert.message, alert.value, now)
            for alert in alerts
        ]
        if not rows:
            return 0
        with self._get_connection() as conn:
            conn.executemany("""
                INSERT INTO alerts (device_id, kind, severity, message, value, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, rows)
        return len(rows)

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def _reading_from_row(row: sqlite3.Row) -> dict:
        reading = dict(row)
        reading["pump_state"] = bool(reading.get("pump_state"))
        return reading

    def get_latest(self) -> Optional[dict]:
        """Newest stored reading, or None when the table is empty."""
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT * FROM fish_monitoring
                ORDER BY created_at DESC, id DESC
                LIMIT 1
            """).fetchone()
        return self._reading_from_row(row) if row else None

    def get_history(self, limit: int = 100, offset: int = 0,
                    device_id: Optional[str] = None) -> list:
        """Page through stored readings, newest first."""
        query = "SELECT * FROM fish_monitoring"
        params: list = []
        if device_id:
            query += " WHERE device_id = ?"
            params.append(device_id)
        query += " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._reading_from_row(row) for row in rows]

    def get_recent(self, limit: int = 50, device_id: Optional[str] = None) -> list:
        """Most recent readings in chronological order (oldest first)."""
        return list(reversed(self.get_history(limit=limit, device_id=device_id)))

    def get_statistics(self, hours: float = 24, device_id: Optional[str] = None) -> dict:
        """Aggregate statistics over the trailing window."""
        query = """
            SELECT
                AVG(speed_cms) AS avg_speed,
                MAX(speed_cms) AS max_speed,
                MIN(speed_cms) AS min_speed,
                AVG(temperature) AS avg_temp,
                AVG(dissolved_oxygen) AS avg_do,
                AVG(depth) AS avg_depth,
                COUNT(*) AS data_points
            FROM fish_monitoring
            WHERE created_at > ?
        """
        params: list = [time.time() - hours * 3600]
        if device_id:
            query += " AND device_id = ?"
            params.append(device_id)

        with self._get_connection() as conn:
            row = conn.execute(query, params).fetchone()
        return dict(row)

    def get_recent_alerts(self, limit: int = 50) -> list:
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM alerts ORDER BY created_at DESC, id DESC LIMIT ?
            """, (limit,)).fetchall()
        return [dict(row) for row in rows]

    def count_readings(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM fish_monitoring").fetchone()[0]
