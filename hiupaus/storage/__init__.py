# Storage module - SQLite telemetry store
from .local_db import TelemetryDatabase

__all__ = ['TelemetryDatabase']
