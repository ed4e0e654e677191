"""Core package"""

from .server import AppContext, TelemetryServer, build_context
from .pipeline import IngestionPipeline
from .supervisor import ConnectionSupervisor, ConnectionState

__all__ = [
    'AppContext', 'TelemetryServer', 'build_context',
    'IngestionPipeline', 'ConnectionSupervisor', 'ConnectionState',
]
