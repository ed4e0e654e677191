"""Models package"""

from .sensor_data import CanonicalReading, Location, Vector3, AlertEvent
from .command import CommandType, CommandMessage, OutboundCommand, StatusReport, HistoryQuery

__all__ = [
    'CanonicalReading', 'Location', 'Vector3', 'AlertEvent',
    'CommandType', 'CommandMessage', 'OutboundCommand', 'StatusReport', 'HistoryQuery',
]
