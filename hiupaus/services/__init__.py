"""Services package"""

from .normalizer import normalize
from .alerter import evaluate
from .persistence import PersistenceSink
from .broadcaster import Broadcaster
from .command_service import CommandService

__all__ = ['normalize', 'evaluate', 'PersistenceSink', 'Broadcaster', 'CommandService']
