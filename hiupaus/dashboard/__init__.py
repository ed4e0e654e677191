"""Live-view client state"""

from .series import SeriesBuffer, SeriesSnapshot, CSV_HEADER, CHANNELS
from .viewer import LiveViewState, LiveViewClient

__all__ = ['SeriesBuffer', 'SeriesSnapshot', 'CSV_HEADER', 'CHANNELS', 'LiveViewState', 'LiveViewClient']
