"""Hiu Paus telemetry relay"""

from .core import TelemetryServer, build_context

__all__ = ['TelemetryServer', 'build_context']
