"""MQTT transport"""

from .client import MQTTClient

__all__ = ['MQTTClient']
