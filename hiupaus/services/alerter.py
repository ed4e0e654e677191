"""Threshold alerter - fixed bounds, evaluated independently per reading"""

import logging
from typing import List

from ..models import CanonicalReading, AlertEvent
from .. import config

logger = logging.getLogger(__name__)


def evaluate(reading: CanonicalReading) -> List[AlertEvent]:
    """Check a reading against the fixed thresholds.

    Checks run in a fixed order (temperature, oxygen, pressure, depth) and are
    not mutually exclusive. There is no debounce: the same violating reading
    produces the same alerts every time.
    """
    alerts = []

    # Temperature window
    if reading.temperature < config.TEMP_MIN or reading.temperature > config.TEMP_MAX:
        alerts.append(AlertEvent(
            kind="temperature",
            severity="warning",
            message=f"Temperature alert: {reading.temperature:g}°C",
            value=reading.temperature
        ))

    # Dissolved oxygen floor
    if reading.dissolved_oxygen < config.OXYGEN_MIN:
        alerts.append(AlertEvent(
            kind="oxygen",
            severity="danger",
            message=f"Low oxygen: {reading.dissolved_oxygen:g} mg/L",
            value=reading.dissolved_oxygen
        ))

    # Pressure deviation from the -20 kPa baseline
    if abs(reading.pressure - config.PRESSURE_BASELINE) > config.PRESSURE_TOLERANCE:
        alerts.append(AlertEvent(
            kind="pressure",
            severity="warning",
            message=f"Pressure anomaly: {reading.pressure:g} kPa",
            value=reading.pressure
        ))

    # Deep dive
    if reading.depth > config.DEPTH_MAX:
        alerts.append(AlertEvent(
            kind="depth",
            severity="warning",
            message=f"Deep dive: {reading.depth:g} m",
            value=reading.depth
        ))

    if alerts:
        logger.debug(f"{len(alerts)} alert(s) for {reading.device_id}: {[a.kind for a in alerts]}")

    return alerts
