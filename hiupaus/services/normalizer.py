"""Reading normalizer - turns any firmware payload shape into a CanonicalReading.

Each canonical field is resolved from an ordered list of candidate key paths.
The first candidate that is present and parses wins; otherwise the field's
default is used. Nested paths are listed before their flattened aliases, so a
payload carrying both ``location.lat`` and ``latitude`` resolves to the nested
value. Supporting another firmware convention means adding a path to
FIELD_RULES, nothing else.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from ..models import CanonicalReading, Location, Vector3
from .. import config

logger = logging.getLogger(__name__)

_MISSING = object()


def parse_float(value: Any) -> Optional[float]:
    """Parse a finite float, or None when the value is unusable"""
    if value is None or isinstance(value, (dict, list)):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_int(value: Any) -> Optional[int]:
    """Parse an integer, truncating fractional input ("85.7" -> 85)"""
    number = parse_float(value)
    if number is None:
        return None
    return int(number)


def parse_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def parse_bool(value: Any) -> Optional[bool]:
    return bool(value)


@dataclass(frozen=True)
class FieldRule:
    """How one canonical field is resolved from a raw payload"""
    target: str
    paths: Tuple[Tuple[str, ...], ...]
    default: Any
    parse: Callable[[Any], Any]


FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("device_id", (("device_id",),), config.DEFAULT_DEVICE_ID, parse_str),
    FieldRule("timestamp", (("timestamp",),), None, parse_float),
    FieldRule("speed_cms", (("speed_cms",),), 0.0, parse_float),
    FieldRule("temperature", (("temperature",),), 0.0, parse_float),
    FieldRule("dissolved_oxygen", (("dissolved_oxygen",),), 0.0, parse_float),
    FieldRule("pressure", (("pressure",),), 0.0, parse_float),
    FieldRule("depth", (("depth",),), 0.0, parse_float),
    FieldRule("location.lat", (("location", "lat"), ("latitude",)), 0.0, parse_float),
    FieldRule("location.lon", (("location", "lon"), ("longitude",)), 0.0, parse_float),
    FieldRule("location.satellites",
              (("location", "satellites"), ("gps_satellites",)), 0, parse_int),
    FieldRule("acceleration.x", (("acceleration", "x"), ("accel_x",)), 0.0, parse_float),
    FieldRule("acceleration.y", (("acceleration", "y"), ("accel_y",)), 0.0, parse_float),
    FieldRule("acceleration.z", (("acceleration", "z"), ("accel_z",)), 0.0, parse_float),
    FieldRule("gyroscope.x", (("gyroscope", "x"), ("gyro_x",)), 0.0, parse_float),
    FieldRule("gyroscope.y", (("gyroscope", "y"), ("gyro_y",)), 0.0, parse_float),
    FieldRule("gyroscope.z", (("gyroscope", "z"), ("gyro_z",)), 0.0, parse_float),
    FieldRule("quality", (("quality",), ("data_quality",)), 0, parse_int),
    FieldRule("pump_state", (("pump_state",),), False, parse_bool),
)


def _lookup(raw: Mapping, path: Tuple[str, ...]) -> Any:
    node: Any = raw
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return _MISSING
        node = node[key]
    return node


def resolve(raw: Mapping, rule: FieldRule) -> Any:
    """Resolve a single field: first parsable candidate path, else the default"""
    for path in rule.paths:
        value = _lookup(raw, path)
        if value is _MISSING:
            continue
        parsed = rule.parse(value)
        if parsed is not None:
            return parsed
    return rule.default


def normalize(raw: Mapping, received_at: float = None) -> CanonicalReading:
    """Build a CanonicalReading from a raw payload. Never raises."""
    if not isinstance(raw, Mapping):
        raw = {}

    fields = {rule.target: resolve(raw, rule) for rule in FIELD_RULES}

    timestamp = fields["timestamp"]
    if timestamp is None:
        timestamp = received_at if received_at is not None else time.time()

    return CanonicalReading(
        device_id=fields["device_id"],
        timestamp=timestamp,
        speed_cms=fields["speed_cms"],
        temperature=fields["temperature"],
        dissolved_oxygen=fields["dissolved_oxygen"],
        pressure=fields["pressure"],
        depth=fields["depth"],
        location=Location(
            lat=fields["location.lat"],
            lon=fields["location.lon"],
            satellites=fields["location.satellites"],
        ),
        acceleration=Vector3(
            x=fields["acceleration.x"],
            y=fields["acceleration.y"],
            z=fields["acceleration.z"],
        ),
        gyroscope=Vector3(
            x=fields["gyroscope.x"],
            y=fields["gyroscope.y"],
            z=fields["gyroscope.z"],
        ),
        quality=fields["quality"],
        pump_state=fields["pump_state"],
    )
