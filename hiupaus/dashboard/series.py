"""Fixed-capacity chart series kept by a live-view client"""

import csv
import io
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..models import CanonicalReading
from ..services.normalizer import FieldRule, parse_float, resolve
from .. import config

logger = logging.getLogger(__name__)

# Pushed readings are nested; stored history rows are flat
CHANNEL_RULES: Tuple[FieldRule, ...] = (
    FieldRule("speed", (("speed_cms",),), 0.0, parse_float),
    FieldRule("temperature", (("temperature",),), 0.0, parse_float),
    FieldRule("dissolved_oxygen", (("dissolved_oxygen",),), 0.0, parse_float),
    FieldRule("pressure", (("pressure",),), 0.0, parse_float),
    FieldRule("depth", (("depth",),), 0.0, parse_float),
    FieldRule("accel_x", (("acceleration", "x"), ("accel_x",)), 0.0, parse_float),
    FieldRule("accel_y", (("acceleration", "y"), ("accel_y",)), 0.0, parse_float),
    FieldRule("accel_z", (("acceleration", "z"), ("accel_z",)), 0.0, parse_float),
)
CHANNELS = tuple(rule.target for rule in CHANNEL_RULES)

CSV_HEADER = (
    "Timestamp", "Speed(cm/s)", "Temperature(°C)", "DO(mg/L)",
    "Pressure(kPa)", "Depth(m)", "AccelX(g)", "AccelY(g)", "AccelZ(g)",
)


def format_label(timestamp: Optional[float] = None) -> str:
    """Local time of day, HH.MM.SS. Falls back to now when the timestamp is
    missing or outside the platform's datetime range (e.g. epoch millis)."""
    if timestamp is not None:
        try:
            return datetime.fromtimestamp(timestamp).strftime("%H.%M.%S")
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Timestamp {timestamp!r} out of range, labelling with receipt time")
    return datetime.now().strftime("%H.%M.%S")


def format_value(value: float) -> str:
    """Render a sample the way it was received (25.0 -> "25")"""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


@dataclass(frozen=True)
class SeriesSnapshot:
    labels: Tuple[str, ...]
    channels: Dict[str, Tuple[float, ...]]

    def __len__(self):
        return len(self.labels)


class SeriesBuffer:
    """Insertion-ordered, drop-oldest series for every charted metric.

    All channels and the label channel always have the same length: a push
    appends to each of them and an eviction removes the oldest element from
    each of them, under one lock.
    """

    def __init__(self, capacity: int = config.MAX_DATA_POINTS):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._labels: deque = deque()
        self._channels: Dict[str, deque] = {name: deque() for name in CHANNELS}

    def __len__(self):
        with self._lock:
            return len(self._labels)

    def push(self, reading: Union[CanonicalReading, Mapping[str, Any]]):
        """Append one sample; absent or unparsable values become 0"""
        if isinstance(reading, CanonicalReading):
            reading = reading.to_dict()
        if not isinstance(reading, Mapping):
            reading = {}

        timestamp = parse_float(reading.get("timestamp"))
        label = format_label(timestamp)
        values = {rule.target: resolve(reading, rule) for rule in CHANNEL_RULES}

        with self._lock:
            self._labels.append(label)
            for name, value in values.items():
                self._channels[name].append(value)

            if len(self._labels) > self.capacity:
                self._labels.popleft()
                for channel in self._channels.values():
                    channel.popleft()

    def clear(self):
        """Empty every channel"""
        with self._lock:
            self._labels.clear()
            for channel in self._channels.values():
                channel.clear()

    def snapshot(self) -> SeriesSnapshot:
        """Consistent copy of every channel"""
        with self._lock:
            return SeriesSnapshot(
                labels=tuple(self._labels),
                channels={name: tuple(channel) for name, channel in self._channels.items()},
            )

    def to_csv(self) -> str:
        """CSV text: header row, then one row per sample in insertion order"""
        snapshot = self.snapshot()
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for i, label in enumerate(snapshot.labels):
            writer.writerow([label] + [format_value(snapshot.channels[name][i]) for name in CHANNELS])
        return output.getvalue()

    def export_csv(self, directory: Union[str, Path] = ".") -> Path:
        """Write the buffer to monitoring_hiu_paus<timestamp>.csv in directory"""
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds").replace(":", "-")
        path = Path(directory) / f"monitoring_hiu_paus{stamp}.csv"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_csv(), encoding="utf-8")
        logger.info(f"Exported {len(self)} samples to {path}")
        return path
