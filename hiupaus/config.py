"""Configuration for the Hiu Paus telemetry relay"""

import os
import uuid
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
_repo_root = Path(__file__).parent.parent.resolve()
_env_file = _repo_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Base directory
BASE_DIR = Path(__file__).parent.resolve()

# MQTT Configuration
MQTT_BROKER = os.getenv("MQTT_BROKER", "b8ae5c3ad3484c4fa485c54ae6eb8ca2.s1.eu.hivemq.cloud")
MQTT_PORT = int(os.getenv("MQTT_PORT", "8883"))
MQTT_TLS = os.getenv("MQTT_TLS", "true").lower() == "true"
MQTT_KEEPALIVE = int(os.getenv("MQTT_KEEPALIVE", "60"))
MQTT_USERNAME = os.getenv("MQTT_USERNAME") or None
MQTT_PASSWORD = os.getenv("MQTT_PASSWORD") or None
MQTT_CLIENT_ID = os.getenv("MQTT_CLIENT_ID", f"server_{uuid.uuid4().hex[:8]}")

# Telemetry arrives on MQTT_TOPIC, operator commands on its /command child
MQTT_TOPIC = os.getenv("MQTT_TOPIC", "monitor/hiu-paus/data")
MQTT_COMMAND_TOPIC = f"{MQTT_TOPIC}/command"
MQTT_DEVICE_COMMAND_TOPIC = os.getenv("MQTT_DEVICE_COMMAND_TOPIC", "fish/monitor/command")

# Storage
DATABASE_PATH = os.getenv("DATABASE_PATH", str(_repo_root / "data" / "hiupaus.db"))

# HTTP / WebSocket server
HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("PORT", os.getenv("HTTP_PORT", "3000")))

# Live-view client
VIEWER_URL = os.getenv("VIEWER_URL", f"ws://localhost:{HTTP_PORT}/ws")
VIEWER_EXPORT_DIR = os.getenv("VIEWER_EXPORT_DIR") or None

# Reconnect delays (seconds), fixed, retried forever
RECONNECT_FAILURE_DELAY = float(os.getenv("RECONNECT_FAILURE_DELAY", "5"))
RECONNECT_LOST_DELAY = float(os.getenv("RECONNECT_LOST_DELAY", "3"))

# Device defaults
DEFAULT_DEVICE_ID = os.getenv("DEFAULT_DEVICE_ID", "FISH_MON_001")

# Alert thresholds
TEMP_MIN = 20.0  # °C
TEMP_MAX = 32.0
OXYGEN_MIN = 4.0  # mg/L
PRESSURE_BASELINE = -20.0  # kPa
PRESSURE_TOLERANCE = 5.0
DEPTH_MAX = 25.0  # m

# Live-view buffers
MAX_DATA_POINTS = 50
MAP_TRAIL_LENGTH = 100
TABLE_ROWS = 10
MAX_BANNERS = 3
HISTORY_DEFAULT_LIMIT = 50

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/hiupaus.log")

# Debug
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
