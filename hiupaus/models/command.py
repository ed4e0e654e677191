"""Command and status models"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional
from enum import Enum


class CommandType(str, Enum):
    EMERGENCY_RELEASE = "emergency_release"
    PUMP_CONTROL = "pump_control"
    CALIBRATE = "calibrate"


class CommandMessage(BaseModel):
    """Operator command received on the command topic or the live-view socket"""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    state: Optional[Any] = None
    sensor: Optional[str] = None
    value: Optional[Any] = None


class OutboundCommand(BaseModel):
    """Command published to the device"""
    model_config = ConfigDict(extra="allow")

    command: str
    timestamp: int  # epoch milliseconds


class StatusReport(BaseModel):
    status: str = "online"
    mqtt: bool
    database: bool
    clients: int
    uptime: float


class HistoryQuery(BaseModel):
    limit: int = Field(default=50, ge=1, le=1000)
    device_id: Optional[str] = None
