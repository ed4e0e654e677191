"""Sensor data models and schemas"""

from dataclasses import dataclass, asdict, field


@dataclass(frozen=True)
class Location:
    """GPS fix"""
    lat: float = 0.0
    lon: float = 0.0
    satellites: int = 0


@dataclass(frozen=True)
class Vector3:
    """Three-axis IMU sample"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class CanonicalReading:
    """Normalized sensor reading; every numeric field is always a finite number"""
    device_id: str
    timestamp: float  # seconds since epoch
    speed_cms: float = 0.0
    temperature: float = 0.0  # °C
    dissolved_oxygen: float = 0.0  # mg/L
    pressure: float = 0.0  # kPa
    depth: float = 0.0  # m
    location: Location = field(default_factory=Location)
    acceleration: Vector3 = field(default_factory=Vector3)  # g
    gyroscope: Vector3 = field(default_factory=Vector3)
    quality: int = 0  # percent
    pump_state: bool = False
    
    def to_dict(self):
        """Convert to the nested wire shape"""
        return asdict(self)
    
    def to_row(self):
        """Flatten into the fish_monitoring column layout"""
        return {
            "device_id": self.device_id,
            "timestamp": self.timestamp,
            "speed_cms": self.speed_cms,
            "temperature": self.temperature,
            "dissolved_oxygen": self.dissolved_oxygen,
            "pressure": self.pressure,
            "depth": self.depth,
            "latitude": self.location.lat,
            "longitude": self.location.lon,
            "accel_x": self.acceleration.x,
            "accel_y": self.acceleration.y,
            "accel_z": self.acceleration.z,
            "gyro_x": self.gyroscope.x,
            "gyro_y": self.gyroscope.y,
            "gyro_z": self.gyroscope.z,
            "satellites": self.location.satellites,
            "quality": self.quality,
            "pump_state": int(self.pump_state),
        }


@dataclass(frozen=True)
class AlertEvent:
    """Threshold violation for a single reading"""
    kind: str  # "temperature", "oxygen", "pressure", "depth"
    severity: str  # "warning" or "danger"
    message: str
    value: float
    
    def to_dict(self):
        """Convert to dictionary"""
        return asdict(self)
