"""Tests for threshold alert evaluation."""

from __future__ import annotations

from hiupaus.models import CanonicalReading
from hiupaus.services.alerter import evaluate


def _reading(**overrides) -> CanonicalReading:
    values = {
        "device_id": "FISH_MON_001",
        "timestamp": 1_700_000_000.0,
        "temperature": 25.0,
        "dissolved_oxygen": 6.0,
        "pressure": -20.0,
        "depth": 10.0,
    }
    values.update(overrides)
    return CanonicalReading(**values)


def test_nominal_reading_raises_no_alerts() -> None:
    assert evaluate(_reading()) == []


def test_high_temperature_raises_single_warning() -> None:
    alerts = evaluate(_reading(temperature=35))

    assert len(alerts) == 1
    assert alerts[0].kind == "temperature"
    assert alerts[0].severity == "warning"
    assert alerts[0].value == 35
    assert "35" in alerts[0].message


def test_low_temperature_raises_warning() -> None:
    alerts = evaluate(_reading(temperature=18.5))

    assert [alert.kind for alert in alerts] == ["temperature"]


def test_temperature_bounds_are_inclusive() -> None:
    assert evaluate(_reading(temperature=20)) == []
    assert evaluate(_reading(temperature=32)) == []


def test_low_oxygen_is_danger_with_value_in_message() -> None:
    alerts = evaluate(_reading(dissolved_oxygen=2))

    assert len(alerts) == 1
    assert alerts[0].kind == "oxygen"
    assert alerts[0].severity == "danger"
    assert "2" in alerts[0].message
    assert alerts[0].message == "Low oxygen: 2 mg/L"


def test_pressure_deviation_from_baseline() -> None:
    assert evaluate(_reading(pressure=-25)) == []
    assert evaluate(_reading(pressure=-15)) == []

    alerts = evaluate(_reading(pressure=-25.5))
    assert [(a.kind, a.severity) for a in alerts] == [("pressure", "warning")]
    assert evaluate(_reading(pressure=0))[0].message == "Pressure anomaly: 0 kPa"


def test_deep_dive_above_limit() -> None:
    assert evaluate(_reading(depth=25)) == []

    alerts = evaluate(_reading(depth=30.5))
    assert [(a.kind, a.message) for a in alerts] == [("depth", "Deep dive: 30.5 m")]


def test_all_checks_fire_independently_in_fixed_order() -> None:
    alerts = evaluate(_reading(temperature=40, dissolved_oxygen=1, pressure=10, depth=40))

    assert [alert.kind for alert in alerts] == ["temperature", "oxygen", "pressure", "depth"]


def test_repeated_violations_re_alert() -> None:
    reading = _reading(dissolved_oxygen=3)

    assert evaluate(reading) == evaluate(reading)
    assert len(evaluate(reading)) == 1


def test_zeroed_reading_alerts_on_temperature_oxygen_and_pressure() -> None:
    alerts = evaluate(CanonicalReading(device_id="x", timestamp=0.0))

    assert [alert.kind for alert in alerts] == ["temperature", "oxygen", "pressure"]
