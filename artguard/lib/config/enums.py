"""Enumerations for the artguard application."""

from datetime import timedelta
from enum import StrEnum
from typing import NamedTuple

from artguard.lib.config.constants import (
    DEDUP_WINDOW_AIR_PRESSURE,
    DEDUP_WINDOW_CO2,
    DEDUP_WINDOW_DEFAULT,
    DEDUP_WINDOW_HUMIDITY,
    DEDUP_WINDOW_MOLD_RISK,
    DEDUP_WINDOW_TEMPERATURE,
    SIGNIFICANCE_AIR_PRESSURE,
    SIGNIFICANCE_CO2,
    SIGNIFICANCE_HUMIDITY,
    SIGNIFICANCE_ILLUMINANCE,
    SIGNIFICANCE_MOLD_RISK,
    SIGNIFICANCE_TEMPERATURE,
)


class NotificationBackend(StrEnum):
    EMAIL = "email"
    SLACK = "slack"


class Unit(StrEnum):
    """Measurement units for sensor readings."""

    CELSIUS = "°C"
    PERCENT = "%"
    PPM = "ppm"
    HECTOPASCAL = "hPa"
    LUX = "lux"
    LEVEL = "level"


class Bound(StrEnum):
    """Side of a threshold that was exceeded."""

    UPPER = "upper"  # Value above the upper bound
    LOWER = "lower"  # Value below the lower bound


class AlertStatus(StrEnum):
    ACTIVE = "active"
    DISMISSED = "dismissed"


class _PropertyInfo(NamedTuple):
    label: str
    unit: Unit
    dedup_window: timedelta
    significance_pct: float


class Property(StrEnum):
    """Environmental properties tracked near an artifact.

    Values double as the measurement field names and the stored alert type.
    """

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    CO2 = "co2"
    AIR_PRESSURE = "air_pressure"
    ILLUMINANCE = "illuminance"
    MOLD_RISK_LEVEL = "mold_risk_level"

    @property
    def label(self) -> str:
        """Human-readable name."""
        return _PROPERTY_INFO[self].label

    @property
    def unit(self) -> Unit:
        return _PROPERTY_INFO[self].unit

    @property
    def dedup_window(self) -> timedelta:
        """Lookback window for folding exceedances into an open alert."""
        return _PROPERTY_INFO[self].dedup_window

    @property
    def significance_pct(self) -> float:
        """Percentage change that supersedes an open alert."""
        return _PROPERTY_INFO[self].significance_pct


_PROPERTY_INFO: dict[Property, _PropertyInfo] = {
    Property.TEMPERATURE: _PropertyInfo(
        "Temperature",
        Unit.CELSIUS,
        DEDUP_WINDOW_TEMPERATURE,
        SIGNIFICANCE_TEMPERATURE,
    ),
    Property.HUMIDITY: _PropertyInfo(
        "Humidity", Unit.PERCENT, DEDUP_WINDOW_HUMIDITY, SIGNIFICANCE_HUMIDITY
    ),
    Property.CO2: _PropertyInfo(
        "CO₂", Unit.PPM, DEDUP_WINDOW_CO2, SIGNIFICANCE_CO2
    ),
    Property.AIR_PRESSURE: _PropertyInfo(
        "Air Pressure",
        Unit.HECTOPASCAL,
        DEDUP_WINDOW_AIR_PRESSURE,
        SIGNIFICANCE_AIR_PRESSURE,
    ),
    Property.ILLUMINANCE: _PropertyInfo(
        "Illuminance", Unit.LUX, DEDUP_WINDOW_DEFAULT, SIGNIFICANCE_ILLUMINANCE
    ),
    Property.MOLD_RISK_LEVEL: _PropertyInfo(
        "Mold Risk", Unit.LEVEL, DEDUP_WINDOW_MOLD_RISK, SIGNIFICANCE_MOLD_RISK
    ),
}
