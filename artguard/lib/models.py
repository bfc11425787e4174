"""Domain models for measurements, materials, artifacts and alerts."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from artguard.lib.config import AlertStatus, Bound, Property


@dataclass(frozen=True, slots=True)
class Bounds:
    """Lower/upper limits for one property. None means unbounded on that side."""

    lower: float | None = None
    upper: float | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.lower is None and self.upper is None


UNBOUNDED = Bounds()


@dataclass(frozen=True, slots=True)
class Measurement:
    """One sensor reading taken near an artifact."""

    id: str
    device_id: str
    artifact_id: str
    timestamp: datetime
    temperature: float | None = None
    humidity: float | None = None
    co2: float | None = None
    air_pressure: float | None = None
    illuminance: float | None = None
    mold_risk_level: int | None = None

    def value_of(self, prop: Property) -> float | None:
        """Return the measured value for a property, if present."""
        match prop:
            case Property.TEMPERATURE:
                return self.temperature
            case Property.HUMIDITY:
                return self.humidity
            case Property.CO2:
                return self.co2
            case Property.AIR_PRESSURE:
                return self.air_pressure
            case Property.ILLUMINANCE:
                return self.illuminance
            case Property.MOLD_RISK_LEVEL:
                return self.mold_risk_level
        raise ValueError(f"Unknown property: {prop}")


@dataclass(frozen=True, slots=True)
class Material:
    """A substance composing an artifact, with its environmental tolerances."""

    id: str
    name: str
    bounds: Mapping[Property, Bounds] = field(default_factory=dict)

    def bounds_for(self, prop: Property) -> Bounds:
        return self.bounds.get(prop, UNBOUNDED)


@dataclass(frozen=True, slots=True)
class Artifact:
    """The physical object being protected (a painting)."""

    id: str
    name: str = ""
    artist: str = ""
    location: str | None = None
    materials: tuple[Material, ...] = ()

    @property
    def display_name(self) -> str:
        if self.name and self.artist:
            return f'"{self.name}" by {self.artist}'
        return self.name or self.id


@dataclass(frozen=True, slots=True)
class Exceedance:
    """A measured value outside its resolved threshold bound."""

    property: Property
    bound: Bound
    value: float
    threshold_value: float


@dataclass(frozen=True, slots=True)
class Alert:
    """One open-or-closed violation episode."""

    id: str
    artifact_id: str
    property: Property
    exceeded_bound: Bound
    measured_value: float
    threshold_value: float
    created_at: datetime
    status: AlertStatus = AlertStatus.ACTIVE
    device_id: str | None = None
    measurement_id: str | None = None
    measured_at: datetime | None = None
    dismissed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE
