"""Request validation models."""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from artguard.lib.config import AlertStatus, Property
from artguard.lib.models import Measurement

MAX_LIMIT = 500
DEFAULT_LIMIT = 100


class InvalidParameter(Exception):
    """Raised when a request parameter or body is invalid."""


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]


class AlertsQuery(BaseModel):
    """Filters for the alert list, using the API's camelCase names."""

    model_config = ConfigDict(populate_by_name=True)

    artifact_id: str | None = Field(None, alias="artifactId")
    device_id: str | None = Field(None, alias="deviceId")
    status: AlertStatus | None = None
    prop: Property | None = Field(None, alias="property")
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)


class AlertUpdate(BaseModel):
    """Body of an alert status change. Dismissal is the only transition."""

    status: Literal["dismissed"]


class MeasurementIn(BaseModel):
    """A measurement submitted over HTTP."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    id: str = Field(min_length=1)
    device_id: str = Field(alias="deviceId", min_length=1)
    artifact_id: str = Field(alias="artifactId", min_length=1)
    timestamp: datetime | None = None
    temperature: float | None = None
    humidity: float | None = None
    co2: float | None = None
    air_pressure: float | None = Field(None, alias="airPressure")
    illuminance: float | None = None
    mold_risk_level: int | None = Field(None, alias="moldRiskLevel", ge=0, le=2)

    def to_measurement(self) -> Measurement:
        timestamp = self.timestamp or datetime.now(UTC)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return Measurement(
            id=self.id,
            device_id=self.device_id,
            artifact_id=self.artifact_id,
            timestamp=timestamp,
            temperature=self.temperature,
            humidity=self.humidity,
            co2=self.co2,
            air_pressure=self.air_pressure,
            illuminance=self.illuminance,
            mold_risk_level=self.mold_risk_level,
        )


def parse_alerts_query(params: Any) -> AlertsQuery:
    """Validate alert list query parameters.

    Raises:
        InvalidParameter: If any parameter is invalid.
    """
    try:
        return AlertsQuery.model_validate(dict(params))
    except ValidationError as e:
        raise InvalidParameter(_first_error(e)) from None


def parse_body[M: BaseModel](model: type[M], data: Any) -> M:
    """Validate a decoded JSON body against a model.

    Raises:
        InvalidParameter: If the body does not match the model.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidParameter(_first_error(e)) from None
