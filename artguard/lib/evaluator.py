"""Exceedance evaluation for a single measurement.

Compares each measured property against its resolved bounds. Two properties
do not follow plain bound comparison:

- Mold risk is a discrete level computed by the sensor (0 none, 1 moderate,
  2 high). Only level 2 alerts and material bounds are ignored.
- CO2 falls back to a fixed ceiling when no material declares a CO2 bound,
  since buildup matters regardless of curator-specified limits.
"""

import math

from artguard.lib.config import Bound, Property
from artguard.lib.config.constants import (
    CO2_FALLBACK_UPPER_PPM,
    MOLD_RISK_HIGH,
    MOLD_RISK_THRESHOLD,
)
from artguard.lib.models import UNBOUNDED, Bounds, Exceedance, Measurement
from artguard.lib.thresholds import ThresholdMap

_CO2_FALLBACK = Bounds(upper=CO2_FALLBACK_UPPER_PPM)


def _compare(prop: Property, value: float, bounds: Bounds) -> Exceedance | None:
    if bounds.lower is not None and value < bounds.lower:
        return Exceedance(prop, Bound.LOWER, value, bounds.lower)
    if bounds.upper is not None and value > bounds.upper:
        return Exceedance(prop, Bound.UPPER, value, bounds.upper)
    return None


def check_property(
    prop: Property, value: float | None, bounds: Bounds
) -> Exceedance | None:
    """Return the exceedance for one property value, or None.

    Missing and non-finite values (NaN, infinity) never alert.
    """
    if value is None or not math.isfinite(value):
        return None

    if prop == Property.MOLD_RISK_LEVEL:
        if value == MOLD_RISK_HIGH:
            return Exceedance(prop, Bound.UPPER, value, MOLD_RISK_THRESHOLD)
        return None

    if prop == Property.CO2 and bounds.is_unbounded:
        return _compare(prop, value, _CO2_FALLBACK)

    return _compare(prop, value, bounds)


def find_exceedances(
    measurement: Measurement, thresholds: ThresholdMap
) -> list[Exceedance]:
    """Evaluate every property of a measurement independently.

    A measurement can yield several exceedances at once (e.g. temperature
    high and humidity low); they are returned in property order.
    """
    found = []
    for prop in Property:
        exceedance = check_property(
            prop,
            measurement.value_of(prop),
            thresholds.get(prop, UNBOUNDED),
        )
        if exceedance is not None:
            found.append(exceedance)
    return found
