"""Tests for exceedance evaluation."""

import math

import pytest

from artguard.lib.config import Bound, Property
from artguard.lib.evaluator import check_property, find_exceedances
from artguard.lib.models import UNBOUNDED, Bounds, Exceedance
from artguard.lib.thresholds import resolve_thresholds
from tests.conftest import make_measurement


class TestCheckProperty:
    """Tests for single-property comparison."""

    def test_missing_value_never_alerts(self):
        assert check_property(Property.TEMPERATURE, None, Bounds(15, 25)) is None

    def test_above_upper(self):
        result = check_property(Property.TEMPERATURE, 26.0, Bounds(15.0, 25.0))

        assert result == Exceedance(Property.TEMPERATURE, Bound.UPPER, 26.0, 25.0)

    def test_below_lower(self):
        result = check_property(Property.HUMIDITY, 35.0, Bounds(40.0, 60.0))

        assert result == Exceedance(Property.HUMIDITY, Bound.LOWER, 35.0, 40.0)

    @pytest.mark.parametrize("value", [15.0, 20.0, 25.0])
    def test_value_on_or_inside_bounds(self, value):
        """Bounds are inclusive, only strictly outside values alert."""
        assert check_property(Property.TEMPERATURE, value, Bounds(15, 25)) is None

    def test_unbounded_never_alerts(self):
        assert check_property(Property.TEMPERATURE, 99.0, UNBOUNDED) is None

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_never_alerts(self, value):
        assert check_property(Property.TEMPERATURE, value, Bounds(15, 25)) is None
        assert check_property(Property.CO2, value, UNBOUNDED) is None


class TestMoldRisk:
    """Tests for the discrete mold-risk level."""

    @pytest.mark.parametrize("level", [0, 1])
    def test_low_levels_never_alert(self, level):
        assert check_property(Property.MOLD_RISK_LEVEL, level, UNBOUNDED) is None

    def test_high_level_always_alerts(self):
        result = check_property(Property.MOLD_RISK_LEVEL, 2, UNBOUNDED)

        assert result == Exceedance(Property.MOLD_RISK_LEVEL, Bound.UPPER, 2, 1.0)

    def test_material_bounds_ignored(self):
        """Material bounds on mold risk do not change the decision."""
        assert (
            check_property(Property.MOLD_RISK_LEVEL, 1, Bounds(upper=0.0))
            is None
        )
        assert check_property(
            Property.MOLD_RISK_LEVEL, 2, Bounds(upper=5.0)
        ) == Exceedance(Property.MOLD_RISK_LEVEL, Bound.UPPER, 2, 1.0)


class TestCO2Fallback:
    """Tests for the CO2 ceiling used without material bounds."""

    def test_fallback_above_600(self):
        result = check_property(Property.CO2, 650.0, UNBOUNDED)

        assert result == Exceedance(Property.CO2, Bound.UPPER, 650.0, 600.0)

    def test_fallback_below_600(self):
        assert check_property(Property.CO2, 550.0, UNBOUNDED) is None

    def test_material_bound_replaces_fallback(self):
        """A declared CO2 bound is used instead of the fallback."""
        assert check_property(Property.CO2, 650.0, Bounds(upper=800.0)) is None
        assert check_property(
            Property.CO2, 850.0, Bounds(upper=800.0)
        ) == Exceedance(Property.CO2, Bound.UPPER, 850.0, 800.0)

    def test_lower_only_bound_disables_fallback(self):
        assert check_property(Property.CO2, 900.0, Bounds(lower=300.0)) is None


class TestFindExceedances:
    """Tests for evaluating a whole measurement."""

    def test_multiple_properties_in_enum_order(self):
        thresholds = {
            Property.TEMPERATURE: Bounds(15.0, 25.0),
            Property.HUMIDITY: Bounds(40.0, 60.0),
        }
        measurement = make_measurement(
            temperature=27.0, humidity=30.0, mold_risk_level=2
        )

        found = find_exceedances(measurement, thresholds)

        assert [e.property for e in found] == [
            Property.TEMPERATURE,
            Property.HUMIDITY,
            Property.MOLD_RISK_LEVEL,
        ]
        assert [e.bound for e in found] == [Bound.UPPER, Bound.LOWER, Bound.UPPER]

    def test_unknown_artifact_only_special_cases(self):
        """Without thresholds only CO2 fallback and mold risk can alert."""
        measurement = make_measurement(
            temperature=45.0, humidity=99.0, co2=700.0, mold_risk_level=2
        )

        found = find_exceedances(measurement, resolve_thresholds(None))

        assert {e.property for e in found} == {
            Property.CO2,
            Property.MOLD_RISK_LEVEL,
        }

    def test_no_values_no_exceedances(self):
        assert find_exceedances(make_measurement(), resolve_thresholds(None)) == []


class TestValueOf:
    def test_every_property_maps_to_its_field(self):
        measurement = make_measurement(
            temperature=21.0,
            humidity=50.0,
            co2=450.0,
            air_pressure=1013.0,
            illuminance=150.0,
            mold_risk_level=1,
        )

        assert {prop: measurement.value_of(prop) for prop in Property} == {
            Property.TEMPERATURE: 21.0,
            Property.HUMIDITY: 50.0,
            Property.CO2: 450.0,
            Property.AIR_PRESSURE: 1013.0,
            Property.ILLUMINANCE: 150.0,
            Property.MOLD_RISK_LEVEL: 1,
        }
