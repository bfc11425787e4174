"""Shared constants for the configuration module.

These constants are separated to avoid circular imports between enums.py
and settings.py.
"""

from datetime import timedelta

# Dedup lookback windows: a new exceedance inside the window is folded into
# the open alert for the same artifact/property/bound
DEDUP_WINDOW_DEFAULT = timedelta(hours=24)
DEDUP_WINDOW_TEMPERATURE = timedelta(hours=24)
DEDUP_WINDOW_HUMIDITY = timedelta(hours=24)
DEDUP_WINDOW_CO2 = timedelta(hours=12)
DEDUP_WINDOW_AIR_PRESSURE = timedelta(hours=12)
DEDUP_WINDOW_MOLD_RISK = timedelta(hours=48)

# Percentage change against the open alert's value that warrants a new alert
SIGNIFICANCE_TEMPERATURE = 5.0
SIGNIFICANCE_HUMIDITY = 10.0
SIGNIFICANCE_CO2 = 15.0
SIGNIFICANCE_AIR_PRESSURE = 3.0
SIGNIFICANCE_ILLUMINANCE = 20.0
SIGNIFICANCE_MOLD_RISK = 0.0  # Discrete levels, any change counts

# CO2 upper bound used when no material declares a CO2 threshold
CO2_FALLBACK_UPPER_PPM = 600.0

# Mold risk is reported by the sensor as 0 (none), 1 (moderate), 2 (high)
MOLD_RISK_HIGH = 2
MOLD_RISK_THRESHOLD = 1.0

# Minimum spacing between notifications for the same artifact
DEFAULT_ALERT_THRESHOLD_MINUTES = 30
