"""Centralized configuration for the artguard application.

This package provides:
- Enums for tracked properties, threshold bounds and notification backends
- Per-property dedup windows and significance constants
- Pydantic settings models for configuration
"""

from .enums import (
    AlertStatus,
    Bound,
    NotificationBackend,
    Property,
    Unit,
)
from .settings import (
    DispatchSettings,
    EmailSettings,
    EngineSettings,
    EventBusSettings,
    NotificationSettings,
    Settings,
    SlackSettings,
    get_settings,
)

__all__ = [
    # Enums
    "AlertStatus",
    "Bound",
    "NotificationBackend",
    "Property",
    "Unit",
    # Settings models
    "DispatchSettings",
    "EmailSettings",
    "EngineSettings",
    "EventBusSettings",
    "NotificationSettings",
    "Settings",
    "SlackSettings",
    # Functions
    "get_settings",
]
