"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, ConfigurationError
from .models import (
    FetchConfig,
    GlobalConfig,
    LogoCacheConfig,
    NotificationConfig,
    Publisher,
    ScheduleConfig,
    ScheduleType,
    StoreConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ConfigurationError",
    "FetchConfig",
    "GlobalConfig",
    "LogoCacheConfig",
    "NotificationConfig",
    "Publisher",
    "ScheduleConfig",
    "ScheduleType",
    "StoreConfig",
]
