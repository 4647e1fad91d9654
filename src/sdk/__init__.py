"""
Configuration, exceptions and command line of the rtcstats features toolkit.
"""

from .config_manager import (
    AggregationConfig,
    ConfigManager,
    Environment,
    FeaturesConfig,
    LoggingSettings,
    LogLevel,
)
from .exceptions import ConfigurationError, InputFormatError, QualityStatsError, ValidationError

__all__ = [
    "AggregationConfig",
    "ConfigManager",
    "Environment",
    "FeaturesConfig",
    "LoggingSettings",
    "LogLevel",
    "ConfigurationError",
    "InputFormatError",
    "QualityStatsError",
    "ValidationError",
]
