"""
Configuration management for the rtcstats features toolkit.

This module provides the configuration system used by the aggregation engine
and the command line:
- Multiple configuration sources (files, environment, code)
- Configuration validation and defaults
- Runtime overrides
"""

import os
import logging
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass, field
from pathlib import Path
import json
import yaml
from enum import Enum

from .exceptions import ConfigurationError, QualityStatsError
from .utils import validate_enum, validate_range, load_config_file

logger = logging.getLogger(__name__)

ENV_PREFIX = "RTCSTATS_FEATURES_"


class LogLevel(Enum):
    """Logging levels for the toolkit."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


@dataclass
class AggregationConfig:
    """Tunables of the quality statistics engine."""
    freeze_threshold: float = 5.0  # loss rate (%) at which a sample counts as frozen
    rtt_decimals: int = 2
    video_decimals: int = 2

    def __post_init__(self):
        validate_range(self.freeze_threshold, 0, 100, "aggregation.freeze_threshold")
        validate_range(self.rtt_decimals, 0, 10, "aggregation.rtt_decimals")
        validate_range(self.video_decimals, 0, 10, "aggregation.video_decimals")


@dataclass
class LoggingSettings:
    """Logging section of the configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "json"  # json, plain
    output: str = "console"  # console, file, both
    log_file: Optional[str] = None

    def __post_init__(self):
        self.level = validate_enum(self.level, LogLevel, "logging.level")
        if self.format not in ("json", "plain"):
            raise ConfigurationError(f"Unsupported log format: {self.format}")
        if self.output not in ("console", "file", "both"):
            raise ConfigurationError(f"Unsupported log output: {self.output}")


@dataclass
class FeaturesConfig:
    """Main toolkit configuration."""
    environment: Environment = Environment.DEVELOPMENT
    app_env: str = "dev"

    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


class ConfigManager:
    """
    Manages toolkit configuration with support for multiple sources.

    Configuration precedence (highest to lowest):
    1. Runtime overrides
    2. Environment variables
    3. Configuration files
    4. Default values
    """

    def __init__(self, config: Optional[Union[FeaturesConfig, Dict[str, Any], str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config: Can be:
                - FeaturesConfig instance
                - Dictionary of configuration values
                - Path to configuration file (str or Path)
                - None (uses defaults)
        """
        self._config = self._load_config(config)
        self._runtime_overrides: Dict[str, Any] = {}

    def _load_config(self, config: Optional[Union[FeaturesConfig, Dict[str, Any], str, Path]]) -> FeaturesConfig:
        """Load configuration from various sources."""
        if config is None:
            return FeaturesConfig()

        elif isinstance(config, FeaturesConfig):
            return config

        elif isinstance(config, dict):
            return self._create_config_from_dict(config)

        elif isinstance(config, (str, Path)):
            try:
                config_dict = load_config_file(config)
            except (OSError, ValueError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load configuration file: {e}")
            return self._create_config_from_dict(config_dict)

        else:
            raise ConfigurationError(
                f"Invalid configuration type: {type(config)}. "
                "Expected FeaturesConfig, dict, str, Path, or None"
            )

    def _create_config_from_dict(self, config_dict: Dict[str, Any]) -> FeaturesConfig:
        """Create FeaturesConfig from dictionary."""
        config_dict = dict(config_dict)
        try:
            if isinstance(config_dict.get('aggregation'), dict):
                config_dict['aggregation'] = AggregationConfig(**config_dict['aggregation'])

            if isinstance(config_dict.get('logging'), dict):
                config_dict['logging'] = LoggingSettings(**config_dict['logging'])

            if 'environment' in config_dict:
                config_dict['environment'] = validate_enum(
                    config_dict['environment'], Environment, 'environment'
                )

            return FeaturesConfig(**config_dict)

        except ConfigurationError:
            raise
        except (QualityStatsError, TypeError) as e:
            raise ConfigurationError(f"Failed to create configuration: {e}")

    @property
    def config(self) -> FeaturesConfig:
        """Get the current configuration."""
        return self._config

    @property
    def aggregation(self) -> AggregationConfig:
        """Aggregation settings with runtime and environment overrides applied."""
        base = self._config.aggregation
        return AggregationConfig(
            freeze_threshold=self.get('aggregation.freeze_threshold', base.freeze_threshold),
            rtt_decimals=self.get('aggregation.rtt_decimals', base.rtt_decimals),
            video_decimals=self.get('aggregation.video_decimals', base.video_decimals),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Supports nested keys using dot notation (e.g., 'aggregation.freeze_threshold').
        """
        if key in self._runtime_overrides:
            return self._runtime_overrides[key]

        env_key = f"{ENV_PREFIX}{key.upper().replace('.', '_')}"
        env_value = os.getenv(env_key)
        if env_value is not None:
            return self._parse_env_value(env_value)

        value = self._config
        for part in key.split('.'):
            if hasattr(value, part):
                value = getattr(value, part)
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a runtime configuration override."""
        self._runtime_overrides[key] = value
        logger.debug(f"Set runtime override: {key} = {value}")

    def update(self, updates: Dict[str, Any]) -> None:
        """Update multiple configuration values."""
        for key, value in updates.items():
            self.set(key, value)

    def reset(self) -> None:
        """Reset all runtime overrides."""
        self._runtime_overrides.clear()
        logger.debug("Reset all runtime overrides")

    def validate(self) -> List[str]:
        """
        Validate the effective configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        try:
            self.aggregation
        except QualityStatsError as e:
            errors.append(str(e))

        settings = self._config.logging
        if settings.output in ("file", "both") and settings.log_file:
            log_dir = Path(settings.log_file).parent
            if log_dir.exists() and not os.access(log_dir, os.W_OK):
                errors.append(f"log directory is not writable: {log_dir}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        def convert(obj):
            if isinstance(obj, Enum):
                return obj.value
            elif hasattr(obj, '__dict__'):
                return {
                    key: convert(value)
                    for key, value in obj.__dict__.items()
                    if not key.startswith('_')
                }
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            else:
                return obj

        config_dict = convert(self._config)
        for key, value in self._runtime_overrides.items():
            parts = key.split('.')
            target = config_dict
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value

        return config_dict

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to file."""
        path = Path(path)
        config_dict = self.to_dict()

        with open(path, 'w') as f:
            if path.suffix == '.json':
                json.dump(config_dict, f, indent=2)
            else:
                yaml.dump(config_dict, f, default_flow_style=False)

        logger.info(f"Configuration saved to {path}")

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        return value
