"""
Utility functions shared by the rtcstats features toolkit.

Validation helpers for configuration values, config/JSON file loading and
timestamp formatting for the flat feature records.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

import yaml

from .exceptions import InputFormatError, ValidationError

logger = logging.getLogger(__name__)


def validate_enum(value: Any, enum_class: Type, field_name: str) -> Any:
    """Validate that a value is a valid enum member."""
    if not isinstance(value, enum_class):
        try:
            return enum_class(value)
        except ValueError:
            valid_values = [e.value for e in enum_class]
            raise ValidationError(
                field_name, value, f"must be one of {valid_values}"
            )
    return value


def validate_range(
    value: Union[int, float],
    min_value: Optional[Union[int, float]] = None,
    max_value: Optional[Union[int, float]] = None,
    field_name: str = "value"
) -> Union[int, float]:
    """Validate that a numeric value is within a specified range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field_name, value, "must be a number")
    if min_value is not None and value < min_value:
        raise ValidationError(field_name, value, f"must be >= {min_value}")
    if max_value is not None and value > max_value:
        raise ValidationError(field_name, value, f"must be <= {max_value}")
    return value


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a YAML or JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the file format is not supported
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        if config_path.suffix in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        elif config_path.suffix == '.json':
            return json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {config_path.suffix}. "
                "Use .yaml, .yml, or .json"
            )


def load_json_file(path: Union[str, Path]) -> Any:
    """Load a JSON document, wrapping read and decode failures."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except OSError as e:
        raise InputFormatError(str(path), str(e))
    except json.JSONDecodeError as e:
        raise InputFormatError(str(path), e.msg, line_number=e.lineno)


def get_sql_timestamp(timestamp_ms: Optional[float] = None) -> str:
    """
    Format an epoch-milliseconds timestamp as an SQL timestamp string (UTC).

    Uses the current time when no timestamp is given.
    """
    if timestamp_ms is None:
        moment = datetime.now(tz=timezone.utc)
    else:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime('%Y-%m-%d %H:%M:%S.') + f"{moment.microsecond // 1000:03d}"
