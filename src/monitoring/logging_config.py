"""
Logging Configuration and Setup Utilities

Builds a ``logging.config.dictConfig`` configuration for the toolkit from a
``LoggingConfig`` dataclass, seeded from environment variables when no
explicit settings are given.
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Dict, Any, Optional, Union
from enum import Enum
from dataclasses import dataclass

from .structured_logging import StructuredJSONFormatter, CorrelationIdManager

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LogFormat(Enum):
    """Available log formats."""
    JSON = "json"
    PLAIN = "plain"


class LogOutput(Enum):
    """Available log outputs."""
    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


@dataclass
class LoggingConfig:
    """Configuration for logging setup."""
    level: str = "INFO"
    format_type: LogFormat = LogFormat.JSON
    output: LogOutput = LogOutput.CONSOLE
    log_file: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    include_traceback: bool = True
    include_extra: bool = True

    @classmethod
    def from_env(cls, **overrides) -> "LoggingConfig":
        """Default configuration, read from LOG_* environment variables."""
        env_config = {
            'level': os.getenv('LOG_LEVEL', 'INFO').upper(),
            'format_type': LogFormat(os.getenv('LOG_FORMAT', 'json').lower()),
            'output': LogOutput(os.getenv('LOG_OUTPUT', 'console').lower()),
            'log_file': os.getenv('LOG_FILE'),
        }
        env_config.update(overrides)
        return cls(**env_config)


def build_logging_dict(config: LoggingConfig) -> Dict[str, Any]:
    """Translate a LoggingConfig into a dictConfig mapping."""
    formatter = 'json' if config.format_type == LogFormat.JSON else 'plain'
    handlers: Dict[str, Any] = {}

    if config.output in (LogOutput.CONSOLE, LogOutput.BOTH):
        handlers['console'] = {
            'class': 'logging.StreamHandler',
            'level': config.level,
            'formatter': formatter,
            'stream': 'ext://sys.stderr'
        }

    if config.output in (LogOutput.FILE, LogOutput.BOTH):
        log_path = Path(config.log_file or Path("logs") / "rtcstats_features.log")
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': config.level,
            'formatter': formatter,
            'filename': str(log_path),
            'maxBytes': config.max_file_size,
            'backupCount': config.backup_count,
            'encoding': 'utf-8'
        }

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': StructuredJSONFormatter,
                'include_extra': config.include_extra,
                'include_traceback': config.include_traceback,
            },
            'plain': {
                'format': PLAIN_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
        },
        'handlers': handlers,
        'loggers': {
            # Third-party library loggers (reduce noise)
            'numpy': {'level': 'WARNING'},
        },
        'root': {
            'level': config.level,
            'handlers': list(handlers)
        }
    }


def setup_logging(
    level: str = "INFO",
    format_type: Union[str, LogFormat] = LogFormat.JSON,
    output: Union[str, LogOutput] = LogOutput.CONSOLE,
    log_file: Optional[str] = None,
    **kwargs
) -> LoggingConfig:
    """Convenience function to setup structured logging."""
    if isinstance(format_type, str):
        format_type = LogFormat(format_type.lower())
    if isinstance(output, str):
        output = LogOutput(output.lower())

    return apply_logging_config(LoggingConfig(
        level=level.upper(),
        format_type=format_type,
        output=output,
        log_file=log_file,
        **kwargs
    ))


def apply_logging_config(config: LoggingConfig) -> LoggingConfig:
    """Install a LoggingConfig as the process logging configuration."""
    logging.config.dictConfig(build_logging_dict(config))

    logging.getLogger(__name__).debug(
        "Structured logging configured",
        extra={'extra_data': {
            'format': config.format_type.value,
            'output': config.output.value,
            'level': config.level
        }}
    )
    return config


def get_logger(name: str, component: Optional[str] = None) -> logging.Logger:
    """Get a logger, tagging subsequent records with ``component`` when given."""
    if component:
        CorrelationIdManager.set_component_context(component)
    return logging.getLogger(name)


def set_correlation_context(
    session_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    component: Optional[str] = None
) -> Dict[str, str]:
    """Set logging correlation context."""
    context = {'correlation_id': CorrelationIdManager.set_correlation_id(correlation_id)}
    if session_id:
        context['session_id'] = CorrelationIdManager.set_session_id(session_id)
    if component:
        CorrelationIdManager.set_component_context(component)
        context['component'] = component
    return context


def clear_correlation_context():
    """Clear logging correlation context."""
    CorrelationIdManager.clear()
