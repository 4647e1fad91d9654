"""
Monitoring package for the rtcstats features toolkit.
Structured JSON logging with session correlation tracking.
"""

from .structured_logging import (
    StructuredJSONFormatter,
    StructuredLogRecord,
    CorrelationIdManager,
)
from .logging_config import (
    setup_logging,
    apply_logging_config,
    get_logger,
    build_logging_dict,
    LoggingConfig,
    LogFormat,
    LogOutput,
    set_correlation_context,
    clear_correlation_context
)

__all__ = [
    "StructuredJSONFormatter",
    "StructuredLogRecord",
    "CorrelationIdManager",
    "setup_logging",
    "apply_logging_config",
    "get_logger",
    "build_logging_dict",
    "LoggingConfig",
    "LogFormat",
    "LogOutput",
    "set_correlation_context",
    "clear_correlation_context",
]
