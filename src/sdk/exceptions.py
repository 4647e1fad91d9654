"""
Exceptions for the rtcstats features toolkit.

The aggregation engine itself never raises on numeric edge cases (division by
zero, malformed per-track series); these exceptions cover configuration and
structural input problems detected before any computation starts.
"""

from typing import Optional, Dict, Any


class QualityStatsError(Exception):
    """Base exception for all rtcstats features errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(QualityStatsError):
    """Raised when there's an error in the toolkit configuration."""
    pass


class ValidationError(QualityStatsError):
    """Raised when a configuration value or input field fails validation."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Validation failed for '{field}': {reason}",
            {
                "field": field,
                "value": value,
                "reason": reason
            }
        )


class InputFormatError(QualityStatsError):
    """Raised when a sample map or stats dump cannot be read."""

    def __init__(self, source: str, reason: str, line_number: Optional[int] = None):
        message = f"Unable to read '{source}': {reason}"
        if line_number is not None:
            message += f" (line {line_number})"
        super().__init__(
            message,
            {
                "source": source,
                "reason": reason,
                "line_number": line_number
            }
        )
