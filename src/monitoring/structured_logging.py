"""
Structured Logging with Session Correlation

JSON formatting for log records plus context variables that tie every record
emitted during an aggregation pass to the stats session being processed.
"""

import logging
import json
import os
import uuid
import traceback
import contextvars
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from dataclasses import dataclass, asdict, field

# Correlation ID context variable
correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)

# Stats session being processed
session_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'session_id', default=None
)

# Component context variable (engine, extractor, publisher, cli)
component_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'component', default=None
)


@dataclass
class StructuredLogRecord:
    """Structured log record with all required fields."""
    timestamp: str
    level: str
    message: str
    logger: Optional[str] = None
    correlation_id: Optional[str] = None
    session_id: Optional[str] = None
    component: Optional[str] = None
    module: Optional[str] = None
    function: Optional[str] = None
    line_number: Optional[int] = None
    process_id: Optional[int] = None
    extra_data: Dict[str, Any] = field(default_factory=dict)
    error_details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert log record to dictionary, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(
        self,
        include_extra: bool = True,
        include_traceback: bool = True,
        sort_keys: bool = True,
        indent: Optional[int] = None
    ):
        super().__init__()
        self.include_extra = include_extra
        self.include_traceback = include_traceback
        self.sort_keys = sort_keys
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        timestamp = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()

        log_record = StructuredLogRecord(
            timestamp=timestamp,
            level=record.levelname,
            message=record.getMessage(),
            logger=record.name,
            correlation_id=correlation_id_var.get(),
            session_id=session_id_var.get(),
            component=component_var.get(),
            module=record.module,
            function=record.funcName,
            line_number=record.lineno,
            process_id=os.getpid(),
        )

        if self.include_extra and hasattr(record, 'extra_data'):
            log_record.extra_data.update(record.extra_data)

        if record.exc_info and self.include_traceback:
            log_record.error_details = {
                "exception_type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "exception_message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(
            log_record.to_dict(),
            default=str,
            ensure_ascii=False,
            sort_keys=self.sort_keys,
            indent=self.indent
        )


class CorrelationIdManager:
    """Manager for correlation ID generation and propagation."""

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def set_correlation_id(correlation_id: Optional[str] = None) -> str:
        """Set correlation ID in context. Generates new one if not provided."""
        if correlation_id is None:
            correlation_id = CorrelationIdManager.generate_correlation_id()
        correlation_id_var.set(correlation_id)
        return correlation_id

    @staticmethod
    def set_session_id(session_id: str) -> str:
        session_id_var.set(session_id)
        return session_id

    @staticmethod
    def set_component_context(component: str):
        component_var.set(component)

    @staticmethod
    def clear():
        correlation_id_var.set(None)
        session_id_var.set(None)
        component_var.set(None)
