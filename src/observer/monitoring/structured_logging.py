"""
Structured Logging with Correlation Context

This module provides JSON formatting for log records emitted by the stats
pipeline, together with context variables that tag every record with the
client, the peer connection collector and the pipeline component that
produced it.
"""

import contextvars
import json
import logging
import os
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

# Correlation ID context variable (one per collect/sample/send cycle)
correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)

# Client ID context variable (the observed client)
client_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'client_id', default=None
)

# Collector ID context variable (the peer connection being collected)
collector_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'collector_id', default=None
)

# Component context variable (which pipeline component is logging)
component_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'component', default=None
)


class ComponentType(Enum):
    """Pipeline components."""
    ADAPTER = "adapter"
    COLLECTOR = "collector"
    STORAGE = "storage"
    SAMPLER = "sampler"
    ACCUMULATOR = "accumulator"
    SENDER = "sender"
    TIMER = "timer"
    EVENTS = "events"
    OBSERVER = "observer"


@dataclass
class StructuredLogRecord:
    """Structured log record with all required fields."""
    timestamp: str
    level: str
    message: str
    logger: Optional[str] = None
    correlation_id: Optional[str] = None
    client_id: Optional[str] = None
    collector_id: Optional[str] = None
    component: Optional[str] = None
    module: Optional[str] = None
    function: Optional[str] = None
    line_number: Optional[int] = None
    process_id: Optional[int] = None
    extra_data: Dict[str, Any] = field(default_factory=dict)
    error_details: Optional[Dict[str, Any]] = None
    performance_metrics: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert log record to dictionary, excluding None and empty values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {}}


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
            client_id=client_id_var.get(),
            collector_id=collector_id_var.get(),
            component=component_var.get(),
            module=record.module,
            function=record.funcName,
            line_number=record.lineno,
            process_id=os.getpid(),
        )

        if self.include_extra and hasattr(record, 'extra_data'):
            log_record.extra_data.update(record.extra_data)

        if hasattr(record, 'performance_metrics'):
            log_record.performance_metrics = record.performance_metrics

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
    """Manager for correlation context propagation."""

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def get_correlation_id() -> Optional[str]:
        return correlation_id_var.get()

    @staticmethod
    def set_correlation_id(correlation_id: Optional[str] = None) -> str:
        """Set correlation ID in context. Generates new one if not provided."""
        if correlation_id is None:
            correlation_id = CorrelationIdManager.generate_correlation_id()
        correlation_id_var.set(correlation_id)
        return correlation_id

    @staticmethod
    def set_client_id(client_id: Optional[str]):
        client_id_var.set(client_id)

    @staticmethod
    def set_collector_id(collector_id: Optional[str]) -> contextvars.Token:
        return collector_id_var.set(collector_id)

    @staticmethod
    def reset_collector_id(token: contextvars.Token):
        collector_id_var.reset(token)

    @staticmethod
    def get_all_context() -> Dict[str, Optional[str]]:
        return {
            "correlation_id": correlation_id_var.get(),
            "client_id": client_id_var.get(),
            "collector_id": collector_id_var.get(),
            "component": component_var.get()
        }

    @staticmethod
    def clear():
        """Clear all correlation context."""
        correlation_id_var.set(None)
        client_id_var.set(None)
        collector_id_var.set(None)
        component_var.set(None)


class StructuredLogger:
    """Logger wrapper attaching the component and structured payloads to records."""

    def __init__(self, name: str, component: Optional[str] = None):
        self.logger = logging.getLogger(name)
        self.component = component

    def log(
        self,
        level: int,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        performance_metrics: Optional[Dict[str, Any]] = None
    ):
        if self.component:
            component_var.set(self.component)

        extra = {}
        if extra_data:
            extra["extra_data"] = extra_data
        if performance_metrics:
            extra["performance_metrics"] = performance_metrics
        self.logger.log(level, message, extra=extra)

    def log_performance_metrics(self, operation: str, metrics: Dict[str, Any]):
        """Log the timing summary of a pipeline operation at debug level."""
        self.log(logging.DEBUG, f"Performance of {operation}", performance_metrics=metrics)
