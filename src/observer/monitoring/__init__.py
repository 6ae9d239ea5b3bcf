"""
Monitoring package for the client observer.
Includes structured logging with correlation context, logging configuration
and performance monitoring of pipeline operations.
"""

from .performance_monitor import (
    PerformanceMonitor,
    global_performance_monitor,
    monitor_performance,
)
from .structured_logging import (
    StructuredLogger,
    StructuredJSONFormatter,
    CorrelationIdManager,
    ComponentType,
)
from .logging_config import (
    setup_logging,
    LoggingConfig,
    LoggingManager,
    LogFormat,
    LogOutput,
)

__all__ = [
    # Performance
    "PerformanceMonitor",
    "global_performance_monitor",
    "monitor_performance",

    # Structured logging core
    "StructuredLogger",
    "StructuredJSONFormatter",
    "CorrelationIdManager",
    "ComponentType",

    # Logging configuration
    "setup_logging",
    "LoggingConfig",
    "LoggingManager",
    "LogFormat",
    "LogOutput",
]
