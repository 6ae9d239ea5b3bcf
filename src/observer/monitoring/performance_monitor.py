"""
Performance Monitoring for Pipeline Operations

This module records timings, counts and error counts of the collect, sample
and send operations so that slow stats pulls or failing deliveries can be
spotted without attaching a profiler.
"""

import functools
import inspect
import logging
import statistics
import time
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class MetricType(Enum):
    """Types of metrics that can be collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"


@dataclass
class MetricValue:
    """A single metric measurement."""
    value: Union[int, float]
    timestamp: float = field(default_factory=time.time)
    labels: Dict[str, str] = field(default_factory=dict)


class PerformanceMonitor:
    """Keeps bounded histories of pipeline metrics."""

    def __init__(self, max_history_size: int = 1000):
        self.max_history_size = max_history_size
        self.metrics_history: Dict[str, deque] = defaultdict(lambda: deque(maxlen=max_history_size))
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = defaultdict(float)
        self.timers: Dict[str, deque] = defaultdict(lambda: deque(maxlen=max_history_size))
        self.component_monitors: Dict[str, 'ComponentMonitor'] = {}

    def register_component(self, component_name: str) -> 'ComponentMonitor':
        """Register a component for monitoring."""
        if component_name not in self.component_monitors:
            self.component_monitors[component_name] = ComponentMonitor(component_name, self)
        return self.component_monitors[component_name]

    def record_metric(
        self,
        metric_name: str,
        value: Union[int, float],
        metric_type: MetricType = MetricType.GAUGE,
        component: Optional[str] = None
    ):
        """Record a single metric value."""
        labels = {"component": component} if component else {}
        full_metric_name = f"{component}.{metric_name}" if component else metric_name

        if metric_type == MetricType.COUNTER:
            self.counters[full_metric_name] += value
        elif metric_type == MetricType.GAUGE:
            self.gauges[full_metric_name] = value
        elif metric_type == MetricType.TIMER:
            self.timers[full_metric_name].append(value)

        self.metrics_history[full_metric_name].append(MetricValue(value=value, labels=labels))

    def get_component_summary(self, component_name: str) -> Dict[str, Any]:
        if component_name not in self.component_monitors:
            return {}
        return self.component_monitors[component_name].get_summary()

    def reset(self):
        self.metrics_history.clear()
        self.counters.clear()
        self.gauges.clear()
        self.timers.clear()
        self.component_monitors.clear()

    @staticmethod
    def percentile(values: List[float], percentile: float) -> float:
        """Calculate percentile value with linear interpolation."""
        if not values:
            return 0.0

        sorted_values = sorted(values)
        index = (percentile / 100) * (len(sorted_values) - 1)
        lower_index = int(index)
        upper_index = min(lower_index + 1, len(sorted_values) - 1)
        lower_value = sorted_values[lower_index]
        upper_value = sorted_values[upper_index]
        return lower_value + (upper_value - lower_value) * (index - lower_index)


class ComponentMonitor:
    """Monitor for one pipeline component."""

    def __init__(self, component_name: str, parent_monitor: PerformanceMonitor):
        self.component_name = component_name
        self.parent_monitor = parent_monitor
        self.operation_timings: Dict[str, deque] = defaultdict(lambda: deque(maxlen=1000))
        self.operation_counts: Dict[str, int] = defaultdict(int)
        self.error_counts: Dict[str, int] = defaultdict(int)
        self.operations_in_progress = 0
        self.last_operation_time: Optional[float] = None

    @asynccontextmanager
    async def monitor_operation(self, operation_name: str):
        """Context manager timing an operation and counting its failures."""
        start_time = time.time()
        self.operations_in_progress += 1
        try:
            yield
        except Exception:
            self._record(operation_name, time.time() - start_time, failed=True)
            raise
        else:
            self._record(operation_name, time.time() - start_time, failed=False)
        finally:
            self.operations_in_progress -= 1
            self.last_operation_time = time.time()

    def _record(self, operation_name: str, duration: float, failed: bool):
        self.operation_timings[operation_name].append(duration)
        self.operation_counts[operation_name] += 1
        if failed:
            self.error_counts[operation_name] += 1
            self.parent_monitor.record_metric(
                f"{operation_name}.error_count", 1, MetricType.COUNTER, component=self.component_name
            )
        else:
            self.parent_monitor.record_metric(
                f"{operation_name}.duration", duration * 1000, MetricType.TIMER, component=self.component_name
            )
        self.parent_monitor.record_metric(
            f"{operation_name}.count", 1, MetricType.COUNTER, component=self.component_name
        )

    def get_operation_stats(self, operation_name: str) -> Dict[str, Any]:
        """Get statistics for a specific operation."""
        timings = list(self.operation_timings.get(operation_name, ()))
        if not timings:
            return {}

        total_count = self.operation_counts[operation_name]
        error_count = self.error_counts[operation_name]
        return {
            "operation": operation_name,
            "total_count": total_count,
            "error_count": error_count,
            "error_rate": error_count / total_count if total_count > 0 else 0,
            "avg_duration_ms": statistics.mean(timings) * 1000,
            "max_duration_ms": max(timings) * 1000,
            "p95_duration_ms": PerformanceMonitor.percentile(timings, 95) * 1000,
        }

    def get_summary(self) -> Dict[str, Any]:
        return {
            "component_name": self.component_name,
            "operations_in_progress": self.operations_in_progress,
            "last_operation_time": self.last_operation_time,
            "operations": {
                name: self.get_operation_stats(name) for name in self.operation_counts
            }
        }


# Global performance monitor instance
global_performance_monitor = PerformanceMonitor()


def monitor_performance(component: Optional[str] = None, operation: Optional[str] = None):
    """Decorator timing an async pipeline operation."""
    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"monitor_performance expects a coroutine function, got {func!r}")

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            comp_name = component
            if not comp_name and args:
                comp_name = args[0].__class__.__name__
            op_name = operation or func.__name__

            monitor = global_performance_monitor.register_component(comp_name)
            async with monitor.monitor_operation(op_name):
                return await func(*args, **kwargs)

        return async_wrapper
    return decorator
