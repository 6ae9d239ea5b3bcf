"""
Unit tests for logging configuration, structured logging and performance
monitoring.
"""

import json
import logging
import warnings

import pytest

from observer.monitoring.logging_config import (
    LogFormat,
    LogOutput,
    LoggingConfig,
    LoggingManager,
    StructuredLoggingSetup,
)
from observer.monitoring.performance_monitor import (
    MetricType,
    PerformanceMonitor,
    global_performance_monitor,
    monitor_performance,
)
from observer.monitoring.structured_logging import (
    CorrelationIdManager,
    StructuredJSONFormatter,
    StructuredLogger,
    component_var,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("observer.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLoggingConfig:
    """Test logging configuration objects."""

    def test_string_values_coerced(self):
        config = LoggingConfig(level="debug", format_type="json", output="both")
        assert config.level == "DEBUG"
        assert config.format_type is LogFormat.JSON
        assert config.output is LogOutput.BOTH

    def test_build_targets_only_configured_namespace(self):
        config = LoggingConfig(logger_name="observer_build_test", format_type=LogFormat.COLORED)
        built = StructuredLoggingSetup(config).build()

        assert list(built["loggers"]) == ["observer_build_test"]
        assert built["handlers"]["console"]["formatter"] == "colored"
        assert built["disable_existing_loggers"] is False

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "observer.log"
        config = LoggingConfig(output=LogOutput.FILE, log_file=str(log_file),
                               format_type=LogFormat.JSON, logger_name="observer_file_test")
        built = StructuredLoggingSetup(config).build()

        assert built["handlers"]["file"]["filename"] == str(log_file)
        assert built["handlers"]["file"]["formatter"] == "json"
        assert log_file.parent.exists()


class TestLoggingManager:
    """Test applying a logging configuration."""

    def test_configure_and_get_logger(self):
        manager = LoggingManager(LoggingConfig(level="WARNING", logger_name="observer_manager_test"))
        assert manager.is_configured() is False

        manager.configure()

        assert manager.is_configured() is True
        assert logging.getLogger("observer_manager_test").level == logging.WARNING
        assert manager.get_logger("sampler").name == "observer_manager_test.sampler"

    def test_unconfigured_manager_uses_default_namespace(self):
        assert LoggingManager().get_logger("sender").name == "observer.sender"


class TestStructuredLogging:
    """Test JSON formatting with correlation context."""

    def test_json_includes_context(self):
        CorrelationIdManager.set_correlation_id("corr-1")
        CorrelationIdManager.set_client_id("client-1")
        token = CorrelationIdManager.set_collector_id("pc1")
        try:
            output = json.loads(StructuredJSONFormatter().format(
                make_record(extra_data={"records": 3})
            ))
        finally:
            CorrelationIdManager.reset_collector_id(token)
            CorrelationIdManager.clear()

        assert output["message"] == "hello"
        assert output["correlation_id"] == "corr-1"
        assert output["client_id"] == "client-1"
        assert output["collector_id"] == "pc1"
        assert output["extra_data"] == {"records": 3}

    def test_generated_correlation_id(self):
        correlation_id = CorrelationIdManager.set_correlation_id()
        try:
            assert CorrelationIdManager.get_correlation_id() == correlation_id
        finally:
            CorrelationIdManager.clear()
        assert CorrelationIdManager.get_all_context()["correlation_id"] is None

    def test_structured_logger_attaches_metrics(self, caplog):
        structured = StructuredLogger("tests.observer.structured", "collector")
        with caplog.at_level(logging.DEBUG, logger="tests.observer.structured"):
            structured.log_performance_metrics("collect", {"total_count": 3})

        record = caplog.records[-1]
        assert record.performance_metrics == {"total_count": 3}
        assert component_var.get() == "collector"
        CorrelationIdManager.clear()


class TestPerformanceMonitor:
    """Test metric recording and the timing decorator."""

    def test_record_metrics(self):
        monitor = PerformanceMonitor()
        monitor.record_metric("batches", 1, MetricType.COUNTER, component="sender")
        monitor.record_metric("batches", 2, MetricType.COUNTER, component="sender")
        monitor.record_metric("queue", 7)

        assert monitor.counters["sender.batches"] == 3
        assert monitor.gauges["queue"] == 7

        monitor.reset()
        assert not monitor.counters

    def test_percentile(self):
        assert PerformanceMonitor.percentile([], 95) == 0.0
        assert PerformanceMonitor.percentile([1, 2, 3, 4, 5], 50) == 3

    @pytest.mark.asyncio
    async def test_decorator_counts_operations_and_errors(self):
        class Worker:
            @monitor_performance(component="perf_test_worker")
            async def run(self, fail: bool = False):
                if fail:
                    raise RuntimeError("failed run")
                return "done"

        worker = Worker()
        assert await worker.run() == "done"
        with pytest.raises(RuntimeError):
            await worker.run(fail=True)

        stats = global_performance_monitor.component_monitors["perf_test_worker"].get_operation_stats("run")
        assert stats["total_count"] == 2
        assert stats["error_count"] == 1

    def test_decorator_rejects_sync_functions(self):
        with pytest.raises(TypeError):
            @monitor_performance()
            def sync_operation():
                return None

    def test_decorator_raises_no_deprecation_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)

            @monitor_performance(component="perf_test_warning")
            async def operation():
                return None

        assert operation.__name__ == "operation"
