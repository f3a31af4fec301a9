"""Tests for performance logging module."""

import time
from unittest.mock import Mock

import pytest

from schemasmith.logging.performance import (
    PerformanceLogger,
    PerformanceMetrics,
    TimingContext,
    TimingMetrics,
)


class TestTimingMetrics:
    """Test cases for TimingMetrics class."""

    def test_timing_metrics_initialization(self):
        """Test TimingMetrics initializes correctly."""
        timing = TimingMetrics(operation="tables.list", start_time=time.perf_counter())

        assert timing.operation == "tables.list"
        assert timing.end_time is None
        assert timing.duration is None
        assert timing.duration_ms is None
        assert timing.is_complete is False

    def test_timing_metrics_completion(self):
        """Test completing a timing measurement."""
        timing = TimingMetrics(operation="tables.list", start_time=time.perf_counter())

        timing.complete()

        assert timing.is_complete is True
        assert timing.success is True
        assert timing.duration >= 0
        assert timing.duration_ms == pytest.approx(timing.duration * 1000)

    def test_timing_metrics_failure(self):
        timing = TimingMetrics(operation="tables.drop", start_time=time.perf_counter())

        timing.complete(success=False, error="not found")

        assert timing.success is False
        assert timing.error == "not found"


class TestPerformanceMetrics:
    """Test cases for PerformanceMetrics class."""

    @staticmethod
    def _timing(duration, success=True, error=None):
        timing = TimingMetrics(operation="op", start_time=0.0)
        timing.end_time = duration
        timing.duration = duration
        timing.success = success
        timing.error = error
        return timing

    def test_performance_metrics_initialization(self):
        metrics = PerformanceMetrics(operation="op")

        assert metrics.total_calls == 0
        assert metrics.success_rate == 0.0
        assert metrics.min_duration is None

    def test_aggregates(self):
        """Test statistics over several timings."""
        metrics = PerformanceMetrics(operation="op")

        metrics.add_timing(self._timing(0.1))
        metrics.add_timing(self._timing(0.3))
        metrics.add_timing(self._timing(0.2, success=False, error="boom"))

        assert metrics.total_calls == 3
        assert metrics.successful_calls == 2
        assert metrics.failed_calls == 1
        assert metrics.errors == ["boom"]
        assert metrics.min_duration == pytest.approx(0.1)
        assert metrics.max_duration == pytest.approx(0.3)
        assert metrics.avg_duration == pytest.approx(0.2)
        assert metrics.median_duration == pytest.approx(0.2)
        assert metrics.success_rate == pytest.approx(200 / 3)

    def test_incomplete_timing_ignored(self):
        metrics = PerformanceMetrics(operation="op")

        metrics.add_timing(TimingMetrics(operation="op", start_time=0.0))

        assert metrics.total_calls == 0

    def test_metrics_to_dict(self):
        metrics = PerformanceMetrics(operation="op")
        metrics.add_timing(self._timing(0.5, success=False, error="x"))

        data = metrics.to_dict()

        assert data["operation"] == "op"
        assert data["total_calls"] == 1
        assert data["error_count"] == 1
        assert data["success_rate"] == 0.0


class TestTimingContext:
    """Test cases for TimingContext class."""

    def test_timing_context_as_context_manager(self):
        """Test TimingContext measures duration."""
        with TimingContext("views.get") as timer:
            time.sleep(0.01)

        assert timer.duration >= 0.005
        assert timer.timing.success is True

    def test_timing_context_with_exception(self):
        """Test TimingContext records failures and re-raises."""
        timer = TimingContext("views.get")

        with pytest.raises(ValueError):
            with timer:
                raise ValueError("bad view")

        assert timer.timing.success is False
        assert timer.timing.error == "bad view"

    def test_timing_context_with_logger(self):
        """Test TimingContext logs the timing."""
        logger = Mock()

        with TimingContext("views.get", logger=logger, metadata={"datasource_id": "main"}):
            pass

        logger.debug.assert_called_once()
        _, kwargs = logger.debug.call_args
        assert kwargs["operation"] == "views.get"
        assert kwargs["datasource_id"] == "main"
        assert kwargs["success"] is True

    def test_slow_operation_logged_as_warning(self):
        logger = Mock()

        with TimingContext("tables.get", logger=logger, slow_threshold_ms=0.001) as timer:
            time.sleep(0.005)

        assert timer.is_slow is True
        logger.debug.assert_not_called()
        _, kwargs = logger.warning.call_args
        assert kwargs["threshold_ms"] == 0.001

    def test_no_threshold_is_never_slow(self):
        with TimingContext("tables.get") as timer:
            time.sleep(0.002)

        assert timer.is_slow is False

    def test_properties_before_enter(self):
        timer = TimingContext("x")

        assert timer.timing is None
        assert timer.duration is None
        assert timer.duration_ms is None


class TestPerformanceLogger:
    """Test cases for PerformanceLogger class."""

    def test_performance_logger_initialization(self):
        perf = PerformanceLogger("services")

        assert perf.name == "services"
        assert perf.auto_log is True
        assert perf.logger.name == "perf.services"

    def test_measure_context_manager(self, mock_structured_logger):
        """Test measure records metrics and logs."""
        perf = PerformanceLogger("services", logger=mock_structured_logger)

        with perf.measure("tables.create", datasource_id="main") as timer:
            assert isinstance(timer, TimingContext)

        metrics = perf.get_metrics("tables.create")
        assert metrics.total_calls == 1
        assert metrics.successful_calls == 1
        mock_structured_logger.debug.assert_called_once()

    def test_measure_with_exception(self):
        """Test measure records failures."""
        perf = PerformanceLogger("services", auto_log=False)

        with pytest.raises(RuntimeError):
            with perf.measure("tables.drop"):
                raise RuntimeError("engine failure")

        metrics = perf.get_metrics("tables.drop")
        assert metrics.failed_calls == 1
        assert metrics.errors == ["engine failure"]

    def test_auto_log_disabled(self, mock_structured_logger):
        perf = PerformanceLogger("services", auto_log=False, logger=mock_structured_logger)

        with perf.measure("op"):
            pass

        mock_structured_logger.debug.assert_not_called()

    def test_track_metrics_disabled(self):
        perf = PerformanceLogger("services", auto_log=False, track_metrics=False)

        with perf.measure("op"):
            pass

        assert perf.get_metrics() == {}

    def test_get_metrics_unknown_operation(self):
        perf = PerformanceLogger("services", auto_log=False)

        metrics = perf.get_metrics("never")

        assert metrics.total_calls == 0
        assert perf.get_metrics() == {}

    def test_reset_metrics(self):
        """Test resetting one or all operations."""
        perf = PerformanceLogger("services", auto_log=False)
        for op in ("a", "b"):
            with perf.measure(op):
                pass

        perf.reset_metrics("a")
        assert set(perf.get_metrics()) == {"b"}

        perf.reset_metrics()
        assert perf.get_metrics() == {}

    def test_get_summary(self):
        """Test summary across operations."""
        perf = PerformanceLogger("services", auto_log=False)
        with perf.measure("a"):
            pass
        with pytest.raises(ValueError):
            with perf.measure("b"):
                raise ValueError()

        summary = perf.get_summary()

        assert summary["total_operations"] == 2
        assert summary["total_calls"] == 2
        assert summary["overall_success_rate"] == 50.0
        assert set(summary["operations"]) == {"a", "b"}

    def test_slow_calls_tracked(self):
        perf = PerformanceLogger("services", auto_log=False, slow_threshold_ms=0.001)
        with perf.measure("tables.get"):
            time.sleep(0.005)

        assert perf.get_metrics("tables.get").slow_calls == 1
        assert perf.slow_operations() == ["tables.get"]
        assert perf.get_summary()["slow_calls"] == 1

    def test_empty_summary(self):
        summary = PerformanceLogger("services", auto_log=False).get_summary()

        assert summary["total_calls"] == 0
        assert summary["overall_success_rate"] == 0.0

    def test_performance_logger_repr(self):
        assert repr(PerformanceLogger("services")) == "PerformanceLogger(name='services', operations=0)"
