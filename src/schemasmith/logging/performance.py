"""Performance logging for SchemaSmith operations.

Services time each call through a PerformanceLogger so per-operation
latency and failure counts are available without an external metrics
system. Calls slower than the configured threshold are logged at
warning level and counted separately.

Classes:
    TimingMetrics: A single timing measurement
    PerformanceMetrics: Aggregated metrics for one operation
    TimingContext: Context manager measuring one operation
    PerformanceLogger: Measurement entry point and metrics store

Example:
    >>> perf = PerformanceLogger("services")
    >>> with perf.measure("tables.create", datasource_id="main"):
    ...     await dialect.create_table(connection, table)
    >>> perf.get_metrics("tables.create").total_calls
    1
"""

import statistics
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional, Union

from .structured import StructuredLogger


@dataclass
class TimingMetrics:
    """Metrics for a single timing measurement.

    Attributes:
        operation: Operation name
        start_time: Operation start (perf counter)
        end_time: Operation end (perf counter)
        duration: Duration in seconds
        metadata: Additional metadata
        success: Whether operation succeeded
        error: Error information if failed
    """

    operation: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None

    def complete(self, success: bool = True, error: Optional[str] = None) -> None:
        """Mark timing as complete."""
        self.end_time = time.perf_counter()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.error = error

    @property
    def duration_ms(self) -> Optional[float]:
        return self.duration * 1000 if self.duration is not None else None

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None


@dataclass
class PerformanceMetrics:
    """Aggregated performance metrics for an operation."""

    operation: str
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration: float = 0.0
    min_duration: Optional[float] = None
    max_duration: Optional[float] = None
    avg_duration: Optional[float] = None
    median_duration: Optional[float] = None
    slow_calls: int = 0
    errors: List[str] = field(default_factory=list)
    _durations: List[float] = field(default_factory=list, repr=False)

    def add_timing(self, timing: TimingMetrics, *, slow: bool = False) -> None:
        """Add a completed timing measurement to the aggregate.

        Args:
            timing: Completed measurement
            slow: Whether the call exceeded the slow threshold
        """
        if not timing.is_complete or timing.duration is None:
            return

        if slow:
            self.slow_calls += 1

        self.total_calls += 1
        if timing.success:
            self.successful_calls += 1
        else:
            self.failed_calls += 1
            if timing.error:
                self.errors.append(timing.error)

        duration = timing.duration
        self.total_duration += duration
        self._durations.append(duration)

        if self.min_duration is None or duration < self.min_duration:
            self.min_duration = duration
        if self.max_duration is None or duration > self.max_duration:
            self.max_duration = duration

        self.avg_duration = statistics.mean(self._durations)
        self.median_duration = statistics.median(self._durations)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage (0-100)."""
        if self.total_calls == 0:
            return 0.0
        return (self.successful_calls / self.total_calls) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "success_rate": self.success_rate,
            "total_duration": self.total_duration,
            "min_duration": self.min_duration,
            "max_duration": self.max_duration,
            "avg_duration": self.avg_duration,
            "median_duration": self.median_duration,
            "slow_calls": self.slow_calls,
            "error_count": len(self.errors),
        }


class TimingContext:
    """Context manager for measuring operation timing.

    Example:
        >>> with TimingContext("introspect") as timer:
        ...     tables = await dialect.get_tables(connection, None)
        >>> timer.duration_ms
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[StructuredLogger] = None,
        metadata: Optional[Dict[str, Any]] = None,
        slow_threshold_ms: Optional[float] = None,
    ) -> None:
        self.operation = operation
        self.logger = logger
        self.metadata = metadata or {}
        self.slow_threshold_ms = slow_threshold_ms
        self._timing: Optional[TimingMetrics] = None

    @property
    def timing(self) -> Optional[TimingMetrics]:
        return self._timing

    @property
    def duration(self) -> Optional[float]:
        return self._timing.duration if self._timing else None

    @property
    def duration_ms(self) -> Optional[float]:
        return self._timing.duration_ms if self._timing else None

    @property
    def is_slow(self) -> bool:
        """True once a completed timing has exceeded the slow threshold."""
        if self.slow_threshold_ms is None or self.duration_ms is None:
            return False
        return self.duration_ms > self.slow_threshold_ms

    def __enter__(self) -> "TimingContext":
        self._timing = TimingMetrics(
            operation=self.operation,
            start_time=time.perf_counter(),
            metadata=self.metadata,
        )
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._timing is None:
            return

        success = exc_type is None
        error = str(exc_val) if exc_val else None
        self._timing.complete(success=success, error=error)

        if self.logger is None:
            return
        if self.is_slow:
            self.logger.warning(
                "Slow operation",
                operation=self.operation,
                duration_ms=self._timing.duration_ms,
                threshold_ms=self.slow_threshold_ms,
                success=success,
                **self.metadata,
            )
        else:
            self.logger.debug(
                "Operation timed",
                operation=self.operation,
                duration_ms=self._timing.duration_ms,
                success=success,
                **self.metadata,
            )


class PerformanceLogger:
    """Performance logger for monitoring operation latency.

    Attributes:
        name: Logger name
        logger: Underlying structured logger
        slow_threshold_ms: Calls slower than this are logged as warnings
    """

    def __init__(
        self,
        name: str,
        *,
        auto_log: bool = True,
        track_metrics: bool = True,
        slow_threshold_ms: Optional[float] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """Initialize performance logger.

        Args:
            name: Logger name
            auto_log: Whether to log each timing
            track_metrics: Whether to track aggregated metrics
            slow_threshold_ms: Slow call threshold, None disables the check
            logger: Custom structured logger instance
        """
        self.name = name
        self.auto_log = auto_log
        self.track_metrics = track_metrics
        self.slow_threshold_ms = slow_threshold_ms
        self.logger = logger or StructuredLogger(f"perf.{name}")
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def measure(self, operation: str, **metadata: Any) -> Generator[TimingContext, None, None]:
        """Context manager for measuring operation performance.

        Args:
            operation: Operation name
            **metadata: Additional metadata

        Yields:
            TimingContext for the operation
        """
        timing_context = TimingContext(
            operation=operation,
            logger=self.logger if self.auto_log else None,
            metadata=metadata,
            slow_threshold_ms=self.slow_threshold_ms,
        )

        try:
            with timing_context as ctx:
                yield ctx
        finally:
            if self.track_metrics and timing_context.timing:
                metrics = self._metrics.setdefault(operation, PerformanceMetrics(operation=operation))
                metrics.add_timing(timing_context.timing, slow=timing_context.is_slow)

    def slow_operations(self) -> List[str]:
        """Names of operations with at least one slow call, slowest first."""
        slow = [m for m in self._metrics.values() if m.slow_calls]
        slow.sort(key=lambda m: m.max_duration or 0.0, reverse=True)
        return [m.operation for m in slow]

    def get_metrics(
        self, operation: Optional[str] = None
    ) -> Union[PerformanceMetrics, Dict[str, PerformanceMetrics]]:
        """Get metrics for one operation, or a dict of all of them."""
        if operation:
            return self._metrics.get(operation, PerformanceMetrics(operation=operation))
        return dict(self._metrics)

    def reset_metrics(self, operation: Optional[str] = None) -> None:
        """Reset metrics for one operation, or for all operations."""
        if operation:
            self._metrics.pop(operation, None)
        else:
            self._metrics.clear()

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary across all operations."""
        total_calls = sum(m.total_calls for m in self._metrics.values())
        total_successful = sum(m.successful_calls for m in self._metrics.values())

        return {
            "total_operations": len(self._metrics),
            "total_calls": total_calls,
            "total_duration": sum(m.total_duration for m in self._metrics.values()),
            "overall_success_rate": (total_successful / total_calls * 100) if total_calls else 0.0,
            "slow_calls": sum(m.slow_calls for m in self._metrics.values()),
            "operations": {name: metrics.to_dict() for name, metrics in self._metrics.items()},
        }

    def __repr__(self) -> str:
        return f"PerformanceLogger(name={self.name!r}, operations={len(self._metrics)})"
