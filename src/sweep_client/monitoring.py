"""
Call monitoring for the sweep client.

Tracks duration and outcome of every facade call to the ledger node, price
sources and metadata service.
"""

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class CallMetrics:
    """Metrics for a single facade call."""
    operation: str
    status_code: int
    duration_ms: float
    timestamp: float

    @property
    def succeeded(self) -> bool:
        return 200 <= self.status_code < 400


@dataclass
class Statistics:
    """Aggregated call statistics."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0

    @property
    def avg_duration_ms(self) -> float:
        if not self.total_calls:
            return 0.0
        return self.total_duration_ms / self.total_calls

    def update(self, metrics: CallMetrics) -> None:
        self.total_calls += 1
        self.total_duration_ms += metrics.duration_ms
        self.max_duration_ms = max(self.max_duration_ms, metrics.duration_ms)
        if metrics.succeeded:
            self.successful_calls += 1
        else:
            self.failed_calls += 1


class CallMonitor:
    """Keeps global and per-operation statistics plus a bounded call history."""

    def __init__(self, max_history: int = 500):
        self._statistics = Statistics()
        self._per_operation: Dict[str, Statistics] = defaultdict(Statistics)
        self._history: deque = deque(maxlen=max_history)

    def record(self, operation: str, status_code: int, duration_ms: float) -> CallMetrics:
        """Record one finished call."""
        metrics = CallMetrics(
            operation=operation,
            status_code=status_code,
            duration_ms=duration_ms,
            timestamp=time.time(),
        )
        self._statistics.update(metrics)
        self._per_operation[operation].update(metrics)
        self._history.append(metrics)
        return metrics

    @property
    def statistics(self) -> Statistics:
        return self._statistics

    def operation_stats(self, operation: str) -> Statistics:
        return self._per_operation.get(operation, Statistics())

    def recent_calls(self, count: int = 10) -> List[CallMetrics]:
        return list(self._history)[-count:]

    def reset(self) -> None:
        self._statistics = Statistics()
        self._per_operation.clear()
        self._history.clear()
