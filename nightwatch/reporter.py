"""Counts engine errors and periodically hands the tally to a callback."""

from __future__ import annotations

import enum
import threading
from collections import Counter
from collections.abc import Callable


class ErrorType(str, enum.Enum):
    """Kinds of errors the engine reports."""

    QUERY_PROMETHEUS_ERROR = "QueryPrometheusError"
    RUNTIME_ERROR = "RuntimeError"

    def __str__(self) -> str:
        return self.value


class ErrorReporter:
    """Accumulates error counts and flushes them every ``interval`` seconds."""

    def __init__(
        self,
        callback: Callable[[dict[ErrorType, int]], None],
        interval: float = 60.0,
    ) -> None:
        self.callback = callback
        self.interval = interval
        self._counts: Counter[ErrorType] = Counter()
        self._lock = threading.Lock()

    def report(self, error_type: ErrorType) -> None:
        """Record one occurrence of ``error_type``."""
        with self._lock:
            self._counts[error_type] += 1

    def reset(self) -> dict[ErrorType, int] | None:
        """Return the current counts and start over; None if nothing was counted."""
        with self._lock:
            if not self._counts:
                return None
            counts = dict(self._counts)
            self._counts = Counter()
            return counts

    def flush(self) -> dict[ErrorType, int] | None:
        """Reset the counts and pass them to the callback if there were any."""
        counts = self.reset()
        if counts is not None:
            self.callback(counts)
        return counts

    def run(self, stop_event: threading.Event) -> None:
        """Flush every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.wait(self.interval):
            self.flush()