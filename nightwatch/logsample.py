"""Label-based filter deciding which incoming samples get logged."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping


class LogSampleFilter:
    """Maps label names to the label values whose samples should be logged."""

    def __init__(self) -> None:
        self._filters: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def set(self, filters: Mapping[str, Iterable[str]]) -> None:
        """Add or replace the allowed values for each label in ``filters``."""
        with self._lock:
            for name, values in filters.items():
                self._filters[name] = set(values)

    def get(self) -> dict[str, set[str]]:
        """A copy of the current filters."""
        with self._lock:
            return {name: set(values) for name, values in self._filters.items()}

    def clean(self) -> None:
        """Remove all filters."""
        with self._lock:
            self._filters = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._filters)

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Whether every filter finds its label in ``labels`` with an allowed value.

        With no filters configured nothing matches.
        """
        with self._lock:
            if not self._filters:
                return False
            return all(
                name in labels and labels[name] in values
                for name, values in self._filters.items()
            )