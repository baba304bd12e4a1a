"""In-memory caches of rules, mutes, subscriptions and business groups.

Each cache remembers the row count and last-update stamp of the data it
holds, so a periodic sync can skip reloading when nothing has changed.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Hashable, Iterable, Mapping
from typing import Any, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def group_by(items: Iterable[T], key: Callable[[T], K]) -> dict[K, list[T]]:
    """Group ``items`` into lists by ``key``, keeping their original order."""
    groups: dict[K, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


class StatCache:
    """Base for caches that track the statistics of their last load."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stat_total = -1
        self._stat_last_updated = -1
        self._data: dict[Any, Any] = {}

    def stat_changed(self, total: int, last_updated: int) -> bool:
        """Whether ``total`` and ``last_updated`` differ from the cached ones."""
        return not (
            self._stat_total == total and self._stat_last_updated == last_updated
        )

    def reset(self) -> None:
        """Forget all data and statistics."""
        with self._lock:
            self._stat_total = -1
            self._stat_last_updated = -1
            self._data = {}

    def _store(self, data: Mapping[Any, Any], total: int, last_updated: int) -> None:
        with self._lock:
            self._data = dict(data)
        self._stat_total = total
        self._stat_last_updated = last_updated

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class AlertRuleCache(StatCache):
    """Alert rules keyed by rule id."""

    def set(self, rules: Mapping[int, Any], total: int, last_updated: int) -> None:
        """Replace all rules and record the statistics they were loaded with."""
        self._store(rules, total, last_updated)

    def get(self, rule_id: int) -> Any | None:
        """The rule with ``rule_id``, or None."""
        with self._lock:
            return self._data.get(rule_id)

    def rule_ids(self) -> list[int]:
        """Ids of all cached rules."""
        with self._lock:
            return list(self._data)


class AlertMuteCache(StatCache):
    """Alert mutes grouped by business group id."""

    def set(
        self, mutes: Mapping[int, list[Any]], total: int, last_updated: int
    ) -> None:
        """Replace all mutes and record the statistics they were loaded with."""
        self._store(mutes, total, last_updated)

    def gets(self, group_id: int) -> list[Any] | None:
        """The mutes of ``group_id``, or None if the group has none cached."""
        with self._lock:
            return self._data.get(group_id)

    def all(self) -> dict[int, list[Any]]:
        """Copies of every cached mute, grouped by business group id."""
        with self._lock:
            return {
                group_id: [copy.copy(mute) for mute in mutes]
                for group_id, mutes in self._data.items()
                if mutes
            }


class AlertSubscribeCache(StatCache):
    """Alert subscriptions grouped by rule id (0 for global ones)."""

    def set(
        self, subscribes: Mapping[int, list[Any]], total: int, last_updated: int
    ) -> None:
        """Replace all subscriptions and record the statistics they were loaded with."""
        self._store(subscribes, total, last_updated)

    def get(self, rule_id: int) -> list[Any] | None:
        """The subscriptions of ``rule_id``, or None if there are none cached."""
        with self._lock:
            return self._data.get(rule_id)

    def copies(self, rule_id: int) -> list[Any]:
        """Copies of the subscriptions of ``rule_id``; empty if there are none."""
        with self._lock:
            return [copy.copy(sub) for sub in self._data.get(rule_id, ())]


class BusiGroupCache(StatCache):
    """Business groups keyed by id."""

    def set(self, groups: Mapping[int, Any], total: int, last_updated: int) -> None:
        """Replace all groups and record the statistics they were loaded with."""
        self._store(groups, total, last_updated)

    def get(self, group_id: int) -> Any | None:
        """The group with ``group_id``, or None."""
        with self._lock:
            return self._data.get(group_id)


class RecordingRuleCache(StatCache):
    """Recording rules keyed by rule id."""

    def set(self, rules: Mapping[int, Any], total: int, last_updated: int) -> None:
        """Replace all rules and record the statistics they were loaded with."""
        self._store(rules, total, last_updated)

    def get(self, rule_id: int) -> Any | None:
        """The rule with ``rule_id``, or None."""
        with self._lock:
            return self._data.get(rule_id)

    def rule_ids(self) -> list[int]:
        """Ids of all cached rules."""
        with self._lock:
            return list(self._data)