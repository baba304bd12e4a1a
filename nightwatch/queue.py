"""Thread-safe FIFO queues used to buffer samples and events."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from typing import Any


class SafeList:
    """An unbounded double-ended queue guarded by a lock.

    New items enter at the front and are consumed from the back,
    so items come out in the order they were pushed.
    """

    def __init__(self) -> None:
        self._items: deque[Any] = deque()
        self._lock = threading.Lock()

    def push_front(self, item: Any) -> None:
        """Add one item at the front."""
        with self._lock:
            self._items.appendleft(item)

    def push_front_batch(self, items: Iterable[Any]) -> None:
        """Add several items at the front, in the given order."""
        with self._lock:
            self._items.extendleft(items)

    def pop_back(self, max_items: int) -> list[Any]:
        """Remove and return up to ``max_items`` of the oldest items."""
        with self._lock:
            count = min(len(self._items), max_items)
            return [self._items.pop() for _ in range(count)]

    def remove_all(self) -> None:
        """Drop every queued item."""
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class LimitedQueue:
    """A :class:`SafeList` that refuses new items once it holds ``max_size``."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._list = SafeList()

    def push_front(self, item: Any) -> bool:
        """Queue one item; return False if the queue is already full."""
        if len(self._list) >= self.max_size:
            return False
        self._list.push_front(item)
        return True

    def push_front_batch(self, items: Iterable[Any]) -> bool:
        """Queue a batch; return False if the queue is already full.

        The size is checked once, before the batch is added.
        """
        if len(self._list) >= self.max_size:
            return False
        self._list.push_front_batch(items)
        return True

    def pop_back(self, max_items: int) -> list[Any]:
        """Remove and return up to ``max_items`` of the oldest items."""
        return self._list.pop_back(max_items)

    def remove_all(self) -> None:
        """Drop every queued item."""
        self._list.remove_all()

    def __len__(self) -> int:
        return len(self._list)