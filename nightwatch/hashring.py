"""Consistent hashing used to shard alert rules across server instances."""

from __future__ import annotations

import bisect
import logging
import threading
import zlib
from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

NODE_REPLICAS = 500
DEFAULT_REPLICAS = 20


class EmptyRingError(LookupError):
    """Raised when looking up a key in a ring with no members."""

    def __init__(self) -> None:
        super().__init__("empty circle")


def _hash_key(key: str) -> int:
    return zlib.crc32(key.encode("utf-8")) & 0xFFFFFFFF


class ConsistentHashRing:
    """A consistent hash ring with ``replicas`` virtual points per node."""

    def __init__(self, replicas: int = DEFAULT_REPLICAS, nodes: Iterable[str] = ()) -> None:
        self.replicas = replicas
        self._circle: dict[int, str] = {}
        self._members: set[str] = set()
        self._sorted_hashes: list[int] = []
        self._lock = threading.RLock()
        for node in nodes:
            self.add(node)

    def _point_keys(self, node: str) -> list[int]:
        return [_hash_key(f"{i}{node}") for i in range(self.replicas)]

    def add(self, node: str) -> None:
        """Place ``node`` on the ring."""
        with self._lock:
            for point in self._point_keys(node):
                self._circle[point] = node
            self._members.add(node)
            self._sorted_hashes = sorted(self._circle)

    def remove(self, node: str) -> None:
        """Take ``node`` off the ring."""
        with self._lock:
            for point in self._point_keys(node):
                self._circle.pop(point, None)
            self._members.discard(node)
            self._sorted_hashes = sorted(self._circle)

    def members(self) -> list[str]:
        """The nodes on the ring, sorted."""
        with self._lock:
            return sorted(self._members)

    def get(self, key: str) -> str:
        """Return the node that owns ``key``."""
        with self._lock:
            if not self._circle:
                raise EmptyRingError()
            index = bisect.bisect_right(self._sorted_hashes, _hash_key(key))
            if index >= len(self._sorted_hashes):
                index = 0
            return self._circle[self._sorted_hashes[index]]


class ClusterHashRing:
    """One consistent hash ring per cluster."""

    def __init__(self) -> None:
        self._rings: dict[str, ConsistentHashRing] = {}
        self._lock = threading.Lock()

    def get_node(self, cluster: str, pk: str) -> str:
        """Return the node owning ``pk`` in ``cluster``; creates an empty ring if needed."""
        with self._lock:
            ring = self._rings.setdefault(cluster, ConsistentHashRing(NODE_REPLICAS))
        return ring.get(pk)

    def is_hit(self, cluster: str, pk: str, current_node: str) -> bool:
        """Whether ``current_node`` owns ``pk`` in ``cluster``."""
        try:
            node = self.get_node(cluster, pk)
        except EmptyRingError as exc:
            logger.debug("cluster:%s pk:%s failed to get node from hashring:%s", cluster, pk, exc)
            return False
        return node == current_node

    def set(self, cluster: str, ring: ConsistentHashRing) -> None:
        """Replace the ring of ``cluster``."""
        with self._lock:
            self._rings[cluster] = ring

    def rebuild(self, cluster: str, nodes: Iterable[str]) -> ConsistentHashRing:
        """Build a fresh ring for ``cluster`` from ``nodes`` and install it."""
        ring = ConsistentHashRing(NODE_REPLICAS, nodes)
        self.set(cluster, ring)
        logger.info("hash ring %s rebuild %s", cluster, ring.members())
        return ring


def is_leader(endpoint: str, servers: Sequence[str]) -> bool:
    """Whether ``endpoint`` is the first of the active ``servers`` in sorted order."""
    if not servers:
        logger.error("active servers empty")
        return False
    return endpoint == sorted(servers)[0]