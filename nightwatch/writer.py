"""Sharded sample queues feeding remote-write backends."""

from __future__ import annotations

import base64
import logging
import threading
import zlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nightwatch.queue import LimitedQueue

logger = logging.getLogger(__name__)


@dataclass
class WriterOptions:
    """Settings of one remote-write backend; timeouts are in milliseconds."""

    url: str = ""
    cluster_name: str = ""
    basic_auth_user: str = ""
    basic_auth_pass: str = ""
    headers: list[str] = field(default_factory=list)
    timeout: int = 10000
    dial_timeout: int = 3000
    tls_handshake_timeout: int = 30000
    expect_continue_timeout: int = 1000
    idle_conn_timeout: int = 90000
    keep_alive: int = 30000
    max_conns_per_host: int = 0
    max_idle_conns: int = 100
    max_idle_conns_per_host: int = 100


def shard_index(ident: str, queue_count: int) -> int:
    """The queue index for ``ident``: its CRC-32 modulo ``queue_count``."""
    return (zlib.crc32(ident.encode("utf-8")) & 0xFFFFFFFF) % queue_count


def remote_write_headers(
    options: WriterOptions, extra: Mapping[str, str] | None = None
) -> dict[str, str]:
    """HTTP headers for a remote-write request to the backend in ``options``.

    ``extra`` overrides the defaults; basic auth is added when a user is set;
    ``options.headers`` is a flat name/value list applied only when it has an
    even length.
    """
    headers = {
        "Content-Encoding": "snappy",
        "Content-Type": "application/x-protobuf",
        "User-Agent": "n9e",
        "X-Prometheus-Remote-Write-Version": "0.1.0",
    }
    if extra:
        headers.update(extra)

    if options.basic_auth_user:
        credentials = f"{options.basic_auth_user}:{options.basic_auth_pass}"
        encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {encoded}"

    pairs = options.headers
    if pairs and len(pairs) % 2 == 0:
        for name, value in zip(pairs[::2], pairs[1::2]):
            headers[name] = value
    return headers


class Writers:
    """Per-cluster sets of sample queues and the backends that drain them."""

    def __init__(
        self,
        queue_count: int,
        queue_max_size: int,
        queue_pop_size: int,
        default_cluster: str = "",
    ) -> None:
        if queue_count <= 0:
            raise ValueError("queue_count must be positive")
        self.queue_count = queue_count
        self.queue_max_size = queue_max_size
        self.queue_pop_size = queue_pop_size
        self.default_cluster = default_cluster
        self.backends: dict[str, WriterOptions] = {}
        self._queues: dict[str, dict[int, LimitedQueue]] = {}
        self._lock = threading.Lock()

    def add_cluster(self, cluster: str) -> None:
        """Create the queues of ``cluster`` unless they already exist."""
        with self._lock:
            if cluster in self._queues:
                return
            self._queues[cluster] = {
                index: LimitedQueue(self.queue_max_size)
                for index in range(self.queue_count)
            }

    def put(self, name: str, options: WriterOptions) -> None:
        """Register a backend under ``name`` and make sure its cluster has queues."""
        self.add_cluster(options.cluster_name)
        with self._lock:
            self.backends[name] = options

    def push_sample(self, ident: str, sample: Any, cluster: str | None = None) -> bool:
        """Queue ``sample`` on the shard of ``ident``; False if it was not queued."""
        if cluster is None:
            cluster = self.default_cluster
        with self._lock:
            queues = self._queues.get(cluster)
        if queues is None:
            logger.warning("Write cluster:%s not found, v:%s", cluster, sample)
            return False

        queue = queues.get(shard_index(ident, self.queue_count))
        if queue is None:
            return False
        if not queue.push_front(sample):
            logger.warning(
                "Write cluster:%s channel(%s) full, current channel size: %d",
                cluster, ident, len(queue),
            )
            return False
        return True

    def queue_for(self, cluster: str, index: int) -> LimitedQueue | None:
        """The queue ``index`` of ``cluster``, or None."""
        with self._lock:
            return self._queues.get(cluster, {}).get(index)

    def drain(self, cluster: str, index: int) -> list[Any]:
        """Pop up to ``queue_pop_size`` of the oldest samples from one queue."""
        queue = self.queue_for(cluster, index)
        if queue is None:
            return []
        return queue.pop_back(self.queue_pop_size)