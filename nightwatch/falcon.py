"""Conversion of Open-Falcon push payloads into time series."""

from __future__ import annotations

import gzip
import json
import zlib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from nightwatch.series import (
    METRIC_NAME_LABEL,
    Label,
    MetricError,
    Sample,
    TimeSeries,
    is_valid_label_name,
    is_valid_metric_name,
    sanitize_name,
)

_MAX_SECONDS = 0xFFFFFFFF
_MAX_FUTURE_SECONDS = 300


def _as_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    return value


def _coerce_value(value: Any) -> float:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise MetricError(f"unparseable value {value}") from None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise MetricError(f"unparseable value {value}")


def _normalize_timestamp(timestamp: int, now: int) -> int:
    if timestamp > _MAX_SECONDS:
        timestamp //= 1000
    if timestamp - now > _MAX_FUTURE_SECONDS:
        timestamp = now
    return timestamp


@dataclass
class FalconMetric:
    """One Open-Falcon data point."""

    metric: str = ""
    endpoint: str = ""
    timestamp: int = 0
    value_untyped: Any = None
    value: float = 0.0
    tags: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FalconMetric:
        """Build a metric from decoded JSON; null fields keep their defaults."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("metric must be an object")
        metric = cls()
        if data.get("metric") is not None:
            metric.metric = _as_str(data["metric"], "metric")
        if data.get("endpoint") is not None:
            metric.endpoint = _as_str(data["endpoint"], "endpoint")
        if data.get("timestamp") is not None:
            metric.timestamp = _as_int(data["timestamp"], "timestamp")
        if data.get("value") is not None:
            metric.value_untyped = data["value"]
        if data.get("tags") is not None:
            metric.tags = _as_str(data["tags"], "tags")
        return metric

    def clean(self, now: int) -> None:
        """Check the metric, parse its value and normalize its timestamp.

        Millisecond timestamps are turned into seconds, and timestamps more
        than five minutes ahead of ``now`` are replaced by ``now``.
        """
        if not self.metric:
            raise MetricError("metric is blank")
        self.value = _coerce_value(self.value_untyped)
        self.timestamp = _normalize_timestamp(self.timestamp, now)

    def to_prom(self) -> tuple[TimeSeries, str]:
        """Convert to a time series; returns the series and the ident it belongs to.

        The endpoint becomes the ``ident`` label unless the tags already carry
        an ``ident``, in which case the endpoint is kept as an ``endpoint`` label.
        """
        series = TimeSeries(samples=[Sample(self.timestamp * 1000, self.value)])

        self.metric = sanitize_name(self.metric)
        if not is_valid_metric_name(self.metric):
            raise MetricError(f"invalid metric name: {self.metric}")
        series.labels.append(Label(METRIC_NAME_LABEL, self.metric))

        tag_map: dict[str, str] = {}
        for item in self.tags.split(","):
            key, sep, value = item.partition("=")
            if sep:
                tag_map[key] = value

        ident = ""
        if self.endpoint:
            ident = self.endpoint
            if "ident" in tag_map:
                ident = tag_map["ident"]
                tag_map["endpoint"] = self.endpoint
            else:
                tag_map["ident"] = self.endpoint

        for key, value in tag_map.items():
            key = sanitize_name(key)
            if not is_valid_label_name(key):
                raise MetricError(f"invalid tag name: {key}")
            series.labels.append(Label(key, value))

        return series, ident


def decode_body(body: bytes, encoding: str | None = None) -> bytes:
    """Decompress a gzip-encoded body; other bodies pass through."""
    if encoding == "gzip":
        try:
            return gzip.decompress(body)
        except (OSError, EOFError, zlib.error) as exc:
            raise ValueError(str(exc)) from exc
    return bytes(body)


def parse_payload(body: bytes | str) -> list[FalconMetric]:
    """Decode a single metric object or an array of them."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    if not body:
        raise ValueError("empty body")
    data = json.loads(body)
    if body[:1] == b"[":
        return [FalconMetric.from_dict(item) for item in data]
    return [FalconMetric.from_dict(data)]