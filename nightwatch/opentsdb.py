"""Conversion of OpenTSDB put payloads into time series."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
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


@dataclass
class HTTPMetric:
    """One OpenTSDB data point."""

    metric: str = ""
    timestamp: int = 0
    value_untyped: Any = None
    value: float = 0.0
    tags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> HTTPMetric:
        """Build a metric from decoded JSON; null fields keep their defaults."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("metric must be an object")
        metric = cls()
        if data.get("metric") is not None:
            metric.metric = _as_str(data["metric"], "metric")
        if data.get("timestamp") is not None:
            metric.timestamp = _as_int(data["timestamp"], "timestamp")
        if data.get("value") is not None:
            metric.value_untyped = data["value"]
        tags = data.get("tags")
        if tags is not None:
            if not isinstance(tags, Mapping):
                raise ValueError("tags must be an object")
            metric.tags = {_as_str(k, "tag name"): _as_str(v, "tag value") for k, v in tags.items()}
        return metric

    def clean(self, now: int) -> None:
        """Check the metric, parse its value and normalize its timestamp.

        Millisecond timestamps are turned into seconds, and timestamps more
        than five minutes ahead of ``now`` are replaced by ``now``.
        """
        if not self.metric:
            raise MetricError("metric is blank")

        value = self.value_untyped
        if isinstance(value, str):
            try:
                self.value = float(value)
            except ValueError:
                raise MetricError(f"unparseable value {value}") from None
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            self.value = float(value)
        else:
            raise MetricError(f"unparseable value {value}")

        if self.timestamp > _MAX_SECONDS:
            self.timestamp //= 1000
        if self.timestamp - now > _MAX_FUTURE_SECONDS:
            self.timestamp = now

    def to_prom(self) -> TimeSeries:
        """Convert to a time series.

        A ``host`` tag is renamed to ``ident`` when no ``ident`` tag exists.
        """
        series = TimeSeries(samples=[Sample(self.timestamp * 1000, self.value)])

        self.metric = sanitize_name(self.metric)
        if not is_valid_metric_name(self.metric):
            raise MetricError(f"invalid metric name: {self.metric}")
        series.labels.append(Label(METRIC_NAME_LABEL, self.metric))

        if "ident" not in self.tags and "host" in self.tags:
            self.tags["ident"] = self.tags.pop("host")

        for key, value in self.tags.items():
            key = sanitize_name(key)
            if not is_valid_label_name(key):
                raise MetricError(f"invalid tag name: {key}")
            series.labels.append(Label(key, value))

        return series


def parse_payload(body: bytes | str) -> list[HTTPMetric]:
    """Decode a single metric object or an array of them."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    if not body:
        raise ValueError("empty body")
    data = json.loads(body)
    if body[:1] == b"[":
        return [HTTPMetric.from_dict(item) for item in data]
    return [HTTPMetric.from_dict(data)]