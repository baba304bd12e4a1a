"""Conversion of Datadog series submissions into time series."""

from __future__ import annotations

import gzip
import json
import zlib
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


def _as_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number")
    return float(value)


def _parse_point(raw: Any) -> tuple[float, float]:
    if raw is None:
        return (0.0, 0.0)
    if not isinstance(raw, list):
        raise ValueError("point must be an array")
    coords = [_as_float(item, "point") for item in raw[:2]]
    coords.extend([0.0] * (2 - len(coords)))
    return (coords[0], coords[1])


@dataclass
class DatadogMetric:
    """One series of a Datadog submission."""

    metric: str = ""
    points: list[tuple[float, float]] = field(default_factory=list)
    host: str = ""
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> DatadogMetric:
        """Build a metric from decoded JSON; null fields keep their defaults."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("series item must be an object")
        metric = cls()
        if data.get("metric") is not None:
            metric.metric = _as_str(data["metric"], "metric")
        if data.get("host") is not None:
            metric.host = _as_str(data["host"], "host")
        points = data.get("points")
        if points is not None:
            if not isinstance(points, list):
                raise ValueError("points must be an array")
            metric.points = [_parse_point(point) for point in points]
        tags = data.get("tags")
        if tags is not None:
            if not isinstance(tags, list):
                raise ValueError("tags must be an array")
            metric.tags = [_as_str(tag, "tag") for tag in tags]
        return metric

    def validate(self) -> None:
        """Raise MetricError if the metric name is blank."""
        if not self.metric:
            raise MetricError("metric is blank")

    def to_prom(self) -> tuple[TimeSeries, str]:
        """Convert to a time series; returns the series and the ident it belongs to.

        Dots and dashes in the metric and tag names become underscores. The
        outer host overrides a ``host`` tag; the host becomes the ``ident``
        label unless an ``ident`` tag is present, in which case it is kept as
        a ``host`` label.
        """
        series = TimeSeries(
            samples=[Sample(int(ts) * 1000, value) for ts, value in self.points]
        )

        self.metric = sanitize_name(self.metric)
        if not is_valid_metric_name(self.metric):
            raise MetricError(f"invalid metric name: {self.metric}")
        series.labels.append(Label(METRIC_NAME_LABEL, self.metric))

        ident_in_tag = ""
        host_in_tag = ""
        for tag in self.tags:
            key, sep, value = tag.partition(":")
            if not sep:
                continue
            if key == "ident":
                ident_in_tag = value
                series.labels.append(Label(key, value))
                continue
            if key == "host":
                host_in_tag = value
                continue
            key = sanitize_name(key)
            if not is_valid_label_name(key):
                raise MetricError(f"invalid tag name: {key}")
            series.labels.append(Label(key, value))

        if self.host:
            host_in_tag = self.host

        if host_in_tag:
            name = "host" if ident_in_tag else "ident"
            series.labels.append(Label(name, host_in_tag))

        return series, ident_in_tag or host_in_tag


def read_body(body: bytes, encoding: str | None = None) -> bytes:
    """Decompress a request body according to its Content-Encoding."""
    try:
        if encoding == "gzip":
            return gzip.decompress(body)
        if encoding == "deflate":
            return zlib.decompress(body)
    except (OSError, EOFError, zlib.error) as exc:
        raise ValueError(str(exc)) from exc
    return bytes(body)


def parse_series(payload: bytes | str) -> list[DatadogMetric]:
    """Decode a ``{"series": [...]}`` document; null items are dropped.

    Raises ValueError for malformed JSON and for an empty series list.
    """
    data = json.loads(payload)
    if data is None:
        raise ValueError("series empty")
    if not isinstance(data, Mapping):
        raise ValueError("payload must be a JSON object")
    items = data.get("series")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValueError("series must be an array")
    if not items:
        raise ValueError("series empty")
    return [DatadogMetric.from_dict(item) for item in items if item is not None]