"""Time series model and helpers for received remote-write samples."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

METRIC_NAME_LABEL = "__name__"

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Series that a scraping server generates itself; they must not refresh an
# ident's heartbeat, otherwise a dead target would never report target_up=0.
PROM_METRIC_FILTER = frozenset(
    {
        "up",
        "scrape_series_added",
        "scrape_samples_post_metric_relabeling",
        "scrape_samples_scraped",
        "scrape_duration_seconds",
    }
)


class MetricError(ValueError):
    """Raised when a metric cannot be turned into a valid time series."""


@dataclass
class Label:
    name: str
    value: str


@dataclass
class Sample:
    timestamp: int
    value: float


@dataclass
class TimeSeries:
    labels: list[Label] = field(default_factory=list)
    samples: list[Sample] = field(default_factory=list)

    def label_map(self) -> dict[str, str]:
        """Labels as a name -> value dict; later duplicates win."""
        return {label.name: label.value for label in self.labels}


def sanitize_name(name: str) -> str:
    """Replace dots and dashes with underscores."""
    return name.replace(".", "_").replace("-", "_")


def is_valid_metric_name(name: str) -> bool:
    return bool(_METRIC_NAME_RE.match(name))


def is_valid_label_name(name: str) -> bool:
    return bool(_LABEL_NAME_RE.match(name))


def duplicate_label_key(series: TimeSeries | None) -> bool:
    """Whether any label name appears more than once."""
    if series is None:
        return False
    seen: set[str] = set()
    for label in series.labels:
        if label.name in seen:
            return True
        seen.add(label.name)
    return False


def extract_ident(series: TimeSeries) -> tuple[str, str]:
    """Find the ident and metric name of a received series.

    The ident comes from an ``ident`` or ``host`` label; failing that, any
    ``agent_hostname`` label is renamed to ``ident`` and used. Series of
    self-generated scrape metrics get no ident. Returns ``(ident, metric)``.
    """
    ident = ""
    metric = ""
    for label in series.labels:
        if label.name in ("ident", "host"):
            ident = label.value
        if label.name == METRIC_NAME_LABEL:
            metric = label.value

    if not ident:
        for label in series.labels:
            if label.name == "agent_hostname":
                label.name = "ident"
                ident = label.value

    if metric in PROM_METRIC_FILTER:
        ident = ""
    return ident, metric


def shard_key(sharding_mode: str, ident: str, metric: str) -> str:
    """The key used to choose a writer queue for a sample."""
    if sharding_mode == "ident":
        return ident or "-"
    return metric