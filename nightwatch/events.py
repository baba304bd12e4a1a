"""Alert rules, alert events and the vectors that produce them."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class AlertEvent:
    """One alert (or recovery) produced by evaluating a rule."""

    id: int = 0
    rule_id: int = 0
    rule_name: str = ""
    rule_note: str = ""
    group_id: int = 0
    group_name: str = ""
    cluster: str = ""
    hash: str = ""
    severity: int = 0
    prom_ql: str = ""
    prom_eval_interval: int = 0
    prom_for_duration: int = 0
    runbook_url: str = ""
    notify_channels: list[str] = field(default_factory=list)
    notify_groups: list[str] = field(default_factory=list)
    callbacks: list[str] = field(default_factory=list)
    notify_recovered: int = 0
    notify_repeat_step: int = 0
    notify_max_number: int = 0
    trigger_time: int = 0
    trigger_value: str = ""
    tags: list[str] = field(default_factory=list)
    tags_map: dict[str, str] = field(default_factory=dict)
    target_ident: str = ""
    target_note: str = ""
    is_recovered: bool = False
    last_eval_time: int = 0
    last_sent_time: int = 0
    notify_cur_number: int = 0
    first_trigger_time: int = 0

    @property
    def tags_text(self) -> str:
        """The tags joined the way they are stored: separated by ``,,``."""
        return ",,".join(self.tags)


@dataclass
class AlertRule:
    """An alert rule as held in memory."""

    id: int = 0
    name: str = ""
    note: str = ""
    group_id: int = 0
    cluster: str = ""
    severity: int = 0
    disabled: int = 0
    prom_ql: str = ""
    prom_eval_interval: int = 0
    prom_for_duration: int = 0
    runbook_url: str = ""
    enable_stime: str = "00:00"
    enable_etime: str = "23:59"
    enable_days_of_week: str = "0 1 2 3 4 5 6"
    enable_in_bg: int = 0
    notify_channels: list[str] = field(default_factory=list)
    notify_groups: list[str] = field(default_factory=list)
    callbacks: list[str] = field(default_factory=list)
    append_tags: list[str] = field(default_factory=list)
    notify_recovered: int = 0
    notify_repeat_step: int = 0
    notify_max_number: int = 0
    recover_duration: int = 0

    def update_event(self, event: AlertEvent) -> None:
        """Copy this rule's settings onto ``event``."""
        event.rule_id = self.id
        event.rule_name = self.name
        event.rule_note = self.note
        event.group_id = self.group_id
        event.severity = self.severity
        event.prom_ql = self.prom_ql
        event.prom_eval_interval = self.prom_eval_interval
        event.prom_for_duration = self.prom_for_duration
        event.runbook_url = self.runbook_url
        event.notify_channels = list(self.notify_channels)
        event.notify_groups = list(self.notify_groups)
        event.callbacks = list(self.callbacks)
        event.notify_recovered = self.notify_recovered
        event.notify_repeat_step = self.notify_repeat_step
        event.notify_max_number = self.notify_max_number

    def new_event(self) -> AlertEvent:
        """A fresh event carrying this rule's settings."""
        event = AlertEvent()
        self.update_event(event)
        return event


@dataclass
class Vector:
    """One series value returned by a query."""

    key: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: int = 0
    value: float = 0.0

    def readable_value(self) -> str:
        """The value with five decimals, trailing zeros and dot removed."""
        text = f"{self.value:.5f}".rstrip("0")
        return text.rstrip(".")


class AlertEventMap:
    """A lock-guarded mapping of event hash to event."""

    def __init__(self, data: dict[str, AlertEvent] | None = None) -> None:
        self._data: dict[str, AlertEvent] = {} if data is None else data
        self._lock = threading.RLock()

    def set_all(self, data: dict[str, AlertEvent]) -> None:
        """Replace all contents."""
        with self._lock:
            self._data = data

    def set(self, key: str, event: AlertEvent) -> None:
        with self._lock:
            self._data[key] = event

    def get(self, key: str) -> AlertEvent | None:
        """The event stored under ``key``, or None."""
        with self._lock:
            return self._data.get(key)

    def update_last_eval_time(self, key: str, last_eval_time: int) -> None:
        """Set the last evaluation time of a stored event, if present."""
        with self._lock:
            event = self._data.get(key)
            if event is not None:
                event.last_eval_time = last_eval_time

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def get_all(self) -> dict[str, AlertEvent]:
        """A snapshot of all stored events."""
        with self._lock:
            return dict(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def label_map_to_arr(labels: Mapping[str, str]) -> list[str]:
    """Labels as sorted ``name=value`` strings."""
    return sorted(f"{name}={value}" for name, value in labels.items())


@dataclass
class AlertVector:
    """A query result paired with the rule and cluster that produced it."""

    rule: AlertRule
    vector: Vector
    cluster: str
    source: str = "inner"
    target_lookup: Callable[[str], Any] | None = None
    group_name: str = ""
    tags_map: dict[str, str] = field(init=False, default_factory=dict)
    tags_arr: list[str] = field(init=False, default_factory=list)
    target: str = field(init=False, default="")
    target_note: str = field(init=False, default="")

    def __post_init__(self) -> None:
        self._fill_tags()
        self._handle_ident()

    def _fill_tags(self) -> None:
        tags = dict(self.vector.labels)
        for tag in self.rule.append_tags:
            name, sep, value = tag.partition("=")
            if not sep:
                continue
            tags[name] = value
        tags["rulename"] = self.rule.name
        self.tags_map = tags
        self.tags_arr = label_map_to_arr(tags)

    def _handle_ident(self) -> None:
        ident = self.tags_map.get("ident")
        if ident is None or self.target_lookup is None:
            return
        target = self.target_lookup(ident)
        if target is not None:
            self.target = target.ident
            self.target_note = target.note

    def hash(self) -> str:
        """Identity of the series under this rule and cluster."""
        text = f"{self.rule.id}_{self.vector.key}_{self.cluster}"
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def build_event(self, now: int) -> AlertEvent:
        """Make the alert event for this vector."""
        event = self.rule.new_event()
        event.trigger_time = self.vector.timestamp
        event.tags_map = dict(self.tags_map)
        event.cluster = self.cluster
        event.hash = self.hash()
        event.target_ident = self.target
        event.target_note = self.target_note
        event.trigger_value = self.vector.readable_value()
        event.tags = list(self.tags_arr)
        event.group_name = self.group_name
        event.is_recovered = False
        event.last_eval_time = now if self.source == "inner" else event.trigger_time
        return event


def format_event_log(
    event: AlertEvent, location: str, error: BaseException | str | None = None
) -> str:
    """The log line describing ``event`` at ``location``."""
    status = "recovered" if event.is_recovered else "triggered"
    message = f"error_message: {error}" if error is not None else ""
    tags = "[" + " ".join(event.tags) + "]"
    return (
        f"event({event.hash} {status}) {location}: rule_id={event.rule_id} "
        f"cluster:{event.cluster} {tags}{event.trigger_value}@{event.trigger_time} {message}"
    )