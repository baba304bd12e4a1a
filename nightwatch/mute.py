"""Strategies deciding whether an alert event should be suppressed."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from nightwatch.events import AlertEvent, AlertRule

logger = logging.getLogger(__name__)

CLUSTER_ALL = "$all"


@dataclass
class TagFilter:
    """A condition on one event tag."""

    key: str
    func: str
    value: str = ""
    vset: set[str] = field(default_factory=set)
    regexp: re.Pattern[str] | None = None

    def __post_init__(self) -> None:
        if self.func in ("in", "not in") and not self.vset:
            self.vset = set(self.value.split())
        if self.func in ("=~", "!~") and self.regexp is None:
            self.regexp = re.compile(self.value)


@dataclass
class AlertMute:
    """A mute window over events of one business group."""

    id: int = 0
    group_id: int = 0
    cluster: str = CLUSTER_ALL
    btime: int = 0
    etime: int = 0
    tags: list[TagFilter] = field(default_factory=list)
    disabled: int = 0


def match_tag(value: str, tag_filter: TagFilter) -> bool:
    """Whether a tag value satisfies ``tag_filter``; unknown operators never match."""
    func = tag_filter.func
    if func == "==":
        return tag_filter.value == value
    if func == "!=":
        return tag_filter.value != value
    if func == "in":
        return value in tag_filter.vset
    if func == "not in":
        return value not in tag_filter.vset
    if func in ("=~", "!~") and tag_filter.regexp is not None:
        found = tag_filter.regexp.search(value) is not None
        return found if func == "=~" else not found
    return False


def match_tags(tags: Mapping[str, str], filters: Iterable[TagFilter]) -> bool:
    """Whether every filter finds its tag and is satisfied."""
    return all(f.key in tags and match_tag(tags[f.key], f) for f in filters)


def match_mute(event: AlertEvent, mute: AlertMute, clock: int | None = None) -> bool:
    """Whether ``mute`` covers ``event`` at ``clock`` (default: its trigger time)."""
    if mute.disabled == 1:
        return False
    ts = event.trigger_time if clock is None else clock
    if mute.cluster != CLUSTER_ALL and event.cluster not in set(mute.cluster.split()):
        return False
    if ts < mute.btime or ts > mute.etime:
        return False
    return match_tags(event.tags_map, mute.tags)


def time_non_effective(rule: AlertRule, event: AlertEvent) -> bool:
    """Mute when the rule is disabled or the event falls outside its active periods."""
    if rule.disabled == 1:
        return True

    moment = datetime.fromtimestamp(event.trigger_time)
    trigger_time = moment.strftime("%H:%M")
    trigger_week = str((moment.weekday() + 1) % 7)

    starts = rule.enable_stime.split()
    ends = rule.enable_etime.split()
    days = rule.enable_days_of_week.split(";")
    for day_spec, start, end in zip(days, starts, ends):
        if trigger_week not in day_spec.replace("7", "0", 1):
            continue
        if start <= end:
            if trigger_time < start or trigger_time > end:
                continue
        elif trigger_time < start and trigger_time > end:
            continue
        return False
    return True


def ident_not_exists(rule: AlertRule, event: AlertEvent, targets: Any) -> bool:
    """Mute ``target_up`` alerts whose ident is no longer a known target."""
    ident = event.tags_map.get("ident")
    if ident is None:
        return False
    if targets.get(ident) is None and "target_up" in rule.prom_ql:
        logger.debug(
            "[IdentNotExistsMuteStrategy] mute: rule_eval:%d cluster:%s ident:%s",
            rule.id, event.cluster, ident,
        )
        return True
    return False


def bg_not_match(rule: AlertRule, event: AlertEvent, targets: Any) -> bool:
    """Mute events of targets outside the rule's group when the rule asks for it."""
    if rule.enable_in_bg == 0:
        return False
    ident = event.tags_map.get("ident")
    if ident is None:
        return False
    target = targets.get(ident)
    if target is not None and target.group_id != rule.group_id:
        logger.debug(
            "[BgNotMatchMuteStrategy] mute: rule_eval:%d cluster:%s", rule.id, event.cluster
        )
        return True
    return False


def event_muted(event: AlertEvent, mutes: Mapping[int, Iterable[AlertMute]]) -> bool:
    """Whether any mute of the event's business group covers it."""
    return any(match_mute(event, mute) for mute in mutes.get(event.group_id) or ())


def is_muted(
    rule: AlertRule,
    event: AlertEvent,
    targets: Any,
    mutes: Mapping[int, Iterable[AlertMute]],
) -> bool:
    """Whether any mute strategy suppresses ``event``."""
    return (
        time_non_effective(rule, event)
        or ident_not_exists(rule, event, targets)
        or bg_not_match(rule, event, targets)
        or event_muted(event, mutes)
    )