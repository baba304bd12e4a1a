"""Per-cluster state machine of one alert rule: pending, firing and recovery."""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from nightwatch.events import (
    AlertEvent,
    AlertEventMap,
    AlertRule,
    AlertVector,
    Vector,
    format_event_log,
)

logger = logging.getLogger(__name__)

RuleLookup = Callable[[int], "AlertRule | None"]
MuteCheck = Callable[[AlertRule, AlertEvent], bool]


def rule_key(cluster: str, rule_id: int) -> str:
    """The key identifying a rule evaluated against a cluster."""
    return f"alert-{cluster}-{rule_id}"


class AlertRuleContext:
    """Tracks pending and firing events of one rule in one cluster.

    ``rule_lookup`` returns the current version of a rule by id (or None if
    it was deleted); ``queue`` receives events to notify through
    ``push_front``; ``mute_check`` decides whether an event is suppressed.
    """

    def __init__(
        self,
        rule: AlertRule,
        cluster: str,
        rule_lookup: RuleLookup | None = None,
        queue: Any = None,
        mute_check: MuteCheck | None = None,
    ) -> None:
        self.rule = rule
        self.cluster = cluster
        self.rule_lookup = rule_lookup
        self.queue = queue
        self.mute_check = mute_check
        self.target_lookup: Callable[[str], Any] | None = None
        self.group_name_lookup: Callable[[int], str] | None = None
        self.fires = AlertEventMap()
        self.pendings = AlertEventMap()

    def _cached_rule(self) -> AlertRule | None:
        if self.rule_lookup is None:
            return self.rule
        return self.rule_lookup(self.rule.id)

    def key(self) -> str:
        return rule_key(self.cluster, self.rule.id)

    def hash(self) -> str:
        """Changes whenever the rule's id, interval, query or cluster change."""
        text = (
            f"{self.rule.id}_{self.rule.prom_eval_interval}_"
            f"{self.rule.prom_ql}_{self.cluster}"
        )
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def prepare(self, current_events: Iterable[AlertEvent] = ()) -> None:
        """Reset pending events and restore firing ones from ``current_events``."""
        self.pendings = AlertEventMap()
        self.fires = AlertEventMap({event.hash: event for event in current_events})

    def _alert_vector(self, rule: AlertRule, vector: Vector, source: str) -> AlertVector:
        group_name = ""
        if self.group_name_lookup is not None:
            group_name = self.group_name_lookup(rule.group_id) or ""
        return AlertVector(
            rule=rule,
            vector=vector,
            cluster=self.cluster,
            source=source,
            target_lookup=self.target_lookup,
            group_name=group_name,
        )

    def handle_vectors(
        self, vectors: Iterable[Vector], source: str = "inner", now: int | None = None
    ) -> None:
        """Turn query results into events, then recover series that disappeared."""
        rule = self._cached_rule()
        if rule is None:
            logger.error("rule_eval:%s rule not found", self.key())
            return
        if now is None:
            now = int(time.time())

        alerting_keys: set[str] = set()
        for vector in vectors:
            alert_vector = self._alert_vector(rule, vector, source)
            event = alert_vector.build_event(now)
            # A muted series is still firing; keep it from auto-recovering.
            alerting_keys.add(alert_vector.hash())
            if self.mute_check is not None and self.mute_check(rule, event):
                continue
            self.handle_event(event)

        self.handle_recover(alerting_keys, now)

    def handle_recover(self, alerting_keys: Iterable[str], now: int) -> None:
        """Drop stale pending events and recover firing events not in ``alerting_keys``."""
        keys = set(alerting_keys)
        for hash_key in self.pendings.keys():
            if hash_key not in keys:
                self.pendings.delete(hash_key)
        for hash_key in self.fires.get_all():
            if hash_key not in keys:
                self.recover_single(hash_key, now)

    def recover_single(self, hash_key: str, now: int, value: str | None = None) -> None:
        """Recover the firing event ``hash_key`` unless its observation period lasts."""
        rule = self._cached_rule()
        if rule is None:
            return
        event = self.fires.get(hash_key)
        if event is None:
            return
        if rule.recover_duration > 0 and now - event.last_eval_time < rule.recover_duration:
            return
        if value is not None:
            event.trigger_value = value

        self.fires.delete(hash_key)
        self.pendings.delete(hash_key)

        rule.update_event(event)
        event.is_recovered = True
        event.last_eval_time = now
        self._push_event_to_queue(event)

    def handle_event(self, event: AlertEvent | None) -> None:
        """Fire ``event`` now, or once it has been pending for the rule's duration."""
        if event is None:
            return
        if event.prom_for_duration == 0:
            self.fire_event(event)
            return

        previous = self.pendings.get(event.hash)
        if previous is not None:
            self.pendings.update_last_eval_time(event.hash, event.last_eval_time)
            pre_trigger_time = previous.trigger_time
        else:
            self.pendings.set(event.hash, event)
            pre_trigger_time = event.trigger_time

        elapsed = event.last_eval_time - pre_trigger_time + event.prom_eval_interval
        if elapsed >= event.prom_for_duration:
            self.fire_event(event)

    def fire_event(self, event: AlertEvent) -> None:
        """Queue ``event`` if it is new or its repeat interval has passed."""
        rule = self._cached_rule()
        if rule is None:
            return

        fired = self.fires.get(event.hash)
        if fired is None:
            event.notify_cur_number = 1
            event.first_trigger_time = event.trigger_time
            self._push_event_to_queue(event)
            return

        self.fires.update_last_eval_time(event.hash, event.last_eval_time)
        if rule.notify_repeat_step == 0:
            return
        if event.last_eval_time <= fired.last_sent_time + rule.notify_repeat_step * 60:
            return
        if rule.notify_max_number != 0 and fired.notify_cur_number >= rule.notify_max_number:
            return
        event.notify_cur_number = fired.notify_cur_number + 1
        event.first_trigger_time = fired.first_trigger_time
        self._push_event_to_queue(event)

    def _push_event_to_queue(self, event: AlertEvent) -> None:
        if not event.is_recovered:
            event.last_sent_time = event.last_eval_time
            self.fires.set(event.hash, event)

        logger.info(format_event_log(event, "push_queue"))
        if self.queue is None or not self.queue.push_front(event):
            logger.warning("event_push_queue: queue is full, event:%s", event)