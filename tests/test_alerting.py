import pytest

from nightwatch.alerting import AlertRuleContext, rule_key
from nightwatch.events import AlertEvent, AlertRule, AlertVector, Vector
from nightwatch.queue import LimitedQueue


def make_rule(**kwargs):
    defaults = dict(id=7, name="cpu high", prom_ql="cpu > 90", prom_eval_interval=15)
    defaults.update(kwargs)
    return AlertRule(**defaults)


def make_context(rule, queue=None, mute_check=None, rules=None):
    store = {rule.id: rule} if rules is None else rules
    return AlertRuleContext(
        rule, "c1", store.get, queue if queue is not None else LimitedQueue(100), mute_check
    )


def vec(ts=1000, value=95.0, key="k1"):
    return Vector(key=key, labels={"ident": "host1"}, timestamp=ts, value=value)


def test_rule_key_format():
    assert rule_key("c1", 5) == "alert-c1-5"


def test_context_key_uses_rule_key():
    ctx = make_context(make_rule())
    assert ctx.key() == rule_key("c1", 7)


def test_hash_stable_and_cluster_sensitive():
    rule = make_rule()
    a = AlertRuleContext(rule, "c1")
    b = AlertRuleContext(rule, "c1")
    c = AlertRuleContext(rule, "c2")
    assert a.hash() == b.hash()
    assert a.hash() != c.hash()
    assert len(a.hash()) == 32


def test_immediate_fire():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(), queue)
    ctx.handle_vectors([vec()], "inner", now=1010)
    events = queue.pop_back(10)
    assert len(events) == 1
    event = events[0]
    assert event.notify_cur_number == 1
    assert event.first_trigger_time == 1000
    assert event.last_sent_time == 1010
    assert event.hash in ctx.fires


def test_no_repeat_when_step_zero():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(), queue)
    ctx.handle_vectors([vec()], now=1000)
    ctx.handle_vectors([vec()], now=2000)
    assert len(queue) == 1


def test_repeat_after_step():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(notify_repeat_step=1), queue)
    ctx.handle_vectors([vec()], now=1000)
    ctx.handle_vectors([vec()], now=1030)
    assert len(queue) == 1
    ctx.handle_vectors([vec()], now=1061)
    events = queue.pop_back(10)
    assert len(events) == 2
    assert events[1].notify_cur_number == 2
    assert events[1].first_trigger_time == events[0].first_trigger_time


def test_repeat_stops_at_max_number():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(notify_repeat_step=1, notify_max_number=1), queue)
    ctx.handle_vectors([vec()], now=1000)
    ctx.handle_vectors([vec()], now=1100)
    assert len(queue) == 1


def test_pending_then_fire():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(prom_for_duration=60), queue)
    ctx.handle_vectors([vec(ts=1000)], now=1000)
    assert len(queue) == 0
    assert len(ctx.pendings) == 1
    ctx.handle_vectors([vec(ts=1000)], now=1050)
    assert len(queue) == 1


def test_pending_dropped_when_series_disappears():
    ctx = make_context(make_rule(prom_for_duration=60))
    ctx.handle_vectors([vec()], now=1000)
    ctx.handle_vectors([], now=1015)
    assert len(ctx.pendings) == 0


def test_recover_duration_delays_recovery():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(recover_duration=60), queue)
    ctx.handle_vectors([vec()], now=1000)
    ctx.handle_vectors([], now=1030)
    assert len(queue) == 1
    assert len(ctx.fires) == 1
    ctx.handle_vectors([], now=1060)
    assert len(queue) == 2


def test_recover_single_sets_value():
    queue = LimitedQueue(100)
    rule = make_rule()
    ctx = make_context(rule, queue)
    ctx.handle_vectors([vec()], now=1000)
    hash_key = AlertVector(rule, vec(), "c1").hash()
    ctx.recover_single(hash_key, 1100, "0")
    events = queue.pop_back(10)
    assert events[-1].is_recovered is True
    assert events[-1].trigger_value == "0"


def test_muted_event_not_sent_and_not_recovered():
    queue = LimitedQueue(100)
    muted = {"on": False}
    ctx = make_context(make_rule(), queue, mute_check=lambda r, e: muted["on"])
    ctx.handle_vectors([vec()], now=1000)
    muted["on"] = True
    ctx.handle_vectors([vec()], now=1020)
    assert len(queue) == 1
    assert len(ctx.fires) == 1


def test_missing_rule_does_nothing():
    queue = LimitedQueue(100)
    ctx = make_context(make_rule(), queue, rules={})
    ctx.handle_vectors([vec()], now=1000)
    assert len(queue) == 0
    assert len(ctx.fires) == 0


def test_prepare_restores_fires():
    rule = make_rule()
    existing = AlertEvent(hash=AlertVector(rule, vec(), "c1").hash(), last_sent_time=990)
    queue = LimitedQueue(100)
    ctx = make_context(rule, queue)
    ctx.prepare([existing])
    ctx.handle_vectors([vec()], now=1000)
    assert len(queue) == 0
    assert ctx.fires.get(existing.hash).last_eval_time == 1000


def test_full_queue_still_records_fire():
    ctx = make_context(make_rule(), LimitedQueue(0))
    ctx.handle_vectors([vec()], now=1000)
    assert len(ctx.fires) == 1


@pytest.mark.parametrize("source, expected", [("inner", 1500), ("http", 1000)])
def test_last_eval_time_depends_on_source(source, expected):
    ctx = make_context(make_rule())
    ctx.handle_vectors([vec(ts=1000)], source, now=1500)
    (event,) = ctx.fires.get_all().values()
    assert event.last_eval_time == expected