# nightwatch

Building blocks for a metrics-and-alerting server: turning samples pushed in
several formats into time series, sharding them into bounded write queues,
evaluating query results into alert events, muting those events and routing
them to subscribers.

The package has no runtime dependencies and needs Python 3.10 or later.

## What is inside

| Module | Purpose |
| --- | --- |
| `nightwatch.queue` | `SafeList` and the bounded `LimitedQueue`, first-in first-out, thread-safe |
| `nightwatch.series` | `TimeSeries`, `Label`, `Sample`, `MetricError`, name checks, `duplicate_label_key`, `extract_ident`, `shard_key` |
| `nightwatch.datadog` | `DatadogMetric`, `read_body` (gzip/deflate) and `parse_series` for Datadog series submissions |
| `nightwatch.falcon` | `FalconMetric`, `decode_body` (gzip) and `parse_payload` for Open-Falcon pushes |
| `nightwatch.opentsdb` | `HTTPMetric` and `parse_payload` for OpenTSDB `put` bodies |
| `nightwatch.writer` | `Writers` (per-cluster sharded queues), `WriterOptions`, `shard_index`, `remote_write_headers` |
| `nightwatch.hashring` | `ConsistentHashRing`, `ClusterHashRing`, `EmptyRingError` and `is_leader` for sharding rules across instances |
| `nightwatch.events` | `AlertRule`, `AlertEvent`, `Vector`, `AlertVector`, `AlertEventMap`, `label_map_to_arr`, `format_event_log` |
| `nightwatch.alerting` | `AlertRuleContext`: pending/firing state, repeat notifications, recovery; `rule_key` |
| `nightwatch.mute` | `TagFilter`, `AlertMute`, `match_tags`, `match_mute` and the mute strategies combined in `is_muted` |
| `nightwatch.subscription` | `NotifyChannels` and `Subscription` with or/and merging |
| `nightwatch.routing` | `group_router`, `global_webhook_router`, `event_callbacks_router` |
| `nightwatch.caches` | `AlertRuleCache`, `AlertMuteCache`, `AlertSubscribeCache`, `BusiGroupCache`, `RecordingRuleCache`, `group_by` |
| `nightwatch.directory` | `User`, `UserGroup`, `Target` and their caches `UserCache`, `UserGroupCache`, `TargetCache` |
| `nightwatch.logsample` | `LogSampleFilter`, deciding from labels which received samples to log |
| `nightwatch.reporter` | `ErrorType` and `ErrorReporter`, which counts errors and hands the tally to a callback periodically |

Every cache remembers the total and last-update stamp it was loaded with;
`stat_changed(total, last_updated)` tells whether a reload is needed.

## Example: ingesting an Open-Falcon push

```python
import time
from nightwatch.falcon import parse_payload
from nightwatch.writer import Writers

writers = Writers(queue_count=4, queue_max_size=10000, queue_pop_size=100,
                  default_cluster="Default")
writers.add_cluster("Default")

body = b'[{"metric": "cpu.idle", "endpoint": "host-1", "timestamp": 0, "value": 97.5, "tags": "core=0"}]'
now = int(time.time())
for metric in parse_payload(body):
    metric.clean(now)
    series, ident = metric.to_prom()
    writers.push_sample(ident or "-", series, "Default")

batch = writers.drain("Default", 0)   # oldest samples of queue 0
```

`clean` and `to_prom` raise `nightwatch.series.MetricError` for a blank metric,
a value that cannot be read as a number, or an invalid metric or tag name.
`parse_payload` raises `ValueError` for an empty body or malformed JSON.

## Example: evaluating a rule

```python
from nightwatch.alerting import AlertRuleContext
from nightwatch.events import AlertRule, Vector
from nightwatch.queue import LimitedQueue

queue = LimitedQueue(1000)
rule = AlertRule(id=1, name="cpu high", prom_ql="cpu > 90", prom_eval_interval=15)
context = AlertRuleContext(rule, "Default", queue=queue)
context.prepare()

vector = Vector(key="cpu{ident=host-1}", labels={"ident": "host-1"},
                timestamp=1700000000, value=95.0)
context.handle_vectors([vector], now=1700000000)   # queues a triggered event
context.handle_vectors([], now=1700000060)         # series gone: queues a recovery
events = queue.pop_back(10)
```

Pass `rule_lookup` to pick up the current version of a rule by id, and
`mute_check` (for instance a closure over `nightwatch.mute.is_muted`) to
suppress events.

## Example: routing an alert

```python
from nightwatch.routing import event_callbacks_router, group_router
from nightwatch.subscription import Subscription

subscription = Subscription()
subscription.or_merge(group_router(event, user_group_cache))
event_callbacks_router(event, subscription)
for channel, user_ids in subscription.to_channel_user_map().items():
    ...
```

## What the package does not do

It holds no HTTP server, command-line program or database access: caches are
filled by calling their `set` methods, and queries against a time-series store
are left to the caller, who hands results in as `Vector` objects. `Writers`
queues samples and `remote_write_headers` builds request headers, but nothing
encodes or sends remote-write requests. Notification senders (mail, chat,
webhook delivery) are not included; routing stops at a `Subscription`.

## Tests

```
pip install -e .[test]
pytest
```