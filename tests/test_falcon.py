import gzip
import json

import pytest

from nightwatch.falcon import FalconMetric, decode_body, parse_payload
from nightwatch.series import MetricError, sanitize_name


def test_clean_parses_string_value():
    metric = FalconMetric(metric="m", value_untyped="3.5", timestamp=100)
    metric.clean(now=100)
    assert metric.value == 3.5
    assert metric.timestamp == 100


def test_clean_accepts_numbers():
    metric = FalconMetric(metric="m", value_untyped=7, timestamp=100)
    metric.clean(now=100)
    assert metric.value == 7.0


def test_clean_rejects_bool_value():
    with pytest.raises(MetricError, match="unparseable value"):
        FalconMetric(metric="m", value_untyped=True).clean(now=0)


def test_clean_rejects_bad_string():
    with pytest.raises(MetricError, match="unparseable value"):
        FalconMetric(metric="m", value_untyped="abc").clean(now=0)


def test_clean_rejects_missing_value():
    with pytest.raises(MetricError):
        FalconMetric(metric="m").clean(now=0)


def test_clean_blank_metric():
    with pytest.raises(MetricError, match="metric is blank"):
        FalconMetric(value_untyped=1).clean(now=0)


def test_clean_converts_milliseconds():
    metric = FalconMetric(metric="m", value_untyped=1, timestamp=1700000000123)
    metric.clean(now=1800000000)
    assert metric.timestamp == 1700000000


def test_clean_clamps_future_timestamp():
    metric = FalconMetric(metric="m", value_untyped=1, timestamp=1301)
    metric.clean(now=1000)
    assert metric.timestamp == 1000


def test_clean_keeps_timestamp_within_five_minutes():
    metric = FalconMetric(metric="m", value_untyped=1, timestamp=1300)
    metric.clean(now=1000)
    assert metric.timestamp == 1300


def test_to_prom_endpoint_becomes_ident():
    metric = FalconMetric(
        metric="cpu.idle", endpoint="host1", timestamp=1000, value=2.0, tags="a=1,bad"
    )
    series, ident = metric.to_prom()
    labels = series.label_map()
    assert ident == "host1"
    assert labels["__name__"] == sanitize_name("cpu.idle")
    assert labels["ident"] == "host1"
    assert labels["a"] == "1"
    assert set(labels) == {"__name__", "a", "ident"}
    assert series.samples[0].timestamp // 1000 == metric.timestamp
    assert series.samples[0].value == 2.0


def test_to_prom_ident_tag_wins_over_endpoint():
    metric = FalconMetric(metric="m", endpoint="host1", tags="ident=box")
    series, ident = metric.to_prom()
    labels = series.label_map()
    assert ident == "box"
    assert labels["ident"] == "box"
    assert labels["endpoint"] == "host1"


def test_to_prom_without_endpoint_has_no_ident():
    series, ident = FalconMetric(metric="m").to_prom()
    assert ident == ""
    assert set(series.label_map()) == {"__name__"}


def test_to_prom_invalid_tag_name():
    with pytest.raises(MetricError, match="invalid tag name"):
        FalconMetric(metric="m", tags="9x=1").to_prom()


def test_to_prom_invalid_metric_name():
    with pytest.raises(MetricError, match="invalid metric name"):
        FalconMetric(metric="9m").to_prom()


def test_decode_body_gzip_round_trip():
    data = b'[{"metric": "m"}]'
    assert decode_body(gzip.compress(data), "gzip") == data
    assert decode_body(data, None) == data


def test_decode_body_bad_gzip():
    with pytest.raises(ValueError):
        decode_body(b"plain", "gzip")


def test_parse_payload_array_and_single():
    item = {"metric": "m", "endpoint": "e", "timestamp": 5, "value": 1.5, "tags": "k=v"}
    many = parse_payload(json.dumps([item, item]))
    one = parse_payload(json.dumps(item))
    assert len(many) == 2
    assert len(one) == 1
    assert one[0] == many[0]
    assert one[0].metric == "m"
    assert one[0].endpoint == "e"
    assert one[0].timestamp == 5
    assert one[0].value_untyped == 1.5
    assert one[0].tags == "k=v"


def test_parse_payload_empty_raises():
    with pytest.raises(ValueError):
        parse_payload(b"")


def test_parse_payload_rejects_string_timestamp():
    with pytest.raises(ValueError):
        parse_payload('{"metric": "m", "timestamp": "5"}')