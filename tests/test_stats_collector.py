import logging
import time

import pytest

from es_exporter.collector import CycleOutcome, StatsCollector
from es_exporter.config import build_runtime_config
from tests._helpers import node_payload, series, stats_payload, total_samples, value


@pytest.fixture()
def collector(fake_es):
    c = StatsCollector(fake_es.stats_url, timeout=2.0)
    yield c
    c.close()


def test_end_to_end_values(collector, fake_es):
    families = collector.collect()
    assert collector.last_outcome is CycleOutcome.OK
    assert fake_es.paths == ["/_nodes/_local/stats"]
    assert value(families, "elasticsearch_up") == 1.0
    assert value(families, "elasticsearch_jvm_mem_heap_used_bytes", cluster="es-test") == 1048576
    assert value(families, "elasticsearch_breakers_estimated_size_bytes", cluster="es-test", breaker="fielddata") == 100
    assert value(families, "elasticsearch_breakers_limit_size_bytes", cluster="es-test", breaker="fielddata") == 1000
    assert value(families, "elasticsearch_jvm_gc_collections", cluster="es-test", collector="young") == 12
    assert value(families, "elasticsearch_indices_merges_total_docs_total", cluster="es-test") == 2000


def test_cluster_is_first_label_on_every_series(collector):
    families = collector.collect()
    for fam in families:
        if fam.name == "elasticsearch_up":
            continue
        assert fam.samples, fam.name
        for sample in fam.samples:
            labels = list(sample.labels.items())
            assert labels[0] == ("cluster", "es-test"), fam.name


def test_publish_order_up_counters_gauges(collector):
    families = collector.collect()
    types = [f.type for f in families]
    assert families[0].name == "elasticsearch_up"
    n_counters = types.count("counter")
    assert types[1:1 + n_counters] == ["counter"] * n_counters
    assert set(types[1 + n_counters:]) == {"gauge"}


def test_collect_is_idempotent(collector):
    first = collector.collect()
    second = collector.collect()
    for fam in first:
        assert series(second, fam.name) == series(first, fam.name)


def test_reset_drops_vanished_breaker(collector, fake_es):
    fake_es.set_payload(stats_payload(nodes={"n1": node_payload(breakers={"breakerA": (1, 2), "fielddata": (3, 4)})}))
    families = collector.collect()
    assert value(families, "elasticsearch_breakers_estimated_size_bytes", cluster="es-test", breaker="breakerA") == 1

    fake_es.set_payload(stats_payload(nodes={"n1": node_payload(breakers={"fielddata": (3, 4)})}))
    families = collector.collect()
    for name in ("elasticsearch_breakers_estimated_size_bytes", "elasticsearch_breakers_limit_size_bytes"):
        breakers = {dict(k)["breaker"] for k in series(families, name)}
        assert breakers == {"fielddata"}


def test_fetch_failure_sets_up_zero_and_clears(refused_url):
    c = StatsCollector(refused_url, timeout=1.0)
    try:
        families = c.collect()
        assert c.last_outcome is CycleOutcome.FETCH_FAILED
        assert value(families, "elasticsearch_up") == 0.0
        assert total_samples(families) == 0
    finally:
        c.close()


def test_fetch_failure_after_success_leaves_no_stale_values(collector, refused_url):
    collector.collect()
    collector.uri = refused_url
    families = collector.collect()
    assert value(families, "elasticsearch_up") == 0.0
    assert total_samples(families) == 0


def test_timeout_counts_as_unreachable(fake_es):
    fake_es.delay = 1.0
    c = StatsCollector(fake_es.stats_url, timeout=0.2)
    try:
        families = c.collect()
    finally:
        c.close()
    assert c.last_outcome is CycleOutcome.FETCH_FAILED
    assert value(families, "elasticsearch_up") == 0.0


def test_slow_body_exceeds_total_deadline(fake_es):
    fake_es.trickle = (6, 0.15)
    c = StatsCollector(fake_es.stats_url, timeout=0.5)
    try:
        families = c.collect()
    finally:
        c.close()
    assert c.last_outcome is CycleOutcome.FETCH_FAILED
    assert value(families, "elasticsearch_up") == 0.0
    assert total_samples(families) == 0


def test_trickled_body_is_cut_off_at_deadline(fake_es):
    fake_es.trickle = (10, 0.3)
    c = StatsCollector(fake_es.stats_url, timeout=0.5)
    started = time.monotonic()
    try:
        families = c.collect()
    finally:
        c.close()
    elapsed = time.monotonic() - started
    assert c.last_outcome is CycleOutcome.FETCH_FAILED
    assert value(families, "elasticsearch_up") == 0.0
    assert elapsed < 1.2


def test_decode_failure_keeps_up_one(collector, fake_es, caplog):
    fake_es.set_payload({"not": "valid"})
    with caplog.at_level(logging.ERROR, logger="es_exporter.collector.stats_collector"):
        families = collector.collect()
    assert collector.last_outcome is CycleOutcome.DECODE_FAILED
    assert value(families, "elasticsearch_up") == 1.0
    assert total_samples(families) == 0
    assert any("decode" in r.getMessage() for r in caplog.records)


def test_http_error_status_treated_as_decode_failure(collector, fake_es):
    fake_es.status = 503
    fake_es.set_payload({"error": "unavailable", "status": 503})
    families = collector.collect()
    assert collector.last_outcome is CycleOutcome.DECODE_FAILED
    assert value(families, "elasticsearch_up") == 1.0
    assert total_samples(families) == 0


def test_recovers_on_next_cycle(collector, fake_es):
    fake_es.body = b"garbage"
    collector.collect()
    fake_es.set_payload(stats_payload())
    families = collector.collect()
    assert collector.last_outcome is CycleOutcome.OK
    assert value(families, "elasticsearch_jvm_mem_heap_used_bytes", cluster="es-test") == 1048576


def test_zero_nodes_warns_and_emits_nothing(collector, fake_es, caplog):
    fake_es.set_payload(stats_payload(nodes={}))
    with caplog.at_level(logging.WARNING):
        families = collector.collect()
    assert collector.last_outcome is CycleOutcome.OK
    assert value(families, "elasticsearch_up") == 1.0
    assert total_samples(families) == 0
    assert any("Unexpected number of nodes returned: 0" in r.getMessage() for r in caplog.records)


def test_multiple_nodes_last_node_wins(collector, fake_es, caplog):
    # Same-named scalar series are overwritten per node, not summed.
    fake_es.set_payload(stats_payload(nodes={
        "n1": node_payload(heap_used=111, breakers={"fielddata": (1, 10)}),
        "n2": node_payload(heap_used=222, breakers={"request": (2, 20)}),
    }))
    with caplog.at_level(logging.WARNING):
        families = collector.collect()
    assert any("Unexpected number of nodes returned: 2" in r.getMessage() for r in caplog.records)
    assert series(families, "elasticsearch_jvm_mem_heap_used_bytes") == {(("cluster", "es-test"),): 222.0}
    # Dimension entries from every node survive since their label sets differ.
    breakers = {dict(k)["breaker"] for k in series(families, "elasticsearch_breakers_estimated_size_bytes")}
    assert breakers == {"fielddata", "request"}


def test_describe_needs_no_network(refused_url):
    c = StatsCollector(refused_url, timeout=0.1)
    try:
        described = c.describe()
    finally:
        c.close()
    assert described[0].name == "elasticsearch_up"
    assert all(not fam.samples for fam in described)
    assert c.last_outcome is None


def test_registers_with_prometheus_registry(collector, registry):
    from prometheus_client import generate_latest

    registry.register(collector)
    assert registry.get_sample_value("elasticsearch_jvm_mem_heap_used_bytes", {"cluster": "es-test"}) == 1048576
    assert registry.get_sample_value(
        "elasticsearch_breakers_estimated_size_bytes", {"cluster": "es-test", "breaker": "fielddata"}
    ) == 100
    assert registry.get_sample_value("elasticsearch_jvm_gc_collections_total", {"cluster": "es-test", "collector": "old"}) == 1
    text = generate_latest(registry).decode()
    assert "elasticsearch_up 1.0" in text


def test_from_config_appends_stats_path(fake_es):
    config = build_runtime_config({}, es_uri=fake_es.base_url + "/", es_timeout=1.5)
    c = StatsCollector.from_config(config)
    try:
        assert c.uri == fake_es.stats_url
        assert c.timeout == 1.5
        c.collect()
    finally:
        c.close()
    assert c.last_outcome is CycleOutcome.OK
