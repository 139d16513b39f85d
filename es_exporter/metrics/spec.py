"""Declarative metric specification layer.

Every metric the exporter can emit is declared here, once, in four fixed
tables (scalar gauges, scalar counters, vector gauges, vector counters) plus
the liveness gauge. The tables are static: they describe shapes, never
values, and are turned into live instruments by `registry.build_instruments`.

Scalar metrics carry only the ``cluster`` label. Vector metrics carry
``cluster`` followed by their dimension labels, in that fixed order.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from ..utils.exceptions import SchemaError

__all__ = [
    "MetricDef",
    "MetricKind",
    "NAMESPACE",
    "CLUSTER_LABEL",
    "SCALAR_GAUGES",
    "SCALAR_COUNTERS",
    "VECTOR_GAUGES",
    "VECTOR_COUNTERS",
    "UP_SPEC",
    "METRIC_SPECS",
    "validate_specs",
]

MetricKind = Literal["gauge", "counter"]

NAMESPACE = "elasticsearch"
CLUSTER_LABEL = "cluster"


@dataclass(frozen=True)
class MetricDef:
    name: str                       # Name without namespace prefix
    doc: str                        # Help text
    kind: MetricKind
    labels: Sequence[str] = ()      # Dimension labels (vector metrics only)
    scoped: bool = True             # False: no cluster label (liveness gauge)

    @property
    def label_names(self) -> tuple[str, ...]:
        if not self.scoped:
            return tuple(self.labels)
        return (CLUSTER_LABEL, *self.labels)

    def full_name(self, namespace: str = NAMESPACE) -> str:
        return f"{namespace}_{self.name}" if namespace else self.name


def _gauge(name: str, doc: str, *labels: str) -> MetricDef:
    return MetricDef(name, doc, "gauge", labels)


def _counter(name: str, doc: str, *labels: str) -> MetricDef:
    return MetricDef(name, doc, "counter", labels)


SCALAR_GAUGES: list[MetricDef] = [
    _gauge("indices_fielddata_memory_size_bytes", "Field data cache memory usage in bytes"),
    _gauge("indices_filter_cache_memory_size_bytes", "Filter cache memory usage in bytes"),
    _gauge("indices_docs", "Count of documents on this node"),
    _gauge("indices_docs_deleted", "Count of deleted documents on this node"),
    _gauge("indices_store_size_bytes", "Current size of stored index data in bytes"),
    _gauge("indices_segments_memory_bytes", "Current memory size of segments in bytes"),
    _gauge("jvm_mem_heap_committed_bytes", "JVM heap memory currently committed"),
    _gauge("jvm_mem_heap_used_bytes", "JVM heap memory currently used"),
    _gauge("jvm_mem_heap_max_bytes", "JVM heap memory max"),
    _gauge("jvm_mem_non_heap_committed_bytes", "JVM non-heap memory currently committed"),
    _gauge("jvm_mem_non_heap_used_bytes", "JVM non-heap memory currently used"),
]

SCALAR_COUNTERS: list[MetricDef] = [
    _counter("indices_fielddata_evictions", "Evictions from field data"),
    _counter("indices_filter_cache_evictions", "Evictions from filter cache"),
    _counter("indices_flush_total", "Total flushes"),
    _counter("indices_flush_time_ms_total", "Cumulative flush time in milliseconds"),
    _counter("transport_rx_packets_total", "Count of packets received"),
    _counter("transport_rx_size_bytes_total", "Total number of bytes received"),
    _counter("transport_tx_packets_total", "Count of packets sent"),
    _counter("transport_tx_size_bytes_total", "Total number of bytes sent"),
    _counter("indices_store_throttle_time_ms_total", "Throttle time for index store in milliseconds"),
    _counter("indices_indexing_index_total", "Total index calls"),
    _counter("indices_indexing_index_time_ms_total", "Cumulative index time in milliseconds"),
    _counter("indices_merges_total", "Total merges"),
    _counter("indices_merges_total_docs_total", "Cumulative docs merged"),
    _counter("indices_merges_total_size_bytes_total", "Total merge size in bytes"),
    _counter("indices_merges_total_time_ms_total", "Total time spent merging in milliseconds"),
]

VECTOR_GAUGES: list[MetricDef] = [
    _gauge("breakers_estimated_size_bytes", "Estimated size in bytes of breaker", "breaker"),
    _gauge("breakers_limit_size_bytes", "Limit size in bytes for breaker", "breaker"),
]

VECTOR_COUNTERS: list[MetricDef] = [
    _counter("jvm_gc_collections", "Count of JVM GC runs", "collector"),
    _counter("jvm_gc_collections_time_ms", "GC run time in milliseconds", "collector"),
]

UP_SPEC = MetricDef("up", "Was the Elasticsearch instance query successful?", "gauge", scoped=False)

METRIC_SPECS: list[MetricDef] = [*SCALAR_GAUGES, *SCALAR_COUNTERS, *VECTOR_GAUGES, *VECTOR_COUNTERS]


def validate_specs(specs: Iterable[MetricDef]) -> None:
    """Startup-time consistency check; raises SchemaError on the first problem."""
    seen: set[str] = set()
    for spec in specs:
        if spec.name in seen:
            raise SchemaError(f"duplicate metric name {spec.name!r}")
        seen.add(spec.name)
        if spec.kind not in ("gauge", "counter"):
            raise SchemaError(f"metric {spec.name!r} has unknown kind {spec.kind!r}")
        labels = spec.label_names
        if len(set(labels)) != len(labels):
            raise SchemaError(f"metric {spec.name!r} repeats a label: {labels}")
