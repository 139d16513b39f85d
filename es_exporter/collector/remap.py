"""Fixed remapping table: node stats fields -> instruments.

Scalar fields are addressed by dotted attribute paths into `NodeStats`.
Vector fields are addressed per dimension entry (breaker name, GC collector
name), which becomes the second label after ``cluster``.
"""
from __future__ import annotations

from operator import attrgetter

from ..domain.models import NodeStats
from ..metrics.registry import InstrumentTables
from ..utils.exceptions import SchemaError

__all__ = [
    "SCALAR_FIELDS",
    "BREAKER_FIELDS",
    "GC_COLLECTOR_FIELDS",
    "check_mapping",
    "remap_node",
]

# (metric name, NodeStats attribute path)
SCALAR_FIELDS: list[tuple[str, str]] = [
    # JVM memory
    ("jvm_mem_heap_committed_bytes", "jvm.mem.heap_committed"),
    ("jvm_mem_heap_used_bytes", "jvm.mem.heap_used"),
    ("jvm_mem_heap_max_bytes", "jvm.mem.heap_max"),
    ("jvm_mem_non_heap_committed_bytes", "jvm.mem.non_heap_committed"),
    ("jvm_mem_non_heap_used_bytes", "jvm.mem.non_heap_used"),
    # Indices
    ("indices_fielddata_memory_size_bytes", "indices.fielddata.memory_size"),
    ("indices_fielddata_evictions", "indices.fielddata.evictions"),
    ("indices_filter_cache_memory_size_bytes", "indices.filter_cache.memory_size"),
    ("indices_filter_cache_evictions", "indices.filter_cache.evictions"),
    ("indices_docs", "indices.docs.count"),
    ("indices_docs_deleted", "indices.docs.deleted"),
    ("indices_segments_memory_bytes", "indices.segments.memory"),
    ("indices_store_size_bytes", "indices.store.size"),
    ("indices_store_throttle_time_ms_total", "indices.store.throttle_time_ms"),
    ("indices_flush_total", "indices.flush.total"),
    ("indices_flush_time_ms_total", "indices.flush.time_ms"),
    ("indices_indexing_index_total", "indices.indexing.index_total"),
    ("indices_indexing_index_time_ms_total", "indices.indexing.index_time_ms"),
    ("indices_merges_total", "indices.merges.total"),
    ("indices_merges_total_docs_total", "indices.merges.total_docs"),
    ("indices_merges_total_size_bytes_total", "indices.merges.total_size"),
    ("indices_merges_total_time_ms_total", "indices.merges.total_time_ms"),
    # Transport
    ("transport_rx_packets_total", "transport.rx_count"),
    ("transport_rx_size_bytes_total", "transport.rx_size"),
    ("transport_tx_packets_total", "transport.tx_count"),
    ("transport_tx_size_bytes_total", "transport.tx_size"),
]

# (metric name, BreakerStats attribute)
BREAKER_FIELDS: list[tuple[str, str]] = [
    ("breakers_estimated_size_bytes", "estimated_size"),
    ("breakers_limit_size_bytes", "limit_size"),
]

# (metric name, GcCollectorStats attribute)
GC_COLLECTOR_FIELDS: list[tuple[str, str]] = [
    ("jvm_gc_collections", "collection_count"),
    ("jvm_gc_collections_time_ms", "collection_time_ms"),
]

_SCALAR_GETTERS = [(name, attrgetter(path)) for name, path in SCALAR_FIELDS]


def check_mapping(tables: InstrumentTables) -> None:
    """Every mapped metric must exist with the label arity its call site uses."""
    for names, arity in (
        ([n for n, _ in SCALAR_FIELDS], 1),
        ([n for n, _ in BREAKER_FIELDS], 2),
        ([n for n, _ in GC_COLLECTOR_FIELDS], 2),
    ):
        for name in names:
            try:
                instrument = tables.lookup(name)
            except KeyError:
                raise SchemaError(f"remap table references undeclared metric {name!r}") from None
            if len(instrument.label_names) != arity:
                raise SchemaError(
                    f"metric {name!r} declares labels {instrument.label_names}, remap table sets {arity}"
                )


def remap_node(tables: InstrumentTables, cluster: str, stats: NodeStats) -> None:
    """Write one node's values onto the instruments (overwrites same label sets)."""
    for collector, gc in stats.jvm.gc_collectors.items():
        for name, attr in GC_COLLECTOR_FIELDS:
            tables.lookup(name).observe((cluster, collector), getattr(gc, attr))

    for breaker, bstats in stats.breakers.items():
        for name, attr in BREAKER_FIELDS:
            tables.lookup(name).observe((cluster, breaker), getattr(bstats, attr))

    for name, getter in _SCALAR_GETTERS:
        tables.lookup(name).observe((cluster,), getter(stats))
