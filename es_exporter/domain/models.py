"""Node stats data model.

Typed records decoded from the ``GET /_nodes/_local/stats`` response body.
They are transient: built fresh on every scrape cycle from the raw JSON and
dropped once their values have been remapped onto instruments.

Decoding is lenient about missing sections (older or newer node versions omit
some of them; they decode as 0 / empty) but strict about shape: a section
that is present with the wrong JSON type raises DecodeError.
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..utils.exceptions import DecodeError

__all__ = [
    "JvmMemStats",
    "GcCollectorStats",
    "JvmStats",
    "BreakerStats",
    "CacheStats",
    "DocsStats",
    "SegmentsStats",
    "StoreStats",
    "FlushStats",
    "IndexingStats",
    "MergesStats",
    "IndicesStats",
    "TransportStats",
    "NodeStats",
    "NodeStatsResponse",
    "decode_node_stats",
]


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise DecodeError(f"expected object for {key!r}, got {type(value).__name__}")
    return value


def _num(data: Mapping[str, Any], key: str) -> int | float:
    value = data.get(key, 0)
    if value is None:
        return 0
    # bool is an int subclass; reject it like any other non-numeric value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"expected number for {key!r}, got {type(value).__name__}")
    return value


@dataclass(slots=True)
class JvmMemStats:
    heap_committed: int | float = 0
    heap_used: int | float = 0
    heap_max: int | float = 0
    non_heap_committed: int | float = 0
    non_heap_used: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> JvmMemStats:
        return cls(
            heap_committed=_num(data, "heap_committed_in_bytes"),
            heap_used=_num(data, "heap_used_in_bytes"),
            heap_max=_num(data, "heap_max_in_bytes"),
            non_heap_committed=_num(data, "non_heap_committed_in_bytes"),
            non_heap_used=_num(data, "non_heap_used_in_bytes"),
        )


@dataclass(slots=True)
class GcCollectorStats:
    collection_count: int | float = 0
    collection_time_ms: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> GcCollectorStats:
        return cls(
            collection_count=_num(data, "collection_count"),
            collection_time_ms=_num(data, "collection_time_in_millis"),
        )


@dataclass(slots=True)
class JvmStats:
    mem: JvmMemStats = field(default_factory=JvmMemStats)
    gc_collectors: dict[str, GcCollectorStats] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> JvmStats:
        collectors = _section(_section(data, "gc"), "collectors")
        return cls(
            mem=JvmMemStats.from_raw(_section(data, "mem")),
            gc_collectors={name: GcCollectorStats.from_raw(_section(collectors, name)) for name in collectors},
        )


@dataclass(slots=True)
class BreakerStats:
    estimated_size: int | float = 0
    limit_size: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> BreakerStats:
        return cls(
            estimated_size=_num(data, "estimated_size_in_bytes"),
            limit_size=_num(data, "limit_size_in_bytes"),
        )


@dataclass(slots=True)
class CacheStats:
    """Shared shape of the fielddata and filter cache sections."""
    memory_size: int | float = 0
    evictions: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> CacheStats:
        return cls(memory_size=_num(data, "memory_size_in_bytes"), evictions=_num(data, "evictions"))


@dataclass(slots=True)
class DocsStats:
    count: int | float = 0
    deleted: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> DocsStats:
        return cls(count=_num(data, "count"), deleted=_num(data, "deleted"))


@dataclass(slots=True)
class SegmentsStats:
    memory: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> SegmentsStats:
        return cls(memory=_num(data, "memory_in_bytes"))


@dataclass(slots=True)
class StoreStats:
    size: int | float = 0
    throttle_time_ms: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> StoreStats:
        return cls(size=_num(data, "size_in_bytes"), throttle_time_ms=_num(data, "throttle_time_in_millis"))


@dataclass(slots=True)
class FlushStats:
    total: int | float = 0
    time_ms: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> FlushStats:
        return cls(total=_num(data, "total"), time_ms=_num(data, "total_time_in_millis"))


@dataclass(slots=True)
class IndexingStats:
    index_total: int | float = 0
    index_time_ms: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> IndexingStats:
        return cls(index_total=_num(data, "index_total"), index_time_ms=_num(data, "index_time_in_millis"))


@dataclass(slots=True)
class MergesStats:
    total: int | float = 0
    total_docs: int | float = 0
    total_size: int | float = 0
    total_time_ms: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> MergesStats:
        return cls(
            total=_num(data, "total"),
            total_docs=_num(data, "total_docs"),
            total_size=_num(data, "total_size_in_bytes"),
            total_time_ms=_num(data, "total_time_in_millis"),
        )


@dataclass(slots=True)
class IndicesStats:
    fielddata: CacheStats = field(default_factory=CacheStats)
    filter_cache: CacheStats = field(default_factory=CacheStats)
    docs: DocsStats = field(default_factory=DocsStats)
    segments: SegmentsStats = field(default_factory=SegmentsStats)
    store: StoreStats = field(default_factory=StoreStats)
    flush: FlushStats = field(default_factory=FlushStats)
    indexing: IndexingStats = field(default_factory=IndexingStats)
    merges: MergesStats = field(default_factory=MergesStats)

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> IndicesStats:
        return cls(
            fielddata=CacheStats.from_raw(_section(data, "fielddata")),
            filter_cache=CacheStats.from_raw(_section(data, "filter_cache")),
            docs=DocsStats.from_raw(_section(data, "docs")),
            segments=SegmentsStats.from_raw(_section(data, "segments")),
            store=StoreStats.from_raw(_section(data, "store")),
            flush=FlushStats.from_raw(_section(data, "flush")),
            indexing=IndexingStats.from_raw(_section(data, "indexing")),
            merges=MergesStats.from_raw(_section(data, "merges")),
        )


@dataclass(slots=True)
class TransportStats:
    rx_count: int | float = 0
    rx_size: int | float = 0
    tx_count: int | float = 0
    tx_size: int | float = 0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> TransportStats:
        return cls(
            rx_count=_num(data, "rx_count"),
            rx_size=_num(data, "rx_size_in_bytes"),
            tx_count=_num(data, "tx_count"),
            tx_size=_num(data, "tx_size_in_bytes"),
        )


@dataclass(slots=True)
class NodeStats:
    jvm: JvmStats = field(default_factory=JvmStats)
    breakers: dict[str, BreakerStats] = field(default_factory=dict)
    indices: IndicesStats = field(default_factory=IndicesStats)
    transport: TransportStats = field(default_factory=TransportStats)

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> NodeStats:
        breakers = _section(data, "breakers")
        return cls(
            jvm=JvmStats.from_raw(_section(data, "jvm")),
            breakers={name: BreakerStats.from_raw(_section(breakers, name)) for name in breakers},
            indices=IndicesStats.from_raw(_section(data, "indices")),
            transport=TransportStats.from_raw(_section(data, "transport")),
        )


@dataclass(slots=True)
class NodeStatsResponse:
    cluster_name: str
    nodes: dict[str, NodeStats] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, data: Any) -> NodeStatsResponse:
        if not isinstance(data, Mapping):
            raise DecodeError(f"expected top-level object, got {type(data).__name__}")
        if not isinstance(data.get("nodes"), Mapping):
            raise DecodeError("payload has no 'nodes' object")
        cluster_name = data.get("cluster_name", "")
        if not isinstance(cluster_name, str):
            raise DecodeError(f"expected string for 'cluster_name', got {type(cluster_name).__name__}")
        nodes = _section(data, "nodes")
        return cls(
            cluster_name=cluster_name,
            nodes={node_id: NodeStats.from_raw(_section(nodes, node_id)) for node_id in nodes},
        )


def decode_node_stats(body: bytes | str) -> NodeStatsResponse:
    """Parse a raw response body; any failure surfaces as DecodeError."""
    try:
        raw = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    return NodeStatsResponse.from_raw(raw)
