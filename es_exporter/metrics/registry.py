"""Instrument tables built from the metric specification.

`build_instruments` is the single construction point: it validates the
declared tables and creates exactly one `LabeledInstrument` per `MetricDef`,
split by kind and keyed by the spec name (without namespace). The resulting
`InstrumentTables` object is built once at startup and handed to the
collector; there are no module-level instrument globals.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from prometheus_client.core import Metric

from .instruments import LabeledInstrument
from .spec import METRIC_SPECS, NAMESPACE, MetricDef, validate_specs

logger = logging.getLogger(__name__)

__all__ = ["InstrumentTables", "build_instruments"]


@dataclass
class InstrumentTables:
    gauges: dict[str, LabeledInstrument] = field(default_factory=dict)
    counters: dict[str, LabeledInstrument] = field(default_factory=dict)

    def __iter__(self) -> Iterator[LabeledInstrument]:
        """Counters first, then gauges (publish order)."""
        yield from self.counters.values()
        yield from self.gauges.values()

    def __len__(self) -> int:
        return len(self.gauges) + len(self.counters)

    def gauge(self, name: str) -> LabeledInstrument:
        return self.gauges[name]

    def counter(self, name: str) -> LabeledInstrument:
        return self.counters[name]

    def lookup(self, name: str) -> LabeledInstrument:
        if name in self.gauges:
            return self.gauges[name]
        return self.counters[name]

    def reset(self) -> None:
        for instrument in self:
            instrument.reset()

    def describe(self) -> list[Metric]:
        return [instrument.describe() for instrument in self]


def build_instruments(specs: Iterable[MetricDef] = METRIC_SPECS, namespace: str = NAMESPACE) -> InstrumentTables:
    specs = list(specs)
    validate_specs(specs)
    tables = InstrumentTables()
    for spec in specs:
        target = tables.gauges if spec.kind == "gauge" else tables.counters
        target[spec.name] = LabeledInstrument(spec, namespace)
    logger.debug("built %d gauge and %d counter instruments", len(tables.gauges), len(tables.counters))
    return tables
