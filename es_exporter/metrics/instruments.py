"""Labeled instruments.

A `LabeledInstrument` is the live handle for one `MetricDef`. It owns the
per-label-combination series for that metric and supports the four
operations a scrape cycle needs:

  reset()                      drop every series (label sets can change between cycles)
  observe(label_values, value) set the series for one label combination
  describe()                   static descriptor family, no samples
  collect()                    family with one sample per current series

Values are set, not incremented: counters mirror cumulative totals reported
by the node, so each cycle overwrites them with the latest reading.

Instruments do no locking of their own; the collector serializes all access
under its cycle lock.
"""
from __future__ import annotations

from collections.abc import Sequence

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from .spec import NAMESPACE, MetricDef

__all__ = ["LabeledInstrument"]

_FAMILY_TYPES = {
    "gauge": GaugeMetricFamily,
    "counter": CounterMetricFamily,
}


class LabeledInstrument:
    def __init__(self, spec: MetricDef, namespace: str = NAMESPACE) -> None:
        self.spec = spec
        self.name = spec.full_name(namespace)
        self.documentation = spec.doc
        self.kind = spec.kind
        self.label_names: tuple[str, ...] = spec.label_names
        self._series: dict[tuple[str, ...], float] = {}

    def __repr__(self) -> str:
        return f"LabeledInstrument({self.name!r}, kind={self.kind!r}, labels={self.label_names!r})"

    def __len__(self) -> int:
        return len(self._series)

    def reset(self) -> None:
        self._series.clear()

    def observe(self, label_values: Sequence[str], value: float) -> None:
        if len(label_values) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values {self.label_names}, got {len(label_values)}"
            )
        self._series[tuple(str(v) for v in label_values)] = float(value)

    def set(self, value: float) -> None:
        """Shortcut for instruments without labels."""
        self.observe((), value)

    def get(self, label_values: Sequence[str] = ()) -> float | None:
        return self._series.get(tuple(label_values))

    def series(self) -> dict[tuple[str, ...], float]:
        return dict(self._series)

    def _family(self) -> Metric:
        return _FAMILY_TYPES[self.kind](self.name, self.documentation, labels=list(self.label_names))

    def describe(self) -> Metric:
        return self._family()

    def collect(self) -> Metric:
        family = self._family()
        for label_values, value in self._series.items():
            family.add_metric(list(label_values), value)
        return family
