"""Metrics package public interface.

Stable import surfaces:
	from es_exporter.metrics import build_instruments, InstrumentTables, LabeledInstrument
	from es_exporter.metrics.spec import METRIC_SPECS, MetricDef
	from es_exporter.metrics.server import setup_metrics_server
"""

from __future__ import annotations

from .instruments import LabeledInstrument
from .registry import InstrumentTables, build_instruments
from .spec import METRIC_SPECS, NAMESPACE, UP_SPEC, MetricDef, validate_specs

__all__ = [
	"LabeledInstrument",
	"InstrumentTables",
	"build_instruments",
	"METRIC_SPECS",
	"NAMESPACE",
	"UP_SPEC",
	"MetricDef",
	"validate_specs",
]
