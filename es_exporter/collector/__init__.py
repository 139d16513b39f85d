"""Scrape-cycle collector and the node stats remapping table."""

from .stats_collector import CycleOutcome, StatsCollector

__all__ = ["CycleOutcome", "StatsCollector"]
