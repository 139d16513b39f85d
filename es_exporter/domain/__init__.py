"""Domain records decoded from the node stats payload."""

from .models import NodeStats, NodeStatsResponse, decode_node_stats

__all__ = ["NodeStats", "NodeStatsResponse", "decode_node_stats"]
