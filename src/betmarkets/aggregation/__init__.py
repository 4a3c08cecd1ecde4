"""Cross-platform search aggregation."""

from betmarkets.aggregation.aggregator import MarketAggregator, PlatformResult
from betmarkets.aggregation.selection import filter_by_min_volume, filter_by_status, sort_markets

__all__ = [
    "MarketAggregator",
    "PlatformResult",
    "filter_by_min_volume",
    "filter_by_status",
    "sort_markets",
]
