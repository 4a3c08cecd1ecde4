"""betmarkets - search and aggregate prediction/betting markets with unified odds."""

__version__ = "0.1.0"
