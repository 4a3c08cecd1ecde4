"""Text rendering of search results."""

from betmarkets.formatting.table import format_markdown_table, format_odds, format_volume, render_result

__all__ = ["format_markdown_table", "format_odds", "format_volume", "render_result"]
