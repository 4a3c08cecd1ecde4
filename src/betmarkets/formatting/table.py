"""Markdown table rendering for market lists and aggregated results."""

from __future__ import annotations

import math

from betmarkets.models import AggregatedResult, UnifiedMarket

HEADERS = ("Platform", "Question", "Odds", "Volume")


def format_volume(usd: float) -> str:
    """13000000 -> "$13.0m"."""
    if usd >= 1_000_000_000:
        return f"${usd / 1_000_000_000:.1f}b"
    if usd >= 1_000_000:
        return f"${usd / 1_000_000:.1f}m"
    if usd >= 1_000:
        return f"${usd / 1_000:.1f}k"
    return f"${usd:.0f}"


def format_odds(percent: float) -> str:
    """22.5 -> "23%" (half rounds up)."""
    return f"{math.floor(percent + 0.5)}%"


def format_markdown_table(markets: list[UnifiedMarket]) -> str:
    if not markets:
        return "No markets found."
    rows = [
        (
            f"**{m.platform.capitalize()}**",
            m.question,
            f"**{format_odds(m.odds)}**",
            format_volume(m.volume),
        )
        for m in markets
    ]
    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(HEADERS)]

    def line(cells: tuple[str, ...]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    separator = "|" + "|".join("-" * (w + 2) for w in widths) + "|"
    return "\n".join([line(HEADERS), separator, *(line(r) for r in rows)])


def render_result(result: AggregatedResult) -> str:
    """Table plus warnings section and a summary of contributing platforms."""
    output = format_markdown_table(result.markets)
    if result.meta.warnings:
        output += "\n\n**Warnings:**\n"
        output += "".join(f"- {w}\n" for w in result.meta.warnings)
    succeeded = [name for name, s in result.meta.platforms.items() if s.status == "success"]
    output += f"\n\n*{result.meta.total_results} results found across {', '.join(succeeded)}*"
    return output
