"""CLI UI components for terminal rendering of graphs and run results."""

from scriptgraph.cli_ui.graph_renderer import RunResultRenderer, TerminalGraphRenderer

__all__ = [
    "TerminalGraphRenderer",
    "RunResultRenderer",
]
