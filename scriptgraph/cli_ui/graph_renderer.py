"""Terminal rendering of graphs and run results using Rich.

All user-controlled strings (labels, config values, outputs) are escaped
before they reach Rich markup.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from scriptgraph.core.block_matcher import OPENER_FOR_TERMINATOR, TERMINATOR_FOR_OPENER
from scriptgraph.core.graph_schema import ControlType, Graph
from scriptgraph.core.models import Diagnostic, RunResult

MAX_CELL_WIDTH = 60


def _truncate(text: str, width: int = MAX_CELL_WIDTH) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _format_value(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


class TerminalGraphRenderer:
    """Renders a graph's instructions as a Rich Tree nested by block structure."""

    # Control type symbols and colors; leaf instructions use the default
    NODE_STYLES = {
        ControlType.IF: ("[?]", "magenta"),
        ControlType.ELSE: ("[:]", "magenta"),
        ControlType.END_IF: ("[/]", "magenta dim"),
        ControlType.WHILE: ("[~]", "blue"),
        ControlType.END_WHILE: ("[/]", "blue dim"),
        ControlType.FOR_NUMERIC: ("[#]", "green"),
        ControlType.END_FOR: ("[/]", "green dim"),
        ControlType.FOR_GENERIC: ("[*]", "green"),
        ControlType.END_FOR_GENERIC: ("[/]", "green dim"),
        ControlType.BREAK: ("[!]", "yellow"),
        ControlType.RETURN: ("[<]", "yellow"),
        ControlType.CALL: ("[>]", "cyan"),
    }
    DEFAULT_STYLE = ("[ ]", "white")

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render_as_tree(self, graph: Graph, title: str) -> Tree:
        """
        Render graph as a Rich Tree.

        Block bodies hang under their opener; else starts a sibling branch of
        its if. Terminators without an open block are shown in red at the
        current level instead of failing.
        """
        header = f"[bold]{escape(title)}[/]"
        if graph.is_callable:
            params = ", ".join(escape(p) for p in graph.parameters or [])
            header += f" [dim]function({params})[/]"
        tree = Tree(header)

        stack: list[Tree] = [tree]
        for index, instruction in enumerate(graph.instructions):
            control = instruction.control
            symbol, color = self.NODE_STYLES.get(control, self.DEFAULT_STYLE)
            text = f"[{color}]{escape(symbol)} {escape(instruction.display_name)}[/] [dim]#{index}[/]"
            summary = self._config_summary(instruction.config)
            if summary:
                text += f" [dim]{escape(summary)}[/]"

            if control in OPENER_FOR_TERMINATOR or control == ControlType.ELSE:
                if len(stack) == 1:
                    tree.add(f"[red]{escape(symbol)} {escape(instruction.display_name)} #{index} (unmatched)[/]")
                    continue
                stack.pop()

            branch = stack[-1].add(text)
            if control in TERMINATOR_FOR_OPENER or control == ControlType.ELSE:
                stack.append(branch)

        return tree

    @staticmethod
    def _config_summary(config: dict[str, Any]) -> str:
        if not config:
            return ""
        parts = [f"{k}={_format_value(v)}" for k, v in config.items() if not isinstance(v, list)]
        return _truncate(" ".join(parts))


class RunResultRenderer:
    """Renders a RunResult as status line plus result, variable and diagnostic tables."""

    SEVERITY_STYLES = {
        "error": "red bold",
        "warning": "yellow",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render(self, result: RunResult, title: str) -> None:
        if result.success:
            self.console.print(f"[green]✓ {escape(title)} completed[/] ({result.iterations} steps)")
        else:
            self.console.print(f"[red]✗ {escape(title)} failed[/] ({result.iterations} steps)")

        if result.results:
            self.console.print(self.results_table(result.results))
        if result.variables:
            self.console.print(self.variables_table(result.variables))
        if result.has_returned:
            self.console.print(f"[bold]Returned:[/] {escape(_format_value(result.return_value))}")
        if result.diagnostics:
            self.console.print(self.diagnostics_table(result.diagnostics))

    def results_table(self, results: list[Any]) -> Table:
        table = Table(title="Results")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Instruction", style="cyan")
        table.add_column("Output", max_width=MAX_CELL_WIDTH)

        for number, entry in enumerate(results, start=1):
            if isinstance(entry, dict) and "output" in entry:
                name = entry.get("label") or entry.get("instruction_type") or ""
                output = entry["output"]
            elif isinstance(entry, dict):
                name = entry.get("action") or entry.get("node") or ""
                output = {k: v for k, v in entry.items() if k != "action"}
            else:
                name, output = "", entry
            table.add_row(str(number), escape(str(name)), escape(_truncate(_format_value(output))))
        return table

    def variables_table(self, variables: dict[str, Any]) -> Table:
        table = Table(title="Variables")
        table.add_column("Name", style="cyan")
        table.add_column("Value", max_width=MAX_CELL_WIDTH)
        for name, value in variables.items():
            table.add_row(escape(name), escape(_truncate(_format_value(value))))
        return table

    def diagnostics_table(self, diagnostics: list[Diagnostic]) -> Table:
        table = Table(title="Diagnostics")
        table.add_column("Severity", justify="center")
        table.add_column("Kind", style="magenta")
        table.add_column("Index", justify="right")
        table.add_column("Message")
        for diagnostic in diagnostics:
            severity = diagnostic.severity.value
            style = self.SEVERITY_STYLES.get(severity, "white")
            table.add_row(
                f"[{style}]{severity}[/]",
                diagnostic.kind.value,
                "" if diagnostic.index is None else str(diagnostic.index),
                escape(diagnostic.message),
            )
        return table
