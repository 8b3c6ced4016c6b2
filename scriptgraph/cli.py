"""CLI entry point for ScriptGraph.

Commands:
- scriptgraph init: Write a default engine config
- scriptgraph run: Execute a graph from a graph file
- scriptgraph validate: Check block structure and call targets
- scriptgraph show: Render a graph's block structure as a tree
- scriptgraph handlers: List registered instruction types
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from scriptgraph.cli_ui.graph_renderer import RunResultRenderer, TerminalGraphRenderer
from scriptgraph.core.config import DEFAULT_CONFIG_YAML, ConfigError, ConfigLoader
from scriptgraph.core.executor import run_graph
from scriptgraph.core.graph_store import GraphStore, GraphStoreError
from scriptgraph.core.handlers import default_registry
from scriptgraph.core.values import parse_literal

console = Console()
err_console = Console(stderr=True)

DEFAULT_GRAPH_KEY = "main"


def setup_logging(verbose: bool, quiet: bool = False) -> None:
    """Route log records through Rich on stderr. quiet keeps stdout-only output clean."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.CRITICAL
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_store(graphs_file: str, function_prefix: str = "func:") -> GraphStore:
    """Load a graph file or exit with a readable error."""
    try:
        return GraphStore.load(graphs_file, function_prefix=function_prefix)
    except GraphStoreError as e:
        console.print(f"[red]Error loading '{escape(graphs_file)}':[/red]")
        console.print(f"  {escape(str(e))}")
        sys.exit(1)


def select_graph_key(store: GraphStore, key: str | None) -> str:
    """Explicit key, else 'main', else the only script graph."""
    if key is not None:
        if key not in store:
            console.print(f"[red]Graph '{escape(key)}' not found[/red]")
            sys.exit(1)
        return key
    if DEFAULT_GRAPH_KEY in store:
        return DEFAULT_GRAPH_KEY
    scripts = [k for k in store.keys() if k not in store.functions()]
    if len(scripts) == 1:
        return scripts[0]
    console.print("[red]Cannot choose a graph to run; pass --graph KEY[/red]")
    if store.keys():
        console.print(f"  Available: {escape(', '.join(store.keys()))}")
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """ScriptGraph - execution engine for visual node scripts.

    Runs flat instruction lists produced by a visual editor: conditionals,
    loops, function graph calls and simulated side effects.
    """
    pass


@main.command()
def init() -> None:
    """Write a default .scriptgraph/config.yaml."""
    config_dir = Path.cwd() / ".scriptgraph"
    config_path = config_dir / "config.yaml"

    if config_path.exists():
        console.print("[yellow]Project already initialized[/yellow]")
        return

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_YAML)
    console.print(f"[green]Created {config_path.relative_to(Path.cwd())}[/green]")


@main.command()
@click.argument("graphs_file", type=click.Path(exists=True))
@click.option("--graph", "-g", "graph_key", help="Graph key to run (default: main)")
@click.option("--arg", "-a", "args", multiple=True, help="Argument for a function graph")
@click.option("--max-iterations", type=int, help="Override the iteration ceiling")
@click.option("--json", "as_json", is_flag=True, help="Print the run result as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def run(
    graphs_file: str,
    graph_key: str | None,
    args: tuple[str, ...],
    max_iterations: int | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Execute a graph from GRAPHS_FILE."""
    setup_logging(verbose, quiet=as_json)

    try:
        config = ConfigLoader().load({"max_iterations": max_iterations})
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    store = load_store(graphs_file, config.function_prefix)
    key = select_graph_key(store, graph_key)
    graph = store.get(key)

    result = run_graph(graph, store, [parse_literal(a) for a in args], config=config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), default=str, indent=2))
    else:
        RunResultRenderer(console).render(result, key)

    if not result.success:
        sys.exit(1)


@main.command()
@click.argument("graphs_file", type=click.Path(exists=True))
def validate(graphs_file: str) -> None:
    """Validate every graph in GRAPHS_FILE without running it."""
    store = load_store(graphs_file)
    errors, warnings = store.validate()

    for warning in warnings:
        console.print(f"  [yellow]• {escape(warning)}[/]")

    if errors:
        console.print("[red]Validation errors:[/red]")
        for error in errors:
            console.print(f"  [red]• {escape(error)}[/]")
        sys.exit(1)

    console.print(f"[green]✓ {len(store)} graph(s) valid[/]")


@main.command()
@click.argument("graphs_file", type=click.Path(exists=True))
@click.option("--graph", "-g", "graph_key", help="Only show this graph")
def show(graphs_file: str, graph_key: str | None) -> None:
    """Show the block structure of graphs in GRAPHS_FILE."""
    store = load_store(graphs_file)
    if graph_key is not None and graph_key not in store:
        console.print(f"[red]Graph '{escape(graph_key)}' not found[/red]")
        sys.exit(1)

    renderer = TerminalGraphRenderer(console)
    keys = [graph_key] if graph_key is not None else store.keys()
    for key in keys:
        graph = store.get(key)
        console.print(renderer.render_as_tree(graph, key))
        errors = graph.validate_graph()
        for error in errors:
            console.print(f"  [red]• {escape(error)}[/]")
        console.print()


@main.command()
def handlers() -> None:
    """List registered instruction types."""
    registry = default_registry()

    table = Table(title="Instruction Handlers")
    table.add_column("Type", style="cyan")
    table.add_column("Config", style="magenta")
    table.add_column("Description")

    for type_name in registry.types():
        spec = registry.get(type_name)
        doc = (spec.func.__doc__ or "").strip().splitlines()
        table.add_row(type_name, spec.config_model.__name__, doc[0] if doc else "")

    console.print(table)


if __name__ == "__main__":
    main()
