"""Graph store: a keyed collection of graphs loaded from YAML or JSON.

File layout (YAML shown, JSON is accepted too):

    graphs:
      main:
        nodes:
          - {id: callFunction, functionName: double, argumentSources: [...]}
      "func:double":
        parameters: [n]
        nodes: [...]

The top-level `graphs:` key is optional. A graph given as a bare list is
treated as a script with those nodes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import networkx as nx
import yaml
from pydantic import ValidationError

from scriptgraph.core.graph_schema import FUNC_PREFIX, Graph, function_key

logger = logging.getLogger(__name__)

MAX_CYCLES_TO_REPORT = 100


class GraphStoreError(Exception):
    """A graph file could not be read or parsed."""

    pass


class GraphStore:
    """Graphs by key. Instances are callable so they can serve as a graph lookup."""

    def __init__(self, graphs: dict[str, Graph] | None = None, function_prefix: str = FUNC_PREFIX):
        self._graphs: dict[str, Graph] = dict(graphs or {})
        self.function_prefix = function_prefix

    def __call__(self, key: str) -> Graph | None:
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._graphs

    def __len__(self) -> int:
        return len(self._graphs)

    def get(self, key: str) -> Graph | None:
        return self._graphs.get(key)

    def add(self, key: str, graph: Graph) -> None:
        self._graphs[key] = graph

    def keys(self) -> list[str]:
        return list(self._graphs)

    def functions(self) -> list[str]:
        """Keys of callable graphs."""
        return [key for key, graph in self._graphs.items() if graph.is_callable]

    # ========== Loading ==========

    @classmethod
    def from_mapping(cls, data: dict[str, Any], function_prefix: str = FUNC_PREFIX) -> GraphStore:
        if not isinstance(data, dict):
            raise GraphStoreError(f"Expected a mapping of graphs, got {type(data).__name__}")
        graphs_data = data.get("graphs", data)
        if not isinstance(graphs_data, dict):
            raise GraphStoreError("'graphs' must be a mapping of key -> graph")

        graphs: dict[str, Graph] = {}
        for key, raw in graphs_data.items():
            if isinstance(raw, list):
                raw = {"nodes": raw}
            elif isinstance(raw, dict) and not isinstance(raw.get("nodes", raw.get("instructions")), list):
                raise GraphStoreError(f"Invalid graph '{key}': no 'nodes' instruction list")
            try:
                graphs[str(key)] = Graph.model_validate(raw)
            except ValidationError as e:
                raise GraphStoreError(f"Invalid graph '{key}':\n{e}") from e
        logger.debug(f"Loaded {len(graphs)} graph(s)")
        return cls(graphs, function_prefix=function_prefix)

    @classmethod
    def load(cls, path: str | Path, function_prefix: str = FUNC_PREFIX) -> GraphStore:
        """Load graphs from a YAML or JSON file (JSON is a subset of YAML)."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise GraphStoreError(f"Cannot read {path}: {e}") from e
        except yaml.YAMLError as e:
            raise GraphStoreError(f"Invalid YAML/JSON in {path}: {e}") from e
        if data is None:
            return cls(function_prefix=function_prefix)
        return cls.from_mapping(data, function_prefix=function_prefix)

    # ========== Analysis ==========

    def call_graph(self) -> nx.DiGraph:
        """Directed graph of graph key -> called function key."""
        G = nx.DiGraph()
        for key, graph in self._graphs.items():
            G.add_node(key)
            for name in graph.called_functions():
                G.add_edge(key, function_key(name, self.function_prefix))
        return G

    def validate(self) -> tuple[list[str], list[str]]:
        """
        Check every graph's block structure and its call targets.

        Returns:
            (errors, warnings). Recursion is a warning: it is legal, and the
            call depth limit stops it at runtime.
        """
        errors: list[str] = []
        warnings: list[str] = []

        for key, graph in self._graphs.items():
            errors.extend(f"{key}: {message}" for message in graph.validate_graph())
            for name in graph.called_functions():
                target_key = function_key(name, self.function_prefix)
                target = self._graphs.get(target_key)
                if target is None:
                    errors.append(f"{key}: calls unknown function '{name}' ({target_key})")
                elif not target.is_callable:
                    errors.append(f"{key}: '{target_key}' is not a function graph")

        G = self.call_graph()
        try:
            for count, cycle in enumerate(nx.simple_cycles(G), start=1):
                if count > MAX_CYCLES_TO_REPORT:
                    warnings.append(f"More than {MAX_CYCLES_TO_REPORT} recursive call cycles")
                    break
                path = " -> ".join([*cycle, cycle[0]])
                warnings.append(f"Recursive call cycle: {path}")
        except nx.NetworkXError as e:
            warnings.append(f"Could not perform cycle detection: {e}")

        return errors, warnings
