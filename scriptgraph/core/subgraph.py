"""Subgraph invocation.

A call instruction runs another graph synchronously: the callee gets a brand
new executor and context holding only its own parameters, so no variables
leak in either direction. A failing callee yields None to its caller; the
caller's run continues and its result log records why.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from scriptgraph.core.config import EngineConfig
from scriptgraph.core.graph_schema import Graph
from scriptgraph.core.models import CallDepthExceededError, SubgraphError

if TYPE_CHECKING:
    from scriptgraph.core.context import ExecutionContext, Notifier
    from scriptgraph.core.handlers import HandlerRegistry

logger = logging.getLogger(__name__)

GraphLookup = Callable[[str], "Graph | dict | None"]


class SubgraphInvoker:
    """Resolves callable graphs by key and runs them in isolation."""

    def __init__(
        self,
        graph_lookup: GraphLookup | None,
        config: EngineConfig,
        registry: HandlerRegistry,
        notifier: Notifier | None = None,
    ):
        self.graph_lookup = graph_lookup
        self.config = config
        self.registry = registry
        self.notifier = notifier

    def resolve(self, graph_key: str) -> Graph:
        """Look up graph_key; raises SubgraphError unless it is a callable graph."""
        if self.graph_lookup is None:
            raise SubgraphError(f'Cannot call "{graph_key}": no graph lookup configured.')

        graph = self.graph_lookup(graph_key)
        if graph is None:
            raise SubgraphError(f'Function graph "{graph_key}" not found.')

        if isinstance(graph, dict):
            nodes = graph.get("nodes", graph.get("instructions"))
            if not isinstance(nodes, list):
                raise SubgraphError(f'Invalid node data for function graph "{graph_key}".')
            try:
                graph = Graph.model_validate(graph)
            except ValidationError as e:
                raise SubgraphError(
                    f'Invalid node data for function graph "{graph_key}": {e.error_count()} error(s)'
                ) from e

        if not graph.is_callable:
            raise SubgraphError(f'Graph "{graph_key}" is not a function graph.')
        return graph

    def call(
        self,
        graph_key: str,
        args: list[Any],
        caller: ExecutionContext | None = None,
        depth: int = 1,
    ) -> Any:
        """
        Run the function graph at graph_key and return its return value.

        Raises:
            CallDepthExceededError: depth exceeds config.max_call_depth
            SubgraphError: graph missing, malformed or not callable
        """
        if depth > self.config.max_call_depth:
            raise CallDepthExceededError(
                f"Maximum call depth ({self.config.max_call_depth}) exceeded "
                f'calling "{graph_key}".'
            )

        graph = self.resolve(graph_key)

        from scriptgraph.core.executor import GraphExecutor

        executor = GraphExecutor(
            graph.instructions,
            self.graph_lookup,
            config=self.config,
            registry=self.registry,
            notifier=self.notifier,
            call_depth=depth,
        )
        result = executor.execute(args, graph.parameters or [], function_scope=True)

        if not result.success:
            logger.error(f'Subgraph execution failed for "{graph_key}".')
            if caller is not None:
                caller.add_result(
                    {
                        "action": "subgraph_error",
                        "status": "error",
                        "graph_key": graph_key,
                        "errors": [d.to_dict() for d in result.errors],
                    }
                )
            return None

        return result.return_value
