"""Core execution engine: schema, block matching, loop state, handlers and executor."""

from scriptgraph.core.config import ConfigError, ConfigLoader, EngineConfig
from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.executor import GraphExecutor, run_graph
from scriptgraph.core.graph_schema import ControlType, Graph, Instruction
from scriptgraph.core.graph_store import GraphStore, GraphStoreError
from scriptgraph.core.models import Diagnostic, DiagnosticKind, ExecutionError, RunResult, Severity
from scriptgraph.core.subgraph import SubgraphInvoker

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "ControlType",
    "Diagnostic",
    "DiagnosticKind",
    "EngineConfig",
    "ExecutionContext",
    "ExecutionError",
    "Graph",
    "GraphExecutor",
    "GraphStore",
    "GraphStoreError",
    "Instruction",
    "RunResult",
    "Severity",
    "SubgraphInvoker",
    "run_graph",
]
