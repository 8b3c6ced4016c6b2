# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the ScriptGraph test suite.

This module provides the building blocks used across test modules:
- Instruction builders mirroring the editor's node shape
- A run factory wrapping GraphExecutor
- Sample graph stores and graph files (YAML)

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
    All fixtures in this file are automatically available in test modules.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from scriptgraph.core.config import EngineConfig
from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.executor import GraphExecutor
from scriptgraph.core.graph_store import GraphStore
from scriptgraph.core.handlers import HandlerRegistry
from scriptgraph.core.models import RunResult


# =============================================================================
# Instruction Builders
# =============================================================================


def make_node(type_name: str, label: str | None = None, **config: Any) -> dict[str, Any]:
    """Editor-shaped node: {"id": type, "label": ..., "config": {...}}."""
    node: dict[str, Any] = {"id": type_name, "config": config}
    if label is not None:
        node["label"] = label
    return node


def make_condition(
    type_name: str,
    lhs: Any,
    operator: str = "is true",
    rhs: Any = "",
    lhs_type: str = "literal",
    rhs_type: str = "literal",
) -> dict[str, Any]:
    """if/while header node with a single comparison."""
    return make_node(
        type_name,
        conditionLhsType=lhs_type,
        conditionLhsValue=lhs,
        conditionOperator=operator,
        conditionRhsType=rhs_type,
        conditionRhsValue=rhs,
    )


@pytest.fixture
def node() -> Callable[..., dict[str, Any]]:
    """Builder for editor nodes.

    Example:
        def test_something(node):
            instructions = [node("print", message="hi")]
    """
    return make_node


@pytest.fixture
def condition() -> Callable[..., dict[str, Any]]:
    """Builder for if/while headers.

    Example:
        condition("while", "n", "<", "3", lhs_type="variable")
    """
    return make_condition


@pytest.fixture
def print_var() -> Callable[[str], dict[str, Any]]:
    """Builder for a print node that prints a variable."""

    def build(name: str) -> dict[str, Any]:
        return make_node("print", useVariableForMessage=True, messageVariable=name)

    return build


# =============================================================================
# Execution Fixtures
# =============================================================================


@pytest.fixture
def execute() -> Callable[..., RunResult]:
    """Factory running an instruction list and returning its RunResult.

    Keyword arguments:
        args, parameters: bound like a function call
        lookup: graph lookup for call instructions
        registry: custom HandlerRegistry
        cancel_event: threading.Event checked each step
        any other keyword: EngineConfig field
    """

    def run(
        instructions: list[dict[str, Any]],
        args: tuple = (),
        parameters: tuple = (),
        lookup: Callable[[str], Any] | None = None,
        registry: HandlerRegistry | None = None,
        cancel_event: Any = None,
        **config: Any,
    ) -> RunResult:
        executor = GraphExecutor(
            instructions,
            lookup,
            config=EngineConfig(**config),
            registry=registry,
        )
        return executor.execute(args, parameters, cancel_event=cancel_event)

    return run


@pytest.fixture
def context() -> ExecutionContext:
    """Fresh execution context with no subgraph runner."""
    return ExecutionContext()


@pytest.fixture
def printed() -> Callable[[RunResult], list[str]]:
    """Messages of print entries in a run's result log, in order."""

    def collect(result: RunResult) -> list[str]:
        return [
            entry["output"]["message_printed"]
            for entry in result.results
            if isinstance(entry, dict) and entry.get("instruction_type") == "print"
        ]

    return collect


# =============================================================================
# Graph Store Fixtures
# =============================================================================


@pytest.fixture
def sample_graphs() -> dict[str, Any]:
    """Graph mapping with a script calling a function graph.

    Creates:
        - main: sets a private variable, calls double(21) into 'answer'
        - func:double: returns n * 2
        - func:peek: returns the caller's private variable (must be nil)
    """
    return {
        "graphs": {
            "main": {
                "nodes": [
                    make_node("setVariable", name="secret", value="hidden"),
                    make_node(
                        "callFunction",
                        label="Double it",
                        functionName="double",
                        argumentSources=[{"type": "literal", "value": "21"}],
                        resultVariable="answer",
                    ),
                    make_node("print", useVariableForMessage=True, messageVariable="answer"),
                ]
            },
            "func:double": {
                "parameters": ["n"],
                "nodes": [
                    make_node(
                        "math",
                        operation="multiply",
                        useVariableForValue1=True,
                        value1Variable="n",
                        value2="2",
                        resultVariable="doubled",
                    ),
                    make_node("return", useVariableForResult=True, returnVariable="doubled"),
                ],
            },
            "func:peek": {
                "parameters": [],
                "nodes": [
                    make_node("return", useVariableForResult=True, returnVariable="secret"),
                ],
            },
        }
    }


@pytest.fixture
def sample_store(sample_graphs: dict[str, Any]) -> GraphStore:
    """GraphStore loaded from sample_graphs."""
    return GraphStore.from_mapping(sample_graphs)


@pytest.fixture
def graphs_file(tmp_path: Path, sample_graphs: dict[str, Any]) -> Path:
    """sample_graphs written to a YAML file."""
    path = tmp_path / "graphs.yaml"
    path.write_text(yaml.safe_dump(sample_graphs, sort_keys=False))
    return path
