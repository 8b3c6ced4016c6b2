"""Tests for GraphStore loading and call-graph analysis."""

from __future__ import annotations

import json

import pytest

from scriptgraph.core.graph_store import GraphStore, GraphStoreError


class TestLoading:
    """Tests for from_mapping and load."""

    def test_from_mapping(self, sample_store):
        assert set(sample_store.keys()) == {"main", "func:double", "func:peek"}
        assert sorted(sample_store.functions()) == ["func:double", "func:peek"]
        assert len(sample_store) == 3

    def test_store_is_a_lookup(self, sample_store):
        assert sample_store("main") is sample_store.get("main")
        assert sample_store("missing") is None

    def test_bare_list_is_a_script(self):
        store = GraphStore.from_mapping({"main": [{"id": "print", "message": "hi"}]})

        graph = store.get("main")
        assert graph.is_callable is False
        assert graph.instructions[0].config == {"message": "hi"}

    def test_load_yaml(self, graphs_file):
        store = GraphStore.load(graphs_file)
        assert "func:double" in store

    def test_load_json(self, tmp_path, sample_graphs):
        path = tmp_path / "graphs.json"
        path.write_text(json.dumps(sample_graphs))

        assert len(GraphStore.load(path)) == 3

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert len(GraphStore.load(path)) == 0

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("graphs: [unclosed")

        with pytest.raises(GraphStoreError, match="Invalid YAML/JSON"):
            GraphStore.load(path)

    def test_invalid_graph(self):
        with pytest.raises(GraphStoreError, match="Invalid graph 'main'"):
            GraphStore.from_mapping({"main": {"nodes": [{"label": "no id"}]}})

    def test_graph_without_instruction_list(self):
        """A function graph must carry its nodes; it is not an empty callable."""
        with pytest.raises(GraphStoreError, match="no 'nodes' instruction list"):
            GraphStore.from_mapping({"func:f": {"parameters": ["a"]}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(GraphStoreError, match="Cannot read"):
            GraphStore.load(tmp_path / "nope.yaml")


class TestAnalysis:
    """Tests for call_graph and validate."""

    def test_call_graph_edges(self, sample_store):
        G = sample_store.call_graph()

        assert G.has_edge("main", "func:double")
        assert not G.has_edge("func:double", "main")

    def test_valid_store(self, sample_store):
        assert sample_store.validate() == ([], [])

    def test_unknown_and_non_callable_targets(self):
        store = GraphStore.from_mapping(
            {
                "main": [
                    {"id": "callFunction", "functionName": "missing"},
                    {"id": "callFunction", "functionName": "script"},
                ],
                "func:script": [],
            }
        )

        errors, _ = store.validate()

        assert "main: calls unknown function 'missing' (func:missing)" in errors
        assert "main: 'func:script' is not a function graph" in errors

    def test_structure_errors_are_prefixed(self):
        store = GraphStore.from_mapping({"main": [{"id": "while"}]})

        errors, _ = store.validate()

        assert errors == ["main: Missing matching 'endWhile' for 'while' at index 0"]

    def test_recursion_is_a_warning(self):
        store = GraphStore.from_mapping(
            {
                "func:ping": {"parameters": [], "nodes": [{"id": "call", "functionName": "pong"}]},
                "func:pong": {"parameters": [], "nodes": [{"id": "call", "functionName": "ping"}]},
            }
        )

        errors, warnings = store.validate()

        assert errors == []
        assert len(warnings) == 1
        assert warnings[0].startswith("Recursive call cycle:")
        assert "func:ping" in warnings[0] and "func:pong" in warnings[0]
