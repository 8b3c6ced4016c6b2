"""Tests for result and diagnostic models.

This module tests the dataclasses and enums returned by the engine:
- Diagnostic formatting and serialization
- RunResult error/warning split and to_dict
- Exception kinds
"""

from __future__ import annotations

from scriptgraph.core.models import (
    BreakOutsideLoopError,
    CallDepthExceededError,
    Diagnostic,
    DiagnosticKind,
    ExecutionError,
    RunResult,
    Severity,
    SubgraphError,
)

# =============================================================================
# Diagnostic Tests
# =============================================================================


class TestDiagnostic:
    """Tests for Diagnostic."""

    def test_str_without_index(self):
        diagnostic = Diagnostic(DiagnosticKind.CANCELLED, Severity.ERROR, "stopped")
        assert str(diagnostic) == "[error] stopped"
        assert diagnostic.is_error is True

    def test_to_dict_uses_enum_values(self):
        diagnostic = Diagnostic(
            DiagnosticKind.WARNING, Severity.WARNING, "careful", index=2, label="Print"
        )

        assert diagnostic.to_dict() == {
            "kind": "warning",
            "severity": "warning",
            "message": "careful",
            "index": 2,
            "label": "Print",
        }


# =============================================================================
# RunResult Tests
# =============================================================================


class TestRunResult:
    """Tests for RunResult."""

    def test_errors_and_warnings(self):
        error = Diagnostic(DiagnosticKind.STRUCTURAL, Severity.ERROR, "bad")
        warning = Diagnostic(DiagnosticKind.WARNING, Severity.WARNING, "meh")
        result = RunResult(success=False, diagnostics=[warning, error])

        assert result.errors == [error]
        assert result.warnings == [warning]

    def test_to_dict(self):
        result = RunResult(success=True, variables={"x": 1}, return_value=2, has_returned=True)

        data = result.to_dict()

        assert data["success"] is True
        assert data["variables"] == {"x": 1}
        assert data["return_value"] == 2
        assert data["diagnostics"] == []


# =============================================================================
# Exception Tests
# =============================================================================


class TestExceptions:
    """Tests for exception kinds."""

    def test_kinds(self):
        assert ExecutionError.kind == DiagnosticKind.HANDLER_FAULT
        assert BreakOutsideLoopError.kind == DiagnosticKind.STRUCTURAL
        assert SubgraphError.kind == DiagnosticKind.HANDLER_FAULT
        assert CallDepthExceededError.kind == DiagnosticKind.RESOURCE

    def test_call_depth_is_a_subgraph_error(self):
        assert issubclass(CallDepthExceededError, SubgraphError)
        assert issubclass(SubgraphError, ExecutionError)
