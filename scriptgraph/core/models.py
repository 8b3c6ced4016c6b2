"""Result, diagnostic and error models for the execution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """How serious a diagnostic is."""

    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(str, Enum):
    """Error taxonomy reported by the execution engine."""

    STRUCTURAL = "structural"  # Malformed graph (unmatched markers, bad loop stack)
    HANDLER_FAULT = "handler_fault"  # An instruction handler raised
    RESOURCE = "resource"  # Iteration ceiling or call depth exhausted
    CANCELLED = "cancelled"  # Host cancelled the run
    WARNING = "warning"  # Non-fatal soft warning


# --- Errors ---


class ExecutionError(Exception):
    """Base class for errors raised while running a graph."""

    kind = DiagnosticKind.HANDLER_FAULT


class StructuralError(ExecutionError):
    """The instruction list is malformed."""

    kind = DiagnosticKind.STRUCTURAL


class MissingTerminatorError(StructuralError):
    """A block opener has no matching terminator."""

    pass


class LoopMismatchError(StructuralError):
    """A loop terminator found an empty or wrong-variant loop stack."""

    pass


class BreakOutsideLoopError(StructuralError):
    """A break was signalled with no active loop."""

    pass


class SubgraphError(ExecutionError):
    """A called graph is missing or not callable."""

    pass


class CallDepthExceededError(SubgraphError):
    """Nested subgraph calls exceeded the configured depth."""

    kind = DiagnosticKind.RESOURCE


# --- Diagnostics and results ---


@dataclass
class Diagnostic:
    """A human-readable warning or error emitted during a run."""

    kind: DiagnosticKind
    severity: Severity
    message: str
    index: int | None = None
    label: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "index": self.index,
            "label": self.label,
        }

    def __str__(self) -> str:
        location = f" (index {self.index})" if self.index is not None else ""
        return f"[{self.severity.value}] {self.message}{location}"


@dataclass
class RunResult:
    """Outcome of one execute() call."""

    success: bool
    results: list[Any] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    return_value: Any = None
    has_returned: bool = False
    diagnostics: list[Diagnostic] = field(default_factory=list)
    iterations: int = 0

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-shaped dict (values are passed through as-is)."""
        return {
            "success": self.success,
            "results": self.results,
            "variables": self.variables,
            "return_value": self.return_value,
            "has_returned": self.has_returned,
            "iterations": self.iterations,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
