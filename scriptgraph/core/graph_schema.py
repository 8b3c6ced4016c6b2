"""Graph schema definitions using Pydantic models.

A graph is an ordered, flat list of typed instructions produced by the
visual editor. Control flow is implicit: block openers (if/while/for) are
paired with their terminators by position and nesting depth, not by edges.

Graphs that declare `parameters` are callable functions; graphs without
them are plain scripts.
"""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FUNC_PREFIX = "func:"


class ControlType(str, Enum):
    """Instruction types the execution loop treats as control flow"""

    IF = "if"
    ELSE = "else"
    END_IF = "endIf"
    WHILE = "while"
    END_WHILE = "endWhile"
    FOR_NUMERIC = "forNumeric"
    END_FOR = "endFor"
    FOR_GENERIC = "forGeneric"
    END_FOR_GENERIC = "endForGeneric"
    BREAK = "break"
    RETURN = "return"
    CALL = "call"


# Node ids used by the editor -> canonical instruction types
TYPE_ALIASES = {
    "ifCondition": ControlType.IF.value,
    "elseCondition": ControlType.ELSE.value,
    "whileCondition": ControlType.WHILE.value,
    "forLoopNumeric": ControlType.FOR_NUMERIC.value,
    "forLoopGeneric": ControlType.FOR_GENERIC.value,
    "callFunction": ControlType.CALL.value,
    "variable": "setVariable",
    "concatStrings": "concatenate",
}

_CONTROL_VALUES = {c.value: c for c in ControlType}


def function_key(name: str, prefix: str = FUNC_PREFIX) -> str:
    """Graph key under which a function graph is stored."""
    return name if name.startswith(prefix) else f"{prefix}{name}"


class Instruction(BaseModel):
    """One typed, configured step in a graph. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(alias="id")
    label: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    runtime_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def collect_inline_config(cls, data: Any) -> Any:
        """Accept editor nodes that carry their configuration inline.

        {"id": "print", "label": "Print", "message": "hi"} becomes
        {"type": "print", "label": "Print", "config": {"message": "hi"}}.
        """
        if not isinstance(data, dict):
            return data
        known = {"id", "type", "label", "config", "runtime_id", "runtimeId"}
        extras = {k: v for k, v in data.items() if k not in known}
        if not extras and "runtimeId" not in data:
            return data
        result = {k: v for k, v in data.items() if k in known and k != "runtimeId"}
        if "runtimeId" in data and "runtime_id" not in data:
            result["runtime_id"] = data["runtimeId"]
        result["config"] = {**extras, **(data.get("config") or {})}
        return result

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        if not v or not isinstance(v, str):
            raise ValueError("Instruction type must be a non-empty string")
        return TYPE_ALIASES.get(v, v)

    @property
    def control(self) -> ControlType | None:
        """Control-flow type, or None for plain (leaf) instructions."""
        return _CONTROL_VALUES.get(self.type)

    @property
    def display_name(self) -> str:
        return self.label or self.type


class Graph(BaseModel):
    """Ordered instruction list plus optional function parameters."""

    model_config = ConfigDict(populate_by_name=True)

    instructions: list[Instruction] = Field(default_factory=list, alias="nodes")
    parameters: list[str] | None = None  # Present only on function graphs
    scope: Literal["client", "server", "shared"] | None = None
    description: str | None = None

    @property
    def is_callable(self) -> bool:
        return self.parameters is not None

    def validate_graph(self) -> list[str]:
        """
        Validate block structure without executing anything.
        Returns list of validation errors.
        """
        from scriptgraph.core import block_matcher

        errors = []
        instructions = self.instructions

        for index, instruction in enumerate(instructions):
            control = instruction.control
            if control == ControlType.IF:
                if block_matcher.find_matching_end(instructions, index, ControlType.END_IF) == -1:
                    errors.append(f"Missing matching 'End If' for 'If' at index {index}")
            elif control in block_matcher.TERMINATOR_FOR_OPENER:
                terminator = block_matcher.TERMINATOR_FOR_OPENER[control]
                if block_matcher.find_matching_end(instructions, index, terminator) == -1:
                    errors.append(
                        f"Missing matching '{terminator.value}' for '{control.value}' "
                        f"at index {index}"
                    )

        for index in block_matcher.find_unmatched_terminators(instructions):
            errors.append(
                f"Unmatched '{instructions[index].type}' at index {index} "
                f"(no open block to close)"
            )

        if self.parameters is not None:
            for name in self.parameters:
                if not name or not name.isidentifier():
                    errors.append(f"Invalid parameter name: '{name}'")
            duplicates = [n for n, count in Counter(self.parameters).items() if count > 1]
            for name in duplicates:
                errors.append(f"Duplicate parameter name: '{name}'")

        return errors

    def called_functions(self) -> list[str]:
        """Function names referenced by call instructions, in order."""
        names = []
        for instruction in self.instructions:
            if instruction.control == ControlType.CALL:
                name = instruction.config.get("functionName")
                if isinstance(name, str) and name:
                    names.append(name)
        return names
