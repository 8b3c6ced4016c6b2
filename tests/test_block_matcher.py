"""Tests for block matching over flat instruction lists."""

from __future__ import annotations

import pytest

from scriptgraph.core.block_matcher import (
    NOT_FOUND,
    block_depths,
    find_matching_else_or_end,
    find_matching_end,
    find_unmatched_terminators,
)
from scriptgraph.core.graph_schema import ControlType, Instruction


def program(*types: str) -> list[Instruction]:
    return [Instruction(type=t) for t in types]


class TestFindMatchingEnd:
    """Tests for find_matching_end."""

    def test_simple_block(self):
        instructions = program("while", "print", "endWhile")
        assert find_matching_end(instructions, 0, ControlType.END_WHILE) == 2

    def test_skips_nested_block_of_same_type(self):
        """Nested openers of the same type increase depth."""
        instructions = program("while", "while", "endWhile", "print", "endWhile")
        assert find_matching_end(instructions, 0, ControlType.END_WHILE) == 4
        assert find_matching_end(instructions, 1, ControlType.END_WHILE) == 2

    def test_ignores_other_block_types(self):
        """Only the opener paired with the terminator affects depth."""
        instructions = program("forNumeric", "if", "endFor", "endIf")
        assert find_matching_end(instructions, 0, ControlType.END_FOR) == 2

    def test_not_found(self):
        instructions = program("while", "print")
        assert find_matching_end(instructions, 0, ControlType.END_WHILE) == NOT_FOUND

    def test_from_else_finds_end_if(self):
        """Scanning from an else finds its if's terminator."""
        instructions = program("if", "else", "if", "endIf", "endIf")
        assert find_matching_end(instructions, 1, ControlType.END_IF) == 4

    def test_rejects_non_terminator(self):
        with pytest.raises(ValueError):
            find_matching_end(program("while"), 0, ControlType.WHILE)

    def test_aliases_are_matched(self):
        """Editor aliases are normalized before matching."""
        instructions = [Instruction(type="forLoopGeneric"), Instruction(type="endForGeneric")]
        assert find_matching_end(instructions, 0, ControlType.END_FOR_GENERIC) == 1


class TestFindMatchingElseOrEnd:
    """Tests for find_matching_else_or_end."""

    def test_finds_else(self):
        instructions = program("if", "print", "else", "print", "endIf")
        assert find_matching_else_or_end(instructions, 0) == 2

    def test_finds_end_if_without_else(self):
        instructions = program("if", "print", "endIf")
        assert find_matching_else_or_end(instructions, 0) == 2

    def test_skips_nested_else(self):
        """A nested if's else is not the outer if's else."""
        instructions = program("if", "if", "else", "endIf", "else", "endIf")
        assert find_matching_else_or_end(instructions, 0) == 4
        assert find_matching_else_or_end(instructions, 1) == 2

    def test_not_found(self):
        assert find_matching_else_or_end(program("if", "print"), 0) == NOT_FOUND

    def test_requires_if_at_start(self):
        assert find_matching_else_or_end(program("print", "endIf"), 0) == NOT_FOUND
        assert find_matching_else_or_end(program("if"), 5) == NOT_FOUND


class TestStaticAnalysis:
    """Tests for find_unmatched_terminators and block_depths."""

    def test_no_orphans_in_well_formed_program(self):
        instructions = program("if", "while", "endWhile", "else", "endIf")
        assert find_unmatched_terminators(instructions) == []

    def test_orphan_terminators(self):
        instructions = program("endWhile", "if", "endFor", "endIf", "else")
        assert find_unmatched_terminators(instructions) == [0, 2, 4]

    def test_block_depths(self):
        instructions = program(
            "print", "if", "print", "else", "while", "print", "endWhile", "endIf"
        )
        assert block_depths(instructions) == [0, 0, 1, 0, 1, 2, 1, 0]
