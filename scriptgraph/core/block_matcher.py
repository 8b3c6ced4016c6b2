"""Block matching over flat instruction lists.

Blocks are implicit: an opener (if/while/for) pairs with the first terminator
of the matching type at the same nesting depth. Both scans compare type tags
only and never evaluate handler logic.
"""

from __future__ import annotations

from collections.abc import Sequence

from scriptgraph.core.graph_schema import ControlType, Instruction

NOT_FOUND = -1

# Terminator -> opener that increases nesting depth for it
OPENER_FOR_TERMINATOR = {
    ControlType.END_IF: ControlType.IF,
    ControlType.END_WHILE: ControlType.WHILE,
    ControlType.END_FOR: ControlType.FOR_NUMERIC,
    ControlType.END_FOR_GENERIC: ControlType.FOR_GENERIC,
}

TERMINATOR_FOR_OPENER = {opener: end for end, opener in OPENER_FOR_TERMINATOR.items()}


def find_matching_end(
    instructions: Sequence[Instruction], start_index: int, terminator: ControlType
) -> int:
    """Index of the terminator closing the block opened before start_index.

    Returns NOT_FOUND (-1) if the list ends first.
    """
    opener = OPENER_FOR_TERMINATOR.get(terminator)
    if opener is None:
        raise ValueError(f"'{terminator}' is not a block terminator")

    depth = 0
    for k in range(start_index + 1, len(instructions)):
        control = instructions[k].control
        if control == opener:
            depth += 1
        elif control == terminator:
            if depth == 0:
                return k
            depth -= 1
    return NOT_FOUND


def find_matching_else_or_end(instructions: Sequence[Instruction], start_index: int) -> int:
    """Index of the first same-depth else or endIf after the if at start_index.

    Returns NOT_FOUND (-1) if start_index is not an if or neither is found.
    """
    if not 0 <= start_index < len(instructions):
        return NOT_FOUND
    if instructions[start_index].control != ControlType.IF:
        return NOT_FOUND

    depth = 0
    for k in range(start_index + 1, len(instructions)):
        control = instructions[k].control
        if control == ControlType.IF:
            depth += 1
        elif control == ControlType.ELSE:
            if depth == 0:
                return k
        elif control == ControlType.END_IF:
            if depth == 0:
                return k
            depth -= 1
    return NOT_FOUND


def find_unmatched_terminators(instructions: Sequence[Instruction]) -> list[int]:
    """Indices of terminators and else markers that close no open block."""
    stack: list[ControlType] = []
    orphans: list[int] = []
    for index, instruction in enumerate(instructions):
        control = instruction.control
        if control in TERMINATOR_FOR_OPENER:
            stack.append(control)
        elif control == ControlType.ELSE:
            if not stack or stack[-1] != ControlType.IF:
                orphans.append(index)
        elif control in OPENER_FOR_TERMINATOR:
            if stack and stack[-1] == OPENER_FOR_TERMINATOR[control]:
                stack.pop()
            else:
                orphans.append(index)
    return orphans


def block_depths(instructions: Sequence[Instruction]) -> list[int]:
    """Static nesting depth of every instruction, for display.

    Openers and their terminators share the depth of the enclosing block;
    else sits at the depth of its if.
    """
    depths: list[int] = []
    depth = 0
    for instruction in instructions:
        control = instruction.control
        if control in OPENER_FOR_TERMINATOR or control == ControlType.ELSE:
            depth = max(depth - 1, 0)
        depths.append(depth)
        if control in TERMINATOR_FOR_OPENER or control == ControlType.ELSE:
            depth += 1
    return depths
