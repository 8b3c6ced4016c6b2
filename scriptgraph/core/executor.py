"""Execution loop for flat instruction lists.

The executor steps a program counter through a frozen tuple of instructions.
Each step:
1. Honours pending signals (function return, break)
2. Evaluates the instruction through its handler
3. Resolves the next index from the instruction's control type

Evaluation (HandlerRegistry) and control resolution (_transitions) are kept
in separate tables: adding a leaf instruction never touches the dispatcher.

Every failure is contained: structural errors, handler faults, the iteration
ceiling and cancellation all end the run with success=False and a diagnostic
instead of propagating out of execute().
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any, Callable

from scriptgraph.core.block_matcher import NOT_FOUND, find_matching_else_or_end, find_matching_end
from scriptgraph.core.config import EngineConfig
from scriptgraph.core.context import ExecutionContext, Notifier
from scriptgraph.core.graph_schema import ControlType, Graph, Instruction
from scriptgraph.core.handlers import HandlerRegistry, LoopEntry, default_registry
from scriptgraph.core.loop_state import GenericForFrame, NumericForFrame, WhileFrame
from scriptgraph.core.models import (
    BreakOutsideLoopError,
    Diagnostic,
    DiagnosticKind,
    ExecutionError,
    MissingTerminatorError,
    RunResult,
    Severity,
)
from scriptgraph.core.subgraph import GraphLookup, SubgraphInvoker

logger = logging.getLogger(__name__)

# Header results feed the dispatcher and are not written to the result log
CONSUMED_RESULTS = frozenset(
    {ControlType.IF, ControlType.WHILE, ControlType.FOR_NUMERIC, ControlType.FOR_GENERIC}
)

Transition = Callable[[int, Any, ExecutionContext], int]


class GraphExecutor:
    """
    Runs one graph's instructions to completion.

    An executor may be reused; every execute() call builds a fresh
    ExecutionContext, so no state leaks between runs.
    """

    def __init__(
        self,
        instructions: Sequence[Instruction | dict],
        graph_lookup: GraphLookup | None = None,
        config: EngineConfig | None = None,
        registry: HandlerRegistry | None = None,
        notifier: Notifier | None = None,
        call_depth: int = 0,
    ):
        if not isinstance(instructions, (list, tuple)):
            raise TypeError("GraphExecutor requires a list of instructions.")

        self.instructions: tuple[Instruction, ...] = tuple(self._freeze(instructions))
        self.graph_lookup = graph_lookup
        self.config = config or EngineConfig()
        self.registry = registry or default_registry()
        self.notifier = notifier
        self.call_depth = call_depth
        self.invoker = SubgraphInvoker(graph_lookup, self.config, self.registry, notifier)

        self._transitions: dict[ControlType, Transition] = {
            ControlType.IF: self._on_if,
            ControlType.ELSE: self._on_else,
            ControlType.END_IF: self._sequential,
            ControlType.WHILE: self._on_while,
            ControlType.END_WHILE: self._on_end_while,
            ControlType.FOR_NUMERIC: self._on_for_numeric,
            ControlType.END_FOR: self._on_end_for,
            ControlType.FOR_GENERIC: self._on_for_generic,
            ControlType.END_FOR_GENERIC: self._on_end_for_generic,
            ControlType.BREAK: self._sequential,  # Consumed at the top of the next step
            ControlType.RETURN: self._sequential,
            ControlType.CALL: self._sequential,
        }
        logger.debug(f"GraphExecutor initialized with {len(self.instructions)} instructions")

    @staticmethod
    def _freeze(instructions: Sequence[Instruction | dict]):
        for index, item in enumerate(instructions):
            instruction = item if isinstance(item, Instruction) else Instruction.model_validate(item)
            if not instruction.runtime_id:
                instruction = instruction.model_copy(update={"runtime_id": f"exec-node-{index}"})
            yield instruction

    # ========== Run ==========

    def execute(
        self,
        args: Sequence[Any] = (),
        parameters: Sequence[str] = (),
        cancel_event: threading.Event | None = None,
        function_scope: bool | None = None,
    ) -> RunResult:
        """
        Run the instructions from index 0.

        Args:
            args: Positional arguments bound to parameters
            parameters: Parameter names; non-empty means function scope
            cancel_event: Optional host cancellation, checked once per step
            function_scope: Override the scope derived from parameters

        Returns:
            RunResult with success flag, result log, variables and return value
        """
        parameters = list(parameters or [])
        args = list(args or [])
        if function_scope is None:
            function_scope = bool(parameters)
        logger.info(
            f"Starting execution (Scope: {'Function' if function_scope else 'File'}, "
            f"depth {self.call_depth})"
        )

        def run_subgraph(graph_key: str, call_args: list[Any]) -> Any:
            return self.invoker.call(graph_key, call_args, caller=context, depth=self.call_depth + 1)

        context = ExecutionContext(
            subgraph_runner=run_subgraph,
            notifier=self.notifier,
            call_depth=self.call_depth,
            function_prefix=self.config.function_prefix,
        )
        for index, name in enumerate(parameters):
            context.set_variable(name, args[index] if index < len(args) else None)

        ok = True
        halted = False
        pc = 0
        iterations = 0
        warned_unknown: set[int] = set()
        count = len(self.instructions)

        while pc < count and iterations < self.config.max_iterations:
            if cancel_event is not None and cancel_event.is_set():
                self._fail(context, DiagnosticKind.CANCELLED, "Execution cancelled by host", pc)
                ok, halted = False, True
                break

            iterations += 1
            instruction = self.instructions[pc]
            context.current_index = pc
            context.current_label = instruction.display_name

            if context.has_returned and function_scope:
                logger.debug(f"Function returned before index {pc}. Halting execution.")
                halted = True
                break

            if context.break_requested:
                frame = context.loop_stack.pop()
                if frame is None:
                    error = BreakOutsideLoopError(
                        f"Execution halted: Break encountered outside of a loop (Index {pc})."
                    )
                    self._fail(context, error.kind, str(error), pc)
                    ok, halted = False, True
                    break
                pc = frame.end + 1
                context.break_requested = False
                continue

            try:
                pc = self._step(pc, instruction, context, warned_unknown)
            except ExecutionError as e:
                self._fail(context, e.kind, str(e), pc)
                ok, halted = False, True
                break
            except Exception as e:
                logger.exception(f"Error executing {instruction.display_name} (Index {pc})")
                self._fail(
                    context,
                    DiagnosticKind.HANDLER_FAULT,
                    f"Error executing '{instruction.display_name}': {e} at index {pc}",
                    pc,
                )
                ok, halted = False, True
                break

        if not halted and pc < count:
            self._fail(
                context,
                DiagnosticKind.RESOURCE,
                f"Execution halted: Maximum iteration limit ({self.config.max_iterations}) "
                f"reached. Possible infinite loop detected.",
                pc,
            )
            ok = False

        if ok and context.break_requested and not context.loop_stack:
            self._fail(
                context,
                DiagnosticKind.STRUCTURAL,
                "Execution halted: Break encountered outside of a loop.",
                context.current_index,
            )
            ok = False

        if ok and context.loop_stack:
            context.current_index = None
            context.warn(
                f"Execution finished, but loop stack is not empty: "
                f"[{context.loop_stack.describe()}]. Missing End node(s)?"
            )

        logger.info(f"Execution finished. Success: {ok}")
        return RunResult(
            success=ok,
            results=context.results,
            variables=context.variables,
            return_value=context.return_value,
            has_returned=context.has_returned,
            diagnostics=context.diagnostics,
            iterations=iterations,
        )

    def _step(
        self, pc: int, instruction: Instruction, context: ExecutionContext, warned: set[int]
    ) -> int:
        """Evaluate one instruction and return the next index."""
        control = instruction.control

        if control is None and instruction.type not in self.registry:
            if self.config.warn_unknown_types and pc not in warned:
                warned.add(pc)
                context.warn(f"Unknown instruction type '{instruction.type}' treated as a no-op")
            return pc + 1

        result = self.registry.evaluate(instruction, context)
        if result is not None and control not in CONSUMED_RESULTS:
            context.add_result(
                {
                    "instruction_type": instruction.type,
                    "label": instruction.label,
                    "runtime_id": instruction.runtime_id,
                    "output": result,
                }
            )

        if control is None:
            return pc + 1
        return self._transitions[control](pc, result, context)

    def _fail(
        self, context: ExecutionContext, kind: DiagnosticKind, message: str, index: int | None
    ) -> None:
        label = None
        if index is not None and 0 <= index < len(self.instructions):
            label = self.instructions[index].display_name
        context.report(
            Diagnostic(kind=kind, severity=Severity.ERROR, message=message, index=index, label=label)
        )

    # ========== Control Transitions ==========

    def _matching_end(self, pc: int, terminator: ControlType, opener_name: str) -> int:
        end = find_matching_end(self.instructions, pc, terminator)
        if end == NOT_FOUND:
            raise MissingTerminatorError(
                f"Missing matching '{terminator.value}' for '{opener_name}' at index {pc}"
            )
        return end

    @staticmethod
    def _loop_entry(result: Any) -> LoopEntry:
        return result if isinstance(result, LoopEntry) else LoopEntry(should_enter=False)

    def _sequential(self, pc: int, result: Any, context: ExecutionContext) -> int:
        return pc + 1

    def _on_if(self, pc: int, result: Any, context: ExecutionContext) -> int:
        if result:
            return pc + 1
        target = find_matching_else_or_end(self.instructions, pc)
        if target == NOT_FOUND:
            raise MissingTerminatorError(
                f"Missing matching 'else' or 'endIf' for 'if' at index {pc}"
            )
        return target + 1

    def _on_else(self, pc: int, result: Any, context: ExecutionContext) -> int:
        # Reached only by falling out of a true branch: skip the else body
        return self._matching_end(pc, ControlType.END_IF, "else") + 1

    def _on_while(self, pc: int, result: Any, context: ExecutionContext) -> int:
        end = self._matching_end(pc, ControlType.END_WHILE, "while")
        if result:
            context.loop_stack.push_if_new(WhileFrame(start=pc, end=end))
            return pc + 1
        context.loop_stack.pop_if_start(pc)
        return end + 1

    def _on_end_while(self, pc: int, result: Any, context: ExecutionContext) -> int:
        frame = context.loop_stack.expect(WhileFrame, pc, "endWhile")
        return frame.start

    def _on_for_numeric(self, pc: int, result: Any, context: ExecutionContext) -> int:
        end = self._matching_end(pc, ControlType.END_FOR, "forNumeric")
        entry = self._loop_entry(result)
        if entry.should_enter and entry.params:
            context.loop_stack.push_if_new(NumericForFrame(start=pc, end=end, **entry.params))
            return pc + 1
        context.loop_stack.pop_if_start(pc)
        return end + 1

    def _on_end_for(self, pc: int, result: Any, context: ExecutionContext) -> int:
        frame = context.loop_stack.expect(NumericForFrame, pc, "endFor")
        if frame.advance():
            context.set_variable(frame.control_var, frame.current)
            return frame.start + 1
        # The control variable keeps its last in-range value
        context.loop_stack.pop()
        return frame.end + 1

    def _on_for_generic(self, pc: int, result: Any, context: ExecutionContext) -> int:
        end = self._matching_end(pc, ControlType.END_FOR_GENERIC, "forGeneric")
        entry = self._loop_entry(result)
        if entry.should_enter and entry.params:
            context.loop_stack.push_if_new(GenericForFrame(start=pc, end=end, **entry.params))
            return pc + 1
        context.loop_stack.pop_if_start(pc)
        return end + 1

    def _on_end_for_generic(self, pc: int, result: Any, context: ExecutionContext) -> int:
        frame = context.loop_stack.expect(GenericForFrame, pc, "endForGeneric")
        pair = frame.advance()
        if pair is not None:
            key, value = pair
            context.set_variable(frame.key_var, key)
            context.set_variable(frame.value_var, value)
            return frame.start + 1
        context.loop_stack.pop()
        return frame.end + 1


def run_graph(
    graph: Graph,
    graph_lookup: GraphLookup | None = None,
    args: Sequence[Any] = (),
    **kwargs: Any,
) -> RunResult:
    """Run a graph in the scope its declaration implies."""
    executor = GraphExecutor(graph.instructions, graph_lookup, **kwargs)
    return executor.execute(args, graph.parameters or [], function_scope=graph.is_callable)
