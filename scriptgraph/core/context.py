"""Per-run execution state.

An ExecutionContext is created fresh for every execute() call, including
each nested subgraph call, and is owned by exactly one run. Handlers read
and write it; only the execution loop touches the loop stack and break flag
semantics.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from scriptgraph.core.graph_schema import FUNC_PREFIX
from scriptgraph.core.loop_state import LoopStack
from scriptgraph.core.models import Diagnostic, DiagnosticKind, Severity, SubgraphError

logger = logging.getLogger(__name__)

SubgraphRunner = Callable[[str, list[Any]], Any]
Notifier = Callable[[Diagnostic], None]


class ExecutionContext:
    """Variables, result log, return slot, loop stack and break flag for one run."""

    def __init__(
        self,
        subgraph_runner: SubgraphRunner | None = None,
        notifier: Notifier | None = None,
        call_depth: int = 0,
        function_prefix: str = FUNC_PREFIX,
    ):
        self.variables: dict[str, Any] = {}
        self.results: list[Any] = []
        self.diagnostics: list[Diagnostic] = []

        self.return_value: Any = None
        self.has_returned = False
        self.break_requested = False
        self.loop_stack = LoopStack()

        self.call_depth = call_depth
        self.function_prefix = function_prefix
        # Instruction being dispatched, for diagnostics raised from handlers
        self.current_index: int | None = None
        self.current_label: str | None = None

        self._subgraph_runner = subgraph_runner
        self._notifier = notifier

    # ========== Result Log ==========

    def add_result(self, result: Any) -> None:
        if result is not None:
            self.results.append(result)

    # ========== Variables ==========

    def set_variable(self, name: str, value: Any) -> bool:
        if not name or not isinstance(name, str):
            self.warn(f"Attempted to set variable with invalid name: {name!r}")
            return False
        self.variables[name] = value
        return True

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def has_variable(self, name: str) -> bool:
        return name in self.variables

    # ========== Control Signals ==========

    def set_return_value(self, value: Any) -> bool:
        """Write the return slot. The first write wins."""
        if self.has_returned:
            self.warn("Return value already set. Ignoring subsequent return.")
            return False
        self.return_value = value
        self.has_returned = True
        return True

    def request_break(self) -> None:
        self.break_requested = True

    # ========== Effects ==========

    def execute_subgraph(self, graph_key: str, args: list[Any]) -> Any:
        """Run a function graph synchronously and return its return value."""
        if self._subgraph_runner is None:
            raise SubgraphError("Subgraph calls are not available in this context")
        logger.debug(f"Executing subgraph {graph_key} with {len(args)} argument(s)")
        return self._subgraph_runner(graph_key, list(args))

    def simulate_trigger_server_event(self, event_name: str, args: list[Any]) -> dict[str, Any]:
        log = f"[SIMULATE] TriggerServerEvent: '{event_name}' Args: {_dump(args)}"
        logger.info(log)
        record = {
            "action": "simulateTriggerServerEvent",
            "event_name": event_name,
            "args": args,
            "log": log,
        }
        self.add_result(record)
        return record

    def simulate_trigger_client_event(
        self, event_name: str, target: Any, args: list[Any]
    ) -> dict[str, Any]:
        log = (
            f"[SIMULATE] TriggerClientEvent: '{event_name}' Target: {_dump(target)} "
            f"Args: {_dump(args)}"
        )
        logger.info(log)
        record = {
            "action": "simulateTriggerClientEvent",
            "event_name": event_name,
            "target": target,
            "args": args,
            "log": log,
        }
        self.add_result(record)
        return record

    # ========== Diagnostics ==========

    def report(self, diagnostic: Diagnostic) -> None:
        """Record a diagnostic, log it and forward it to the host notifier."""
        self.diagnostics.append(diagnostic)
        if diagnostic.is_error:
            logger.error(str(diagnostic))
        else:
            logger.warning(str(diagnostic))
        if self._notifier is not None:
            self._notifier(diagnostic)

    def warn(self, message: str) -> None:
        self.report(
            Diagnostic(
                kind=DiagnosticKind.WARNING,
                severity=Severity.WARNING,
                message=message,
                index=self.current_index,
                label=self.current_label,
            )
        )


def _dump(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)
