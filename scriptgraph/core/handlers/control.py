"""Handlers for control-flow instructions.

These evaluate the instruction (condition, loop parameters, call) and hand
the outcome back to the execution loop, which decides the next index.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field

from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.graph_schema import function_key
from scriptgraph.core.handlers.registry import (
    HandlerConfig,
    HandlerRegistry,
    LoopEntry,
    ValueSource,
)
from scriptgraph.core.models import ExecutionError
from scriptgraph.core.values import compare, is_valid_identifier, parse_literal, to_number

logger = logging.getLogger(__name__)

registry = HandlerRegistry()

SourceType = Literal["literal", "variable"]


class ConditionConfig(HandlerConfig):
    """Configuration for if/while headers"""

    condition_lhs_type: SourceType = "literal"
    condition_lhs_value: Any = ""
    condition_operator: str = "=="
    condition_rhs_type: SourceType = "literal"
    condition_rhs_value: Any = ""


class NumericForConfig(HandlerConfig):
    control_variable: str = "i"
    start_value: Any = "0"
    start_value_type: SourceType = "literal"
    end_value: Any = "0"
    end_value_type: SourceType = "literal"
    step_value: Any = "1"
    step_value_type: SourceType = "literal"


class GenericForConfig(HandlerConfig):
    table_variable: str | None = None
    iteration_type: Literal["pairs", "ipairs"] = "pairs"
    key_variable: str | None = None  # Defaults to 'index' for ipairs, 'key' for pairs
    value_variable: str = "value"


class ReturnConfig(HandlerConfig):
    use_variable_for_result: bool = False
    return_variable: str | None = None
    return_value: Any = None


class CallConfig(HandlerConfig):
    function_name: str | None = None
    argument_sources: list[ValueSource] = Field(default_factory=list)
    result_variable: str = "functionResult"


def _operand(kind: str, value: Any, context: ExecutionContext, default: Any = None) -> Any:
    if kind == "variable":
        return context.get_variable(value if isinstance(value, str) else "", default)
    return parse_literal(value)


@registry.register("if", ConditionConfig)
@registry.register("while", ConditionConfig)
def evaluate_condition(config: ConditionConfig, context: ExecutionContext) -> bool:
    lhs = _operand(config.condition_lhs_type, config.condition_lhs_value, context)
    rhs = _operand(config.condition_rhs_type, config.condition_rhs_value, context)
    result = compare(lhs, config.condition_operator, rhs)
    logger.debug(f"Condition {lhs!r} {config.condition_operator} {rhs!r} -> {result}")
    return result


def _loop_error(context: ExecutionContext, message: str) -> LoopEntry:
    logger.error(f"{context.current_label}: {message}")
    context.add_result({"node": context.current_label, "status": "error", "message": message})
    return LoopEntry(should_enter=False)


@registry.register("forNumeric", NumericForConfig)
def enter_numeric_for(config: NumericForConfig, context: ExecutionContext) -> LoopEntry:
    control_var = config.control_variable or "i"
    start = to_number(_operand(config.start_value_type, config.start_value, context, 0))
    end = to_number(_operand(config.end_value_type, config.end_value, context, 0))
    step = to_number(_operand(config.step_value_type, config.step_value, context, 1))

    for name, value in (("start", start), ("end", end), ("step", step)):
        if value is None:
            return _loop_error(context, f"Failed to evaluate loop parameters: Invalid {name} value")
    if step == 0:
        return _loop_error(context, "Failed to evaluate loop parameters: Step value cannot be zero")

    should_enter = start <= end if step > 0 else start >= end
    if not should_enter:
        return LoopEntry(should_enter=False)

    context.set_variable(control_var, start)
    return LoopEntry(
        should_enter=True,
        params={"control_var": control_var, "current": start, "limit": end, "step": step},
    )


def _consecutive_values(table: dict) -> list[Any]:
    """Values at keys 1, 2, 3... until the first gap (ipairs over a map)."""
    values = []
    index = 1
    while True:
        if index in table:
            values.append(table[index])
        elif str(index) in table:
            values.append(table[str(index)])
        else:
            return values
        index += 1


@registry.register("forGeneric", GenericForConfig)
def enter_generic_for(config: GenericForConfig, context: ExecutionContext) -> LoopEntry:
    iter_type = config.iteration_type
    key_var = config.key_variable or ("index" if iter_type == "ipairs" else "key")
    value_var = config.value_variable or "value"

    if not config.table_variable:
        return _loop_error(context, "Table variable name is missing.")

    table = context.get_variable(config.table_variable)
    if not isinstance(table, (dict, list)):
        return _loop_error(
            context,
            f'Variable "{config.table_variable}" does not contain a valid table. '
            f"Found: {type(table).__name__}",
        )

    params: dict[str, Any] = {"iter_type": iter_type, "key_var": key_var, "value_var": value_var}
    if iter_type == "ipairs":
        array = table if isinstance(table, list) else _consecutive_values(table)
        if not array:
            return LoopEntry(should_enter=False)
        first = (1, array[0])
        params.update(target_array=array, current_index=0)
    else:
        if isinstance(table, list):
            iterator = iter(list(enumerate(table, start=1)))
        else:
            iterator = iter(list(table.items()))
        first = next(iterator, None)
        if first is None:
            return LoopEntry(should_enter=False)
        params["iterator"] = iterator

    context.set_variable(key_var, first[0])
    context.set_variable(value_var, first[1])
    return LoopEntry(should_enter=True, params=params)


@registry.register("break")
def signal_break(config: Any, context: ExecutionContext) -> dict:
    logger.debug("Signaling break")
    context.request_break()
    return {"action": "break"}


@registry.register("return", ReturnConfig)
def set_return(config: ReturnConfig, context: ExecutionContext) -> dict:
    if config.use_variable_for_result and config.return_variable:
        value = context.get_variable(config.return_variable)
        source = f"variable({config.return_variable})"
        if not context.has_variable(config.return_variable):
            context.warn(f'Return variable "{config.return_variable}" not found. Returning nil.')
    else:
        value = parse_literal(config.return_value)
        source = "literal"

    accepted = context.set_return_value(value)
    record = {"action": "return", "source": source, "value_returned": value}
    if not accepted:
        record["ignored"] = True
    return record


@registry.register("call", CallConfig)
def call_function(config: CallConfig, context: ExecutionContext) -> dict:
    result_var = config.result_variable or "functionResult"
    name = config.function_name

    if not name or not isinstance(name, str):
        context.set_variable(result_var, None)
        context.warn("Call Function: no valid function name selected.")
        return {"action": "callFunction", "status": "error", "message": "No valid function name specified"}

    graph_key = function_key(name, context.function_prefix)
    args = [source.resolve(context) for source in config.argument_sources]

    status = "success"
    try:
        result = context.execute_subgraph(graph_key, args)
    except ExecutionError as e:
        # Callee problems never abort the caller: record and continue with nil
        logger.error(f"Error in called function '{name}' (key: {graph_key}): {e}")
        result = None
        status = "error"
        context.add_result(
            {
                "node": context.current_label,
                "status": "error",
                "message": f"Error in called function '{name}': {e}",
            }
        )

    if is_valid_identifier(result_var):
        context.set_variable(result_var, result)
    else:
        context.warn(f"Invalid result variable name: {result_var!r}")

    return {
        "action": "callFunction",
        "status": status,
        "function_called": name,
        "graph_key": graph_key,
        "arguments_sent": args,
        "result_variable": result_var,
        "result": result,
    }
