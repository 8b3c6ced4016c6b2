"""Handlers for variables, output, arithmetic and type conversion."""

from __future__ import annotations

import logging
import math
from typing import Any, Literal

from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.handlers.registry import HandlerConfig, HandlerRegistry, error_record
from scriptgraph.core.values import (
    Vector3,
    is_valid_identifier,
    lua_type,
    parse_literal,
    to_lua_string,
    to_number,
)

logger = logging.getLogger(__name__)

registry = HandlerRegistry()


class SetVariableConfig(HandlerConfig):
    name: str | None = None
    value: Any = None
    data_type: Literal["string", "number", "boolean", "nil", "variable", "literal"] = "string"


class ReadVariableConfig(HandlerConfig):
    variable_name: str = ""
    default_value: Any = None
    result_variable: str | None = None


class PrintConfig(HandlerConfig):
    message: Any = ""
    use_variable_for_message: bool = False
    message_variable: str | None = None
    print_to_console: bool = True
    color: str = "#ffffff"


class MathConfig(HandlerConfig):
    operation: str = "add"
    value1: Any = 0
    value2: Any = 0
    use_variable_for_value1: bool = False
    value1_variable: str | None = None
    use_variable_for_value2: bool = False
    value2_variable: str | None = None
    result_variable: str = "mathResult"


class WaitConfig(HandlerConfig):
    duration: Any = 0
    use_variable_for_duration: bool = False
    duration_variable: str | None = None


class ConversionConfig(HandlerConfig):
    """Shared by typeCheck/toString/toNumber."""

    use_variable_for_input: bool = False
    input_variable: str | None = None
    input_value: Any = None
    result_variable: str | None = None
    base: str | int | None = None  # toNumber only


class Vector3Config(HandlerConfig):
    result_variable: str | None = None
    x_source: Any = 0
    y_source: Any = 0
    z_source: Any = 0
    use_variable_for_x: bool = False
    use_variable_for_y: bool = False
    use_variable_for_z: bool = False


def _read(use_variable: bool, variable: str | None, literal: Any, context: ExecutionContext,
          default: Any = None) -> Any:
    if use_variable and variable:
        return context.get_variable(variable, default)
    return parse_literal(literal)


@registry.register("setVariable", SetVariableConfig)
def set_variable(config: SetVariableConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.name):
        return error_record(context, "setVariable", f"Invalid variable name: {config.name}")

    if config.data_type == "number":
        value = to_number(config.value) if not isinstance(config.value, bool) else None
        if value is None:
            context.warn(f'Invalid number value "{config.value}" for "{config.name}". Setting to 0.')
            value = 0
    elif config.data_type == "boolean":
        if isinstance(config.value, bool):
            value = config.value
        else:
            value = str(config.value).strip().lower() == "true"
    elif config.data_type == "nil":
        value = None
    elif config.data_type == "variable":
        value = context.get_variable(str(config.value))
    elif config.data_type == "literal":
        value = parse_literal(config.value)
    else:
        value = "" if config.value is None else str(config.value)

    context.set_variable(config.name, value)
    return {
        "action": "setVariable",
        "variable_name": config.name,
        "value": value,
        "data_type": config.data_type,
    }


@registry.register("readVariable", ReadVariableConfig)
def read_variable(config: ReadVariableConfig, context: ExecutionContext) -> dict:
    default = parse_literal(config.default_value)
    found = context.has_variable(config.variable_name)
    value = context.get_variable(config.variable_name, default)
    if config.result_variable:
        context.set_variable(config.result_variable, value)
    return {
        "action": "readVariable",
        "variable_name": config.variable_name,
        "value_read": value,
        "was_found": found,
    }


@registry.register("print", PrintConfig)
def print_message(config: PrintConfig, context: ExecutionContext) -> dict:
    if config.use_variable_for_message and config.message_variable:
        if context.has_variable(config.message_variable):
            message = to_lua_string(context.get_variable(config.message_variable))
        else:
            message = f"[Variable '{config.message_variable}' not found]"
        source = f"variable({config.message_variable})"
    else:
        message = "" if config.message is None else to_lua_string(config.message)
        source = "literal"

    if config.print_to_console:
        logger.info(message)
    else:
        logger.info(f"[Simulate Chat] Color({config.color}): {message}")

    return {"action": "print", "message_printed": message, "source": source}


def _power(a: int | float, b: int | float) -> tuple[int | float, str | None]:
    """Exponentiation with real-number results only; returns (result, warning)."""
    if a == 0 and b < 0:
        return 0, "Zero raised to a negative power. Result set to 0."
    try:
        result = math.pow(a, b)
    except OverflowError:
        return 0, "Power result is too large. Result set to 0."
    except ValueError:
        return 0, "Negative base with a fractional exponent. Result set to 0."
    if isinstance(a, int) and isinstance(b, int) and result.is_integer() and abs(result) < 2**53:
        return int(result), None
    return result, None


@registry.register("math", MathConfig)
def math_operation(config: MathConfig, context: ExecutionContext) -> dict:
    operands = []
    for use_var, variable, literal in (
        (config.use_variable_for_value1, config.value1_variable, config.value1),
        (config.use_variable_for_value2, config.value2_variable, config.value2),
    ):
        number = to_number(_read(use_var, variable, literal, context, 0))
        if number is None:
            context.warn(f"Math operand {literal!r} is not a number. Using 0.")
            number = 0
        operands.append(number)
    a, b = operands

    status = "success"
    if config.operation == "add":
        result = a + b
    elif config.operation == "subtract":
        result = a - b
    elif config.operation == "multiply":
        result = a * b
    elif config.operation == "divide":
        if b == 0:
            context.warn("Division by zero detected. Result set to 0.")
            result = 0
            status = "warning"
        else:
            result = a / b
    elif config.operation == "modulo":
        if b == 0:
            context.warn("Modulo by zero detected. Result set to 0.")
            result = 0
            status = "warning"
        else:
            result = a % b
    elif config.operation == "power":
        result, problem = _power(a, b)
        if problem:
            context.warn(problem)
            status = "warning"
    else:
        context.warn(f'Unknown math operation "{config.operation}". Defaulting to 0.')
        result = 0
        status = "warning"

    context.set_variable(config.result_variable or "mathResult", result)
    return {
        "action": "math",
        "status": status,
        "operation": config.operation,
        "operands": [a, b],
        "result": result,
        "result_variable": config.result_variable,
    }


@registry.register("wait", WaitConfig)
def wait(config: WaitConfig, context: ExecutionContext) -> dict:
    """Record the intended delay. Execution never blocks."""
    duration = to_number(
        _read(config.use_variable_for_duration, config.duration_variable, config.duration, context, 0)
    )
    if duration is None or duration < 0:
        context.warn(f"Invalid wait duration {config.duration!r}. Using 0ms.")
        duration = 0
    return {
        "action": "wait",
        "duration": duration,
        "source": (
            f"variable({config.duration_variable})" if config.use_variable_for_duration else "literal"
        ),
    }


def _conversion_input(
    config: ConversionConfig, context: ExecutionContext, action: str
) -> tuple[Any, dict | None]:
    if not is_valid_identifier(config.result_variable):
        return None, error_record(
            context, action, f"Invalid result variable name: {config.result_variable}"
        )
    if config.use_variable_for_input:
        if not is_valid_identifier(config.input_variable):
            return None, error_record(
                context, action, f"Invalid input variable name: {config.input_variable}"
            )
        return context.get_variable(config.input_variable), None
    return parse_literal(config.input_value), None


@registry.register("typeCheck", ConversionConfig)
def type_check(config: ConversionConfig, context: ExecutionContext) -> dict:
    value, error = _conversion_input(config, context, "typeCheck")
    if error:
        return error
    type_name = lua_type(value)
    context.set_variable(config.result_variable, type_name)
    return {
        "action": "typeCheck",
        "status": "simulated",
        "value_checked": value,
        "simulated_type": type_name,
        "result_variable": config.result_variable,
    }


@registry.register("toString", ConversionConfig)
def to_string(config: ConversionConfig, context: ExecutionContext) -> dict:
    value, error = _conversion_input(config, context, "toString")
    if error:
        return error
    text = to_lua_string(value)
    context.set_variable(config.result_variable, text)
    return {
        "action": "toString",
        "status": "simulated",
        "original_value": value,
        "string_value": text,
        "result_variable": config.result_variable,
    }


@registry.register("toNumber", ConversionConfig)
def to_number_handler(config: ConversionConfig, context: ExecutionContext) -> dict:
    value, error = _conversion_input(config, context, "toNumber")
    if error:
        return error

    base = None
    if config.base not in (None, ""):
        parsed = to_number(str(config.base))
        if isinstance(parsed, int) and 2 <= parsed <= 36:
            base = parsed
        else:
            context.warn(f"Invalid base {config.base!r}. Ignoring.")

    if base is not None and not isinstance(value, str):
        value = to_lua_string(value)
    number = to_number(value, base)
    context.set_variable(config.result_variable, number)
    return {
        "action": "toNumber",
        "status": "simulated",
        "original_value": value,
        "number_value": number,
        "base": base,
        "result_variable": config.result_variable,
    }


@registry.register("vector3", Vector3Config)
def make_vector3(config: Vector3Config, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.result_variable):
        return error_record(
            context, "vector3", f"Invalid result variable name: {config.result_variable}"
        )

    coords = []
    for axis, use_var, source in (
        ("X", config.use_variable_for_x, config.x_source),
        ("Y", config.use_variable_for_y, config.y_source),
        ("Z", config.use_variable_for_z, config.z_source),
    ):
        if use_var and not is_valid_identifier(source):
            return error_record(context, "vector3", f"Invalid variable name for {axis}: {source}")
        number = to_number(_read(use_var, source, source, context))
        if number is None:
            context.warn(f"Vector3 {axis} coordinate {source!r} is not a number. Using 0.")
            number = 0
        coords.append(number)

    vector = Vector3(*coords)
    context.set_variable(config.result_variable, vector)
    return {
        "action": "vector3",
        "status": "success",
        "vector": vector.to_dict(),
        "result_variable": config.result_variable,
    }
