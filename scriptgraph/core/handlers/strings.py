"""String handlers (simulated string library)."""

from __future__ import annotations

import re

from pydantic import Field

from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.handlers.registry import (
    HandlerConfig,
    HandlerRegistry,
    ValueSource,
    error_record,
)
from scriptgraph.core.values import is_valid_identifier, to_lua_string

registry = HandlerRegistry()

_FORMAT_SPEC = re.compile(r"%[sdif]")


class ConcatenateConfig(HandlerConfig):
    string1: str | int | float | bool | None = ""
    string2: str | int | float | bool | None = ""
    use_variable_for_string1: bool = False
    string1_variable: str | None = None
    use_variable_for_string2: bool = False
    string2_variable: str | None = None
    result_variable: str = "concatResult"


class StringFormatConfig(HandlerConfig):
    format_string: str = ""
    argument_sources: list[ValueSource] = Field(default_factory=list)
    result_variable: str | None = None


class StringLengthConfig(HandlerConfig):
    input_variable: str | None = None
    input_value: str | None = None
    use_variable_for_input: bool = False
    result_variable: str | None = None


@registry.register("concatenate", ConcatenateConfig)
def concatenate(config: ConcatenateConfig, context: ExecutionContext) -> dict:
    parts = []
    for use_var, variable, literal in (
        (config.use_variable_for_string1, config.string1_variable, config.string1),
        (config.use_variable_for_string2, config.string2_variable, config.string2),
    ):
        if use_var and variable:
            value = context.get_variable(variable, "")
        else:
            value = "" if literal is None else literal
        parts.append(to_lua_string(value))

    result = parts[0] + parts[1]
    result_var = config.result_variable or "concatResult"
    context.set_variable(result_var, result)
    return {
        "action": "concatenate",
        "string1": parts[0],
        "string2": parts[1],
        "result": result,
        "result_variable": result_var,
    }


@registry.register("stringFormat", StringFormatConfig)
def string_format(config: StringFormatConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.result_variable):
        return error_record(
            context, "stringFormat", f"Invalid result variable name: {config.result_variable}"
        )

    args = [source.resolve(context) for source in config.argument_sources]
    remaining = iter(args)

    def substitute(match: re.Match) -> str:
        return to_lua_string(next(remaining, None))

    result = _FORMAT_SPEC.sub(substitute, config.format_string)
    placeholders = len(_FORMAT_SPEC.findall(config.format_string))
    if placeholders < len(args):
        context.warn(
            f"stringFormat received {len(args)} argument(s) for {placeholders} placeholder(s)"
        )

    context.set_variable(config.result_variable, result)
    return {
        "action": "stringFormat",
        "status": "simulated",
        "format_string": config.format_string,
        "arguments": args,
        "simulated_result": result,
        "result_variable": config.result_variable,
    }


@registry.register("stringLength", StringLengthConfig)
def string_length(config: StringLengthConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.result_variable):
        return error_record(
            context, "stringLength", f"Invalid result variable name: {config.result_variable}"
        )

    if config.use_variable_for_input:
        value = context.get_variable(config.input_variable or "")
        if not isinstance(value, str):
            return error_record(
                context,
                "stringLength",
                f'Variable "{config.input_variable}" is not a string.',
            )
    else:
        value = config.input_value or ""

    # Length in bytes, as the # operator reports it
    length = len(value.encode("utf-8"))
    context.set_variable(config.result_variable, length)
    return {
        "action": "stringLength",
        "input": value,
        "length": length,
        "result_variable": config.result_variable,
    }
