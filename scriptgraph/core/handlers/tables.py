"""Table handlers.

Tables are dicts (maps) or lists (arrays). Numeric keys on arrays are
1-based, as in the target language.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.handlers.registry import HandlerConfig, HandlerRegistry, error_record
from scriptgraph.core.values import is_number, is_valid_identifier, parse_literal, to_number

logger = logging.getLogger(__name__)

registry = HandlerRegistry()

KeyType = Literal["literal", "number_literal", "variable"]


class CreateTableConfig(HandlerConfig):
    variable_name: str | None = None
    table_type: Literal["map", "array"] = "map"
    initial_value: Any = None  # Optional literal, e.g. "'[1, 2, 3]'"


class SetTableValueConfig(HandlerConfig):
    table_variable: str | None = None
    key_type: KeyType = "literal"
    key_value: Any = None
    value_type: Literal["literal", "variable"] = "literal"
    value_source: Any = None


class GetTableValueConfig(HandlerConfig):
    table_variable: str | None = None
    key_type: KeyType = "literal"
    key_value: Any = None
    result_variable: str | None = None
    default_value: Any = None


class InsertIntoTableConfig(HandlerConfig):
    table_variable: str | None = None
    value_type: Literal["literal", "variable"] = "literal"
    value_source: Any = None


class GetTableLengthConfig(HandlerConfig):
    table_variable: str | None = None
    result_variable: str | None = None


class TableKeyError(ValueError):
    """A table key could not be resolved."""

    pass


def _resolve_key(key_type: str, key_value: Any, context: ExecutionContext) -> Any:
    if key_type == "variable":
        if not is_valid_identifier(key_value):
            raise TableKeyError(f"Invalid key variable name: {key_value}")
        key = context.get_variable(key_value)
        if not isinstance(key, (str, int, float)) or isinstance(key, bool):
            key = str(key)
        return key
    if key_type == "number_literal":
        key = to_number(key_value) if not isinstance(key_value, bool) else None
        if key is None:
            raise TableKeyError(f'Invalid number literal key: "{key_value}"')
        return key
    return "" if key_value is None else str(key_value)


def _array_slot(key: Any) -> int | None:
    """0-based list index for a 1-based numeric key, or None."""
    if is_number(key) and float(key).is_integer():
        return int(key) - 1
    return None


def _resolve_value(value_type: str, source: Any, context: ExecutionContext) -> tuple[Any, str | None]:
    if value_type == "variable":
        if not is_valid_identifier(source):
            return None, f"Invalid value variable name: {source}"
        return context.get_variable(source), None
    return parse_literal(source), None


@registry.register("createTable", CreateTableConfig)
def create_table(config: CreateTableConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.variable_name):
        return error_record(
            context, "createTable", "Invalid variable name", variable_name=config.variable_name
        )

    initial = parse_literal(config.initial_value) if config.initial_value is not None else None
    if isinstance(initial, (dict, list)):
        table: dict | list = initial
    elif initial is not None:
        return error_record(
            context, "createTable", f"Initial value is not a table: {config.initial_value!r}"
        )
    else:
        table = [] if config.table_type == "array" else {}

    context.set_variable(config.variable_name, table)
    return {"action": "createTable", "status": "success", "variable_name": config.variable_name}


@registry.register("setTableValue", SetTableValueConfig)
def set_table_value(config: SetTableValueConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.table_variable):
        return error_record(
            context, "setTableValue", f"Invalid table variable name: {config.table_variable}"
        )

    table = context.get_variable(config.table_variable)
    if not isinstance(table, (dict, list)):
        return error_record(
            context, "setTableValue", f'Variable "{config.table_variable}" is not a table.'
        )

    try:
        key = _resolve_key(config.key_type, config.key_value, context)
    except TableKeyError as e:
        return error_record(context, "setTableValue", f"Error processing key: {e}")

    value, problem = _resolve_value(config.value_type, config.value_source, context)
    if problem:
        return error_record(context, "setTableValue", problem)

    if isinstance(table, list):
        slot = _array_slot(key)
        if slot is None or not 0 <= slot <= len(table):
            return error_record(
                context,
                "setTableValue",
                f"Key {key!r} is outside array bounds 1..{len(table) + 1}",
            )
        if slot == len(table):
            table.append(value)
        else:
            table[slot] = value
    else:
        table[key] = value

    return {
        "action": "setTableValue",
        "status": "success",
        "table": config.table_variable,
        "key_used": key,
        "value_set": value,
    }


@registry.register("getTableValue", GetTableValueConfig)
def get_table_value(config: GetTableValueConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.table_variable):
        return error_record(
            context, "getTableValue", f"Invalid table variable name: {config.table_variable}"
        )
    if not is_valid_identifier(config.result_variable):
        return error_record(
            context, "getTableValue", f"Invalid result variable name: {config.result_variable}"
        )

    table = context.get_variable(config.table_variable)
    default = parse_literal(config.default_value)
    value = default
    key = None
    status = "success"
    message = ""

    if not isinstance(table, (dict, list)):
        status = "warning"
        message = f'Variable "{config.table_variable}" is not a table. Used default value.'
    else:
        try:
            key = _resolve_key(config.key_type, config.key_value, context)
        except TableKeyError as e:
            status = "error"
            message = f"Error getting value: {e}"
        else:
            if isinstance(table, list):
                slot = _array_slot(key)
                found = slot is not None and 0 <= slot < len(table)
                if found:
                    value = table[slot]
            else:
                found = key in table
                if found:
                    value = table[key]
            if not found:
                status = "warning_not_found"
                message = f'Key "{key}" not found. Used default value.'

    context.set_variable(config.result_variable, value)
    return {
        "action": "getTableValue",
        "status": status,
        "message": message,
        "table": config.table_variable,
        "key_used": key,
        "value_retrieved": value,
        "result_variable": config.result_variable,
    }


@registry.register("insertIntoTable", InsertIntoTableConfig)
def insert_into_table(config: InsertIntoTableConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.table_variable):
        return error_record(
            context, "insertIntoTable", f"Invalid table variable name: {config.table_variable}"
        )

    table = context.get_variable(config.table_variable)
    if not isinstance(table, list):
        return error_record(
            context,
            "insertIntoTable",
            f'Variable "{config.table_variable}" is not an array (required for simulation).',
        )

    value, problem = _resolve_value(config.value_type, config.value_source, context)
    if problem:
        return error_record(context, "insertIntoTable", problem)

    table.append(value)
    return {
        "action": "insertIntoTable",
        "status": "success",
        "table": config.table_variable,
        "value_inserted": value,
        "new_length": len(table),
    }


@registry.register("getTableLength", GetTableLengthConfig)
def get_table_length(config: GetTableLengthConfig, context: ExecutionContext) -> dict:
    if not is_valid_identifier(config.table_variable):
        return error_record(
            context, "getTableLength", f"Invalid table variable name: {config.table_variable}"
        )
    if not is_valid_identifier(config.result_variable):
        return error_record(
            context, "getTableLength", f"Invalid result variable name: {config.result_variable}"
        )

    table = context.get_variable(config.table_variable)
    status = "success"
    message = ""
    if isinstance(table, list):
        length = len(table)
    elif isinstance(table, dict):
        length = len(table)
        status = "warning_simulation"
        message = (
            f'Variable "{config.table_variable}" is a map, not an array. Simulated length '
            f"({length}) by counting keys."
        )
        logger.warning(message)
    else:
        length = 0
        status = "warning_type"
        message = f'Variable "{config.table_variable}" is not a table. Length is 0.'
        logger.warning(message)

    context.set_variable(config.result_variable, length)
    return {
        "action": "getTableLength",
        "status": status,
        "message": message,
        "table": config.table_variable,
        "length": length,
        "result_variable": config.result_variable,
    }
