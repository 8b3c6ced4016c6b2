"""Simulated network event handlers.

Events are never sent anywhere; the context records what would have been
emitted so a run can be inspected or replayed.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import Field

from scriptgraph.core.context import ExecutionContext
from scriptgraph.core.handlers.registry import (
    HandlerConfig,
    HandlerRegistry,
    ValueSource,
    error_record,
)
from scriptgraph.core.values import to_number

registry = HandlerRegistry()

BROADCAST_TARGET = -1


class ServerEventConfig(HandlerConfig):
    event_name: str | None = None
    argument_sources: list[ValueSource] = Field(default_factory=list)


class ClientEventConfig(ServerEventConfig):
    target_player: Any = BROADCAST_TARGET
    use_variable_for_target: bool = False


@registry.register("triggerServerEvent", ServerEventConfig)
def trigger_server_event(config: ServerEventConfig, context: ExecutionContext) -> dict | None:
    if not config.event_name:
        return error_record(context, "triggerServerEvent", "Event name is missing")

    args = [source.resolve(context) for source in config.argument_sources]
    context.simulate_trigger_server_event(config.event_name, args)
    return None


def _target(config: ClientEventConfig, context: ExecutionContext) -> Any:
    if config.use_variable_for_target and isinstance(config.target_player, str):
        raw = context.get_variable(config.target_player, BROADCAST_TARGET)
    else:
        raw = config.target_player
    if isinstance(raw, list):
        return raw
    number = to_number(raw) if not isinstance(raw, bool) else None
    if number is None or not math.isfinite(number):
        return BROADCAST_TARGET
    return int(number)


@registry.register("triggerClientEvent", ClientEventConfig)
def trigger_client_event(config: ClientEventConfig, context: ExecutionContext) -> dict | None:
    if not config.event_name:
        return error_record(context, "triggerClientEvent", "Event name is missing")

    args = [source.resolve(context) for source in config.argument_sources]
    context.simulate_trigger_client_event(config.event_name, _target(config, context), args)
    return None
