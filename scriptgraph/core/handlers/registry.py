"""Instruction handler registry.

A handler is a plain function `(config, context) -> result | None`. Its
configuration is a Pydantic model parsed from the instruction's raw config,
so malformed editor data is rejected before the handler runs. The registry
only knows how to evaluate instructions; deciding where execution goes next
is the execution loop's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from scriptgraph.core.values import parse_literal

if TYPE_CHECKING:
    from scriptgraph.core.context import ExecutionContext
    from scriptgraph.core.graph_schema import Instruction

logger = logging.getLogger(__name__)


class HandlerConfig(BaseModel):
    """Base for handler configuration (camelCase keys as written by the editor)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class EmptyConfig(HandlerConfig):
    pass


class ValueSource(HandlerConfig):
    """A literal or a variable reference (editor argument source)."""

    type: Literal["literal", "variable"] = "literal"
    value: Any = None

    def resolve(self, context: ExecutionContext) -> Any:
        if self.type == "variable":
            if not isinstance(self.value, str):
                context.warn(
                    f"Expected a variable name for argument, got {type(self.value).__name__}"
                )
                return None
            return context.get_variable(self.value)
        return parse_literal(self.value)


@dataclass
class LoopEntry:
    """Result of a loop header: whether to enter, plus frame parameters."""

    should_enter: bool
    params: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Any, "ExecutionContext"], Any]


@dataclass
class HandlerSpec:
    type: str
    config_model: type[HandlerConfig]
    func: Handler


class HandlerRegistry:
    """Maps instruction type tags to handlers."""

    def __init__(self):
        self._handlers: dict[str, HandlerSpec] = {}

    def register(
        self, type_name: str, config_model: type[HandlerConfig] = EmptyConfig
    ) -> Callable[[Handler], Handler]:
        """Decorator registering func as the handler for type_name."""

        def decorator(func: Handler) -> Handler:
            self.add(HandlerSpec(type=type_name, config_model=config_model, func=func))
            return func

        return decorator

    def add(self, spec: HandlerSpec) -> None:
        if spec.type in self._handlers:
            logger.debug(f"Replacing handler for '{spec.type}'")
        self._handlers[spec.type] = spec

    def get(self, type_name: str) -> HandlerSpec | None:
        return self._handlers.get(type_name)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._handlers

    def types(self) -> list[str]:
        return sorted(self._handlers)

    def merge(self, other: HandlerRegistry) -> None:
        for spec in other._handlers.values():
            self.add(spec)

    def evaluate(self, instruction: Instruction, context: ExecutionContext) -> Any:
        """Run the handler for instruction.

        Invalid configuration is reported as an error record and yields None.
        Exceptions raised by the handler itself propagate to the caller.
        """
        spec = self._handlers.get(instruction.type)
        if spec is None:
            return None

        try:
            config = spec.config_model.model_validate(instruction.config)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            message = f"Invalid configuration for '{instruction.type}': {problems}"
            context.warn(message)
            context.add_result(
                {"node": instruction.display_name, "status": "error", "message": message}
            )
            return None

        return spec.func(config, context)


def error_record(context: ExecutionContext, action: str, message: str, **extra: Any) -> dict:
    """Standard error result returned by leaf handlers for bad input."""
    logger.warning(f"{action}: {message}")
    return {
        "action": action,
        "node": context.current_label,
        "status": "error",
        "message": message,
        **extra,
    }
