"""Instruction handlers.

Control handlers evaluate conditions, loop headers, returns and calls; leaf
handlers only read and write the execution context. default_registry()
combines all of them.
"""

from scriptgraph.core.handlers import control, events, strings, tables, variables
from scriptgraph.core.handlers.registry import (
    EmptyConfig,
    HandlerConfig,
    HandlerRegistry,
    HandlerSpec,
    LoopEntry,
    ValueSource,
)


def default_registry() -> HandlerRegistry:
    """Registry with every built-in handler."""
    registry = HandlerRegistry()
    for module in (control, variables, strings, tables, events):
        registry.merge(module.registry)
    return registry


__all__ = [
    "EmptyConfig",
    "HandlerConfig",
    "HandlerRegistry",
    "HandlerSpec",
    "LoopEntry",
    "ValueSource",
    "default_registry",
]
