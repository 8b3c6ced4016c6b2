"""Dynamic value helpers shared by instruction handlers.

Values in a running script are plain Python objects approximating the target
scripting language: None (nil), bool, int/float (number), str, dict/list
(table) and Vector3.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_NUMBER_LITERAL = re.compile(r"^-?\d+(\.\d+)?$")

UNARY_OPERATORS = frozenset({"is true", "is false", "is nil", "is not nil"})
BINARY_OPERATORS = frozenset({"==", "~=", ">", "<", ">=", "<="})


@dataclass(frozen=True)
class Vector3:
    """Three-component vector value."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    def __str__(self) -> str:
        return f"vector3({self.x}, {self.y}, {self.z})"


def is_valid_identifier(name: Any) -> bool:
    """Check that name is usable as a variable name in the target language."""
    if not name or not isinstance(name, str):
        return False
    return bool(_IDENTIFIER.match(name.strip()))


def parse_literal(value: Any) -> Any:
    """Interpret an editor literal.

    Valid: "true", "nil", "42", "-1.5", "'text'", "'[1, 2]'"
    Anything unrecognised is returned as the trimmed string.
    """
    if value is None:
        return None
    if isinstance(value, (bool, int, float)):
        return value
    if not isinstance(value, str):
        return value

    trimmed = value.strip()
    lowered = trimmed.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("nil", "null"):
        return None
    if trimmed == "":
        return ""

    if _NUMBER_LITERAL.match(trimmed):
        return float(trimmed) if "." in trimmed else int(trimmed)

    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in ("'", '"'):
        inner = trimmed[1:-1]
        if (inner.startswith("{") and inner.endswith("}")) or (
            inner.startswith("[") and inner.endswith("]")
        ):
            try:
                return json.loads(inner)
            except json.JSONDecodeError:
                pass  # Not JSON, keep the raw text
        return inner

    return trimmed


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any, base: int | None = None) -> int | float | None:
    """Convert like tonumber(): returns None when conversion is impossible."""
    if is_number(value) and base is None:
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        if base is not None:
            return int(text, base)
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        try:
            return int(text)
        except ValueError:
            return float(text)
    except ValueError:
        return None


def to_lua_string(value: Any) -> str:
    """Render a value the way tostring() would (tables are shown as JSON)."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Vector3):
        return str(value)
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def lua_type(value: Any) -> str:
    """Name of the value's type in the target language."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Vector3):
        return "vector3"
    if isinstance(value, (dict, list, tuple)):
        return "table"
    if callable(value):
        return "function"
    return "userdata"


def truthy(value: Any) -> bool:
    """Only nil and false are falsy in the target language."""
    return value is not None and value is not False


def values_equal(lhs: Any, rhs: Any) -> bool:
    """Equality without Python's bool/int coercion (true ~= 1)."""
    if isinstance(lhs, bool) or isinstance(rhs, bool):
        return isinstance(lhs, bool) and isinstance(rhs, bool) and lhs is rhs
    if is_number(lhs) and is_number(rhs):
        return lhs == rhs
    if lua_type(lhs) != lua_type(rhs):
        return False
    return lhs == rhs


def compare(lhs: Any, operator: str, rhs: Any = None) -> bool:
    """Evaluate a condition. Unknown operators and bad operands yield False."""
    if operator == "is true":
        return truthy(lhs)
    if operator == "is false":
        return not truthy(lhs)
    if operator == "is nil":
        return lhs is None
    if operator == "is not nil":
        return lhs is not None

    if operator == "==":
        return values_equal(lhs, rhs)
    if operator == "~=":
        return not values_equal(lhs, rhs)

    if operator not in BINARY_OPERATORS:
        logger.warning(f"Unknown comparison operator '{operator}', evaluating to false")
        return False

    left = to_number(lhs)
    right = to_number(rhs)
    if left is None or right is None:
        return False
    if operator == ">":
        return left > right
    if operator == "<":
        return left < right
    if operator == ">=":
        return left >= right
    return left <= right
