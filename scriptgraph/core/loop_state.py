"""Loop state frames and the loop stack.

Each active loop has one frame on the stack. Frames carry what the loop's
terminator needs to resume: the numeric cursor for numeric for, the
iterator (or array and index) for generic for. While loops carry only
their bounds since the header re-evaluates the condition on every pass.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from scriptgraph.core.models import LoopMismatchError


@dataclass
class WhileFrame:
    start: int
    end: int

    kind = "while"


@dataclass
class NumericForFrame:
    start: int
    end: int
    control_var: str
    current: int | float
    limit: int | float
    step: int | float

    kind = "forNumeric"

    def advance(self) -> bool:
        """Step the cursor; True if the body should run again."""
        self.current += self.step
        if self.step > 0:
            return self.current <= self.limit
        return self.current >= self.limit


@dataclass
class GenericForFrame:
    start: int
    end: int
    key_var: str
    value_var: str
    iter_type: Literal["pairs", "ipairs"] = "pairs"
    iterator: Iterator[tuple[Any, Any]] | None = None
    target_array: list[Any] | None = None
    current_index: int = 0
    exhausted: bool = False

    kind = "forGeneric"

    def advance(self) -> tuple[Any, Any] | None:
        """Next (key, value) pair, or None once the collection is exhausted."""
        if self.exhausted:
            return None

        if self.iter_type == "ipairs" and self.target_array is not None:
            self.current_index += 1
            if self.current_index < len(self.target_array):
                # Keys are 1-based in the target language
                return self.current_index + 1, self.target_array[self.current_index]
            self.exhausted = True
            return None

        if self.iterator is None:
            self.exhausted = True
            return None
        try:
            return next(self.iterator)
        except StopIteration:
            self.exhausted = True
            return None


LoopFrame = WhileFrame | NumericForFrame | GenericForFrame


@dataclass
class LoopStack:
    """LIFO stack of active loop frames."""

    frames: list[LoopFrame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def __bool__(self) -> bool:
        return bool(self.frames)

    def __iter__(self):
        return iter(self.frames)

    def top(self) -> LoopFrame | None:
        return self.frames[-1] if self.frames else None

    def pop(self) -> LoopFrame | None:
        return self.frames.pop() if self.frames else None

    def push_if_new(self, frame: LoopFrame) -> bool:
        """Push unless the top frame already belongs to this loop header.

        Loop headers are revisited on every iteration; only the first visit
        opens a frame.
        """
        top = self.top()
        if top is not None and top.start == frame.start:
            return False
        self.frames.append(frame)
        return True

    def pop_if_start(self, start: int) -> LoopFrame | None:
        """Pop the top frame if it was opened by the header at start."""
        top = self.top()
        if top is not None and top.start == start:
            return self.frames.pop()
        return None

    def expect(self, frame_type: type, index: int, terminator: str) -> Any:
        """Top frame, which must be a frame_type; raises LoopMismatchError otherwise."""
        top = self.top()
        if top is None:
            raise LoopMismatchError(
                f"'{terminator}' encountered at index {index} without an active loop."
            )
        if not isinstance(top, frame_type):
            raise LoopMismatchError(
                f"Mismatched '{terminator}' at index {index}. "
                f"Expected {frame_type.kind} state, found {top.kind}."
            )
        return top

    def describe(self) -> str:
        return ", ".join(f"{f.kind} started at index {f.start}" for f in self.frames)
