"""Tests for loop frames and the loop stack."""

from __future__ import annotations

import pytest

from scriptgraph.core.loop_state import GenericForFrame, LoopStack, NumericForFrame, WhileFrame
from scriptgraph.core.models import LoopMismatchError


class TestNumericForFrame:
    """Tests for NumericForFrame.advance."""

    def test_positive_step(self):
        frame = NumericForFrame(start=0, end=2, control_var="i", current=1, limit=3, step=1)

        assert frame.advance() is True
        assert frame.current == 2
        assert frame.advance() is True
        assert frame.advance() is False
        assert frame.current == 4

    def test_negative_step(self):
        frame = NumericForFrame(start=0, end=2, control_var="i", current=3, limit=2, step=-1)

        assert frame.advance() is True
        assert frame.current == 2
        assert frame.advance() is False


class TestGenericForFrame:
    """Tests for GenericForFrame.advance."""

    def test_ipairs_continues_from_second_element(self):
        """The header binds the first element; advance yields the rest."""
        frame = GenericForFrame(
            start=0, end=2, key_var="i", value_var="v", iter_type="ipairs", target_array=["a", "b", "c"]
        )

        assert frame.advance() == (2, "b")
        assert frame.advance() == (3, "c")
        assert frame.advance() is None
        assert frame.exhausted is True
        assert frame.advance() is None

    def test_pairs_drains_iterator(self):
        iterator = iter([("x", 1), ("y", 2)])
        frame = GenericForFrame(start=0, end=2, key_var="k", value_var="v", iterator=iterator)

        assert frame.advance() == ("x", 1)
        assert frame.advance() == ("y", 2)
        assert frame.advance() is None

    def test_missing_iterator_is_exhausted(self):
        frame = GenericForFrame(start=0, end=1, key_var="k", value_var="v")
        assert frame.advance() is None


class TestLoopStack:
    """Tests for LoopStack."""

    def test_push_if_new_is_idempotent_per_header(self):
        """Revisiting the same header does not push a second frame."""
        stack = LoopStack()

        assert stack.push_if_new(WhileFrame(start=1, end=4)) is True
        assert stack.push_if_new(WhileFrame(start=1, end=4)) is False
        assert len(stack) == 1
        assert stack.push_if_new(WhileFrame(start=2, end=3)) is True
        assert len(stack) == 2

    def test_pop_if_start(self):
        stack = LoopStack()
        stack.push_if_new(WhileFrame(start=1, end=4))

        assert stack.pop_if_start(7) is None
        assert len(stack) == 1
        assert stack.pop_if_start(1) == WhileFrame(start=1, end=4)
        assert not stack

    def test_pop_empty(self):
        assert LoopStack().pop() is None
        assert LoopStack().top() is None

    def test_expect_returns_matching_frame(self):
        stack = LoopStack()
        frame = WhileFrame(start=0, end=3)
        stack.push_if_new(frame)

        assert stack.expect(WhileFrame, 3, "endWhile") is frame

    def test_expect_empty_stack(self):
        with pytest.raises(LoopMismatchError, match="without an active loop"):
            LoopStack().expect(WhileFrame, 3, "endWhile")

    def test_expect_wrong_variant(self):
        stack = LoopStack()
        stack.push_if_new(WhileFrame(start=0, end=3))

        with pytest.raises(LoopMismatchError, match="Expected forNumeric state, found while"):
            stack.expect(NumericForFrame, 3, "endFor")

    def test_describe(self):
        stack = LoopStack()
        stack.push_if_new(WhileFrame(start=0, end=9))
        stack.push_if_new(NumericForFrame(start=2, end=5, control_var="i", current=1, limit=2, step=1))

        assert stack.describe() == "while started at index 0, forNumeric started at index 2"
