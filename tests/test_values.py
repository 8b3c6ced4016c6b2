"""Tests for dynamic value helpers."""

from __future__ import annotations

import pytest

from scriptgraph.core.values import (
    Vector3,
    compare,
    is_valid_identifier,
    lua_type,
    parse_literal,
    to_lua_string,
    to_number,
    truthy,
)


class TestParseLiteral:
    """Tests for parse_literal."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("true", True),
            ("FALSE", False),
            ("nil", None),
            ("42", 42),
            ("-1.5", -1.5),
            ("'hello'", "hello"),
            ('"quoted"', "quoted"),
            ("  padded ", "padded"),
            ("", ""),
        ],
    )
    def test_literals(self, text, expected):
        assert parse_literal(text) == expected

    def test_quoted_json_becomes_table(self):
        assert parse_literal("'[1, 2]'") == [1, 2]
        assert parse_literal("'{\"a\": 1}'") == {"a": 1}

    def test_bad_json_stays_text(self):
        assert parse_literal("'[not json]'") == "[not json]"

    def test_non_strings_pass_through(self):
        assert parse_literal(7) == 7
        assert parse_literal(None) is None
        assert parse_literal([1]) == [1]

    def test_number_must_be_decimal(self):
        """Only plain decimal literals become numbers."""
        assert parse_literal("1e3") == "1e3"


class TestConversions:
    """Tests for to_number, to_lua_string and lua_type."""

    def test_to_number(self):
        assert to_number("10") == 10
        assert to_number(" 2.5 ") == 2.5
        assert to_number("0x1F") == 31
        assert to_number("ff", 16) == 255
        assert to_number("abc") is None
        assert to_number(True) is None
        assert to_number(None) is None

    def test_to_lua_string(self):
        assert to_lua_string(None) == "nil"
        assert to_lua_string(True) == "true"
        assert to_lua_string(3) == "3"
        assert to_lua_string([1, "a"]) == '[1, "a"]'
        assert to_lua_string(Vector3(1, 2, 3)) == "vector3(1, 2, 3)"

    def test_lua_type(self):
        assert lua_type(None) == "nil"
        assert lua_type(False) == "boolean"
        assert lua_type(1.5) == "number"
        assert lua_type("s") == "string"
        assert lua_type({}) == "table"
        assert lua_type(Vector3()) == "vector3"
        assert lua_type(print) == "function"

    def test_identifiers(self):
        assert is_valid_identifier("_count1") is True
        assert is_valid_identifier("1abc") is False
        assert is_valid_identifier("") is False
        assert is_valid_identifier(None) is False


class TestCompare:
    """Tests for condition evaluation."""

    def test_only_nil_and_false_are_falsy(self):
        assert truthy(0) is True
        assert truthy("") is True
        assert truthy(None) is False
        assert truthy(False) is False

    def test_unary_operators(self):
        assert compare(0, "is true") is True
        assert compare(None, "is false") is True
        assert compare(None, "is nil") is True
        assert compare("x", "is not nil") is True

    def test_equality_without_bool_coercion(self):
        assert compare(1, "==", 1.0) is True
        assert compare(True, "==", 1) is False
        assert compare("1", "==", 1) is False
        assert compare("a", "~=", "b") is True

    def test_ordering_converts_numbers(self):
        assert compare("10", ">", 9) is True
        assert compare(2, "<=", "2") is True
        assert compare("abc", "<", 1) is False

    def test_unknown_operator_is_false(self):
        assert compare(1, "===", 1) is False
