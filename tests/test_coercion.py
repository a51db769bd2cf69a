"""Tests for literal parsing, comparison and display formatting."""

import math

import pytest

from feedback_dsl.coercion import (
    MISSING,
    compare,
    format_display,
    format_number,
    is_missing,
    parse_literal,
    round_half_up,
    strict_equal,
    to_number,
    truncate,
)


# ============================================================
# NUMBERS
# ============================================================


class TestToNumber:
    @pytest.mark.parametrize("value, expected", [
        (5, 5),
        (2.5, 2.5),
        ("3.5", 3.5),
        (" 7 ", 7),
        ("-12", -12),
        ("1e3", 1000.0),
    ])
    def test_numeric_values(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [True, False, None, "", "   ", "abc", "nan", "1_000", [1], {"a": 1}])
    def test_non_numeric_values(self, value):
        assert to_number(value) is None

    def test_integer_strings_stay_integers(self):
        assert isinstance(to_number("42"), int)

    def test_infinity_is_a_number(self):
        assert math.isinf(to_number("inf"))


# ============================================================
# LITERALS
# ============================================================


class TestParseLiteral:
    def test_double_quoted(self):
        assert parse_literal('"blue"') == "blue"

    def test_single_quoted(self):
        assert parse_literal("'red'") == "red"

    def test_escaped_quote(self):
        assert parse_literal(r'"say \"hi\""') == 'say "hi"'

    def test_unterminated_quote_keeps_text(self):
        assert parse_literal('"open') == "open"

    def test_keywords(self):
        assert parse_literal("true") is True
        assert parse_literal("false") is False
        assert parse_literal("null") is None

    def test_numbers(self):
        assert parse_literal("42") == 42
        assert parse_literal("-1.5") == -1.5

    def test_bare_word_is_string(self):
        assert parse_literal("blue") == "blue"

    def test_quoted_number_stays_string(self):
        assert parse_literal('"5"') == "5"

    def test_surrounding_whitespace_ignored(self):
        assert parse_literal("  10  ") == 10


# ============================================================
# COMPARISON
# ============================================================


class TestStrictEqual:
    def test_booleans_never_equal_numbers(self):
        assert not strict_equal(True, 1)
        assert not strict_equal(0, False)

    def test_int_equals_float(self):
        assert strict_equal(1, 1.0)

    def test_string_never_equals_number(self):
        assert not strict_equal("5", 5)

    def test_none_equals_none(self):
        assert strict_equal(None, None)

    def test_lists_by_value(self):
        assert strict_equal([1, 2], [1, 2])


class TestCompare:
    def test_equality_operators(self):
        assert compare("red", "==", "red")
        assert compare("red", "!=", "blue")
        assert compare(1, "!=", True)

    def test_ordering_coerces_numeric_strings(self):
        assert compare("5", ">", 3)
        assert compare(2, "<=", "2")

    def test_ordering_with_non_numeric_side_is_false(self):
        assert not compare("abc", ">", 3)
        assert not compare("abc", "<", 3)
        assert not compare(True, ">", 0)

    def test_missing_never_matches(self):
        assert not compare(MISSING, "==", None)
        assert not compare(MISSING, "!=", 1)
        assert not compare(1, "==", MISSING)

    def test_unknown_operator_is_false(self):
        assert not compare(2, "~", 1)

    def test_missing_sentinel(self):
        assert is_missing(MISSING)
        assert not is_missing(None)
        assert not MISSING


# ============================================================
# DISPLAY
# ============================================================


class TestFormatNumber:
    def test_integral_float_drops_fraction(self):
        assert format_number(200.0) == "200"

    def test_two_decimals(self):
        assert format_number(81.64965809) == "81.65"

    def test_rounds_half_up(self):
        assert format_number(0.125) == "0.13"
        assert round_half_up(2.5, 0) == 3

    def test_ints_unchanged(self):
        assert format_number(3) == "3"

    def test_none_is_empty(self):
        assert format_number(None) == ""


class TestFormatDisplay:
    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (2.0, "2"),
        (1.5, "1.5"),
        (7, "7"),
        ("text", "text"),
        ([1, 2], "[1,2]"),
        ({"a": 1}, '{"a":1}'),
    ])
    def test_display(self, value, expected):
        assert format_display(value) == expected

    def test_display_does_not_round(self):
        assert format_display(0.123456) == "0.123456"


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("abc", 5) == "abc"

    def test_long_text_gets_ellipsis(self):
        assert truncate("abcdef", 3) == "abc..."
