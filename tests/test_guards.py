"""
Tests for the guard parser (catalog text -> Expression AST).

We need to:
1. Parse comparisons, boolean operators and parentheses
2. Accept both symbolic (& | !) and word (and or not) operators
3. Parse has() / answered() calls
4. Reject malformed guards with GuardParseError
5. Render an AST back to text that parses to the same AST
"""

import pytest
from stackplan.guards import parse_guard, format_guard, GuardParseError
from stackplan.expressions import (
    BinaryExpression,
    BinaryOperator,
    SelectionReference,
    Literal,
    UnaryExpression,
    UnaryOperator,
    Function,
    FunctionCall,
)


class TestParseGuard:
    """Test guard syntax."""

    def test_empty_guard_is_none(self):
        assert parse_guard(None) is None
        assert parse_guard("") is None
        assert parse_guard("   ") is None

    def test_simple_equality(self):
        result = parse_guard("project_type == 'web'")
        assert result == BinaryExpression(
            BinaryOperator.EQUALS, SelectionReference("project_type"), Literal("web")
        )

    def test_single_equals_is_equality(self):
        assert parse_guard("language = 'python'") == parse_guard("language == 'python'")

    def test_double_quoted_string(self):
        assert parse_guard('language == "python"') == parse_guard("language == 'python'")

    def test_not_equals(self):
        result = parse_guard("language != 'python'")
        assert result.operator == BinaryOperator.NOT_EQUALS

    def test_and_binds_tighter_than_or(self):
        result = parse_guard("a == 'x' | b == 'y' & c == 'z'")
        assert result.operator == BinaryOperator.OR
        assert result.right.operator == BinaryOperator.AND

    def test_parentheses(self):
        result = parse_guard("(a == 'x' | b == 'y') & c == 'z'")
        assert result.operator == BinaryOperator.AND
        assert result.left.operator == BinaryOperator.OR

    def test_word_operators(self):
        assert parse_guard("a == 'x' and not b == 'y'") == parse_guard("a == 'x' & !b == 'y'")
        assert parse_guard("a == 'x' or b == 'y'") == parse_guard("a == 'x' | b == 'y'")

    def test_double_symbol_operators(self):
        assert parse_guard("a == 'x' && b == 'y'") == parse_guard("a == 'x' & b == 'y'")

    def test_not(self):
        result = parse_guard("!answered(framework)")
        assert isinstance(result, UnaryExpression)
        assert result.operator == UnaryOperator.NOT

    def test_not_applies_to_whole_comparison(self):
        result = parse_guard("!language == 'python'")
        assert result == UnaryExpression(
            UnaryOperator.NOT,
            BinaryExpression(BinaryOperator.EQUALS, SelectionReference("language"), Literal("python")),
        )

    def test_has_call(self):
        result = parse_guard("has(additions, 'biome')")
        assert result == FunctionCall(Function.HAS, (SelectionReference("additions"), Literal("biome")))

    def test_literals(self):
        assert parse_guard("flag == true").right == Literal(True)
        assert parse_guard("count == 3").right == Literal(3)
        assert parse_guard("count == -8").right == Literal(-8)

    def test_hyphenated_identifier(self):
        result = parse_guard("tool-choice == 'x'")
        assert result.left == SelectionReference("tool-choice")


class TestParseErrors:
    """Malformed guards are rejected."""

    @pytest.mark.parametrize("text", [
        "(a == 'x'",
        "a == ",
        "a == 'x' b",
        "has(additions)",
        "has('x', 'y')",
        "unknown(a)",
        "a == 'x' # comment",
    ])
    def test_invalid(self, text):
        with pytest.raises(GuardParseError):
            parse_guard(text)


class TestFormatGuard:
    """Rendered guards parse back to the same tree."""

    @pytest.mark.parametrize("text", [
        "project_type == 'web'",
        "(project_type == 'api' | project_type == 'web') & language == 'python'",
        "!has(additions, 'biome') | answered(framework)",
        "a != 'x' & (b == 'y' | !c == 'z')",
    ])
    def test_format_parses_back(self, text):
        expr = parse_guard(text)
        assert parse_guard(format_guard(expr)) == expr

    def test_format_none(self):
        assert format_guard(None) is None

    def test_literal_with_apostrophe(self):
        expr = parse_guard('label == "it\'s"')
        assert expr.right == Literal("it's")
        assert format_guard(expr) == 'label == "it\'s"'
        assert parse_guard(format_guard(expr)) == expr

    def test_literal_with_both_quotes_cannot_be_written(self):
        expr = BinaryExpression(BinaryOperator.EQUALS, SelectionReference("label"), Literal("a'b\"c"))
        with pytest.raises(GuardParseError):
            format_guard(expr)
