"""
Guard evaluation over a snapshot of prior answers.

This is the interpreter layer for `stackplan.expressions`. It is pure:
evaluation never mutates the answers it reads.

Semantics:
    - A reference to an unanswered node resolves to None.
    - Any comparison with None is False (both == and !=), so a guard
      about a skipped node never passes by accident.
    - has(node, 'x') is True when 'x' is the node's single answer or one
      of its multi answers.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Set, Tuple, Union

from stackplan.expressions import (
    Expression,
    BinaryExpression,
    BinaryOperator,
    SelectionReference,
    Literal,
    UnaryExpression,
    UnaryOperator,
    Function,
    FunctionCall,
)

Answer = Union[str, Tuple[str, ...]]


def evaluate(expr: Optional[Expression], answers: Mapping[str, Answer]) -> Any:
    """
    Evaluate an expression against recorded answers.

    Args:
        expr: Guard AST. None means "no guard" and evaluates to True.
        answers: node id -> option id (single) or tuple of ids (multi)

    Returns:
        The expression value; guards are expected to produce a bool
    """
    if expr is None:
        return True

    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, SelectionReference):
        return answers.get(expr.node_id)

    if isinstance(expr, UnaryExpression):
        if expr.operator is UnaryOperator.NOT:
            return not _truthy(evaluate(expr.operand, answers))
        raise TypeError(f"Unsupported unary operator: {expr.operator}")

    if isinstance(expr, BinaryExpression):
        op = expr.operator
        if op is BinaryOperator.AND:
            return _truthy(evaluate(expr.left, answers)) and _truthy(evaluate(expr.right, answers))
        if op is BinaryOperator.OR:
            return _truthy(evaluate(expr.left, answers)) or _truthy(evaluate(expr.right, answers))

        left = evaluate(expr.left, answers)
        right = evaluate(expr.right, answers)
        if left is None or right is None:
            return False
        if op is BinaryOperator.EQUALS:
            return left == right
        if op is BinaryOperator.NOT_EQUALS:
            return left != right
        raise TypeError(f"Unsupported binary operator: {op}")

    if isinstance(expr, FunctionCall):
        value = evaluate(expr.arguments[0], answers)
        if expr.function is Function.ANSWERED:
            return value is not None
        if expr.function is Function.HAS:
            needle = evaluate(expr.arguments[1], answers)
            if value is None:
                return False
            if isinstance(value, tuple):
                return needle in value
            return value == needle
        raise TypeError(f"Unsupported function: {expr.function}")

    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def _truthy(value: Any) -> bool:
    if isinstance(value, tuple):
        return len(value) > 0
    return bool(value)


def references(expr: Optional[Expression]) -> Set[str]:
    """Collect every node id an expression reads."""
    if expr is None:
        return set()
    if isinstance(expr, SelectionReference):
        return {expr.node_id}
    if isinstance(expr, BinaryExpression):
        return references(expr.left) | references(expr.right)
    if isinstance(expr, UnaryExpression):
        return references(expr.operand)
    if isinstance(expr, FunctionCall):
        found: Set[str] = set()
        for arg in expr.arguments:
            found |= references(arg)
        return found
    return set()


def compared_literals(expr: Optional[Expression]) -> Set[Tuple[str, Any]]:
    """
    Collect (node_id, literal) pairs the expression compares or tests.

    Used by the analyzer to flag guards that mention option ids
    the referenced node does not offer.
    """
    if expr is None:
        return set()
    found: Set[Tuple[str, Any]] = set()
    if isinstance(expr, BinaryExpression):
        if expr.operator in (BinaryOperator.EQUALS, BinaryOperator.NOT_EQUALS):
            if isinstance(expr.left, SelectionReference) and isinstance(expr.right, Literal):
                found.add((expr.left.node_id, expr.right.value))
            elif isinstance(expr.right, SelectionReference) and isinstance(expr.left, Literal):
                found.add((expr.right.node_id, expr.left.value))
        found |= compared_literals(expr.left)
        found |= compared_literals(expr.right)
    elif isinstance(expr, UnaryExpression):
        found |= compared_literals(expr.operand)
    elif isinstance(expr, FunctionCall) and expr.function is Function.HAS:
        ref, lit = expr.arguments
        if isinstance(ref, SelectionReference) and isinstance(lit, Literal):
            found.add((ref.node_id, lit.value))
    return found
