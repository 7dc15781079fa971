"""
Guard Expression System

Every predicate in a decision catalog (whether a node applies, whether an
option is offered) is represented as an Abstract Syntax Tree, never as
a code string or a Python callable.

This ensures:
    - Catalogs are plain data
    - Guards serialize to and from YAML/JSON
    - Dependencies between nodes can be checked statically

ARCHITECTURAL RULE:
    No lambdas in catalogs.
    All filtering logic must be AST-based.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class Expression(ABC):
    """
    Base class for all guard expressions.

    Structure only. Evaluation belongs in `stackplan.evaluator`,
    textual syntax belongs in `stackplan.guards`.
    """
    pass


class BinaryOperator(Enum):
    """
    Binary operators supported in guards.

    Selections are identifiers, not numbers, so only equality
    comparisons are meaningful.
    """

    # Logical operators
    AND = "AND"
    OR = "OR"

    # Comparison operators
    EQUALS = "=="
    NOT_EQUALS = "!="


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Represents a binary logical or comparison expression.

    Example:
        project_type == 'web' & language == 'typescript'

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.AND,
            left=BinaryExpression(
                operator=BinaryOperator.EQUALS,
                left=SelectionReference("project_type"),
                right=Literal("web")
            ),
            right=BinaryExpression(
                operator=BinaryOperator.EQUALS,
                left=SelectionReference("language"),
                right=Literal("typescript")
            )
        )
    """

    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class SelectionReference(Expression):
    """
    References the answer recorded for another ChoiceNode.

    For a single-select node this resolves to the chosen option id.
    For a multi-select node it resolves to the tuple of chosen ids,
    which is why membership tests use `has(...)` instead of `==`.

    This object does NOT validate that the node exists.
    That check belongs in `stackplan.analyzer`.
    """

    node_id: str


@dataclass(frozen=True)
class Literal(Expression):
    """
    Represents a literal constant, usually an option id.

    Examples:
        - 'web'
        - 'nextjs'
        - true
    """

    value: Union[int, float, str, bool]


class UnaryOperator(Enum):
    NOT = "NOT"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    Represents a unary operation.

    Example:
        !has(additions, 'biome')
    """

    operator: UnaryOperator
    operand: Expression


class Function(Enum):
    """
    Functions callable from guards.

    HAS:      has(node, 'option')  -> option is among the node's answers
    ANSWERED: answered(node)       -> node has a recorded answer
    """

    HAS = "has"
    ANSWERED = "answered"


@dataclass(frozen=True)
class FunctionCall(Expression):
    """
    Represents a call to one of the guard functions.

    Example:
        has(additions, 'tailwind')

    Becomes:
        FunctionCall(
            function=Function.HAS,
            arguments=(SelectionReference("additions"), Literal("tailwind"))
        )
    """

    function: Function
    arguments: Tuple[Expression, ...] = ()
