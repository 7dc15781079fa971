"""
Guard Parser (Raw Text → Guard Expression AST).

Catalog files write guards in a compact syntax:

    project_type == 'web' & language != 'python'
    has(additions, 'biome') | framework == 'nextjs'
    !answered(framework)

Syntax Notes:
    - & / and        -> AND
    - | / or         -> OR
    - ! / not        -> NOT
    - = is accepted as ==
    - Bare identifiers are node references
    - Quoted strings and numbers are literals, true/false are booleans
    - OR binds loosest, then AND, then NOT
"""

import re
from typing import List, Optional, Tuple

from stackplan.errors import GuardParseError
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


_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<string>'[^']*'|"[^"]*")
      | (?P<op>==|!=|&&|\|\||[()&|!,=])
      | (?P<number>-?\d+(?:\.\d+)?)
      | (?P<ident>[A-Za-z_][A-Za-z0-9_\-]*)
    )""",
    re.VERBOSE,
)

_KEYWORDS = {"and": "&", "or": "|", "not": "!"}


def _tokenize(text: str) -> List[Tuple[str, str]]:
    """Split guard text into (kind, value) tokens."""
    tokens: List[Tuple[str, str]] = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise GuardParseError(f"Unexpected character at {pos} in guard: {text!r}")
        pos = m.end()
        kind = m.lastgroup
        value = m.group(kind)
        if kind == "op":
            value = {"&&": "&", "||": "|", "=": "=="}.get(value, value)
        elif kind == "ident" and value.lower() in _KEYWORDS:
            kind, value = "op", _KEYWORDS[value.lower()]
        tokens.append((kind, value))
    if not tokens:
        raise GuardParseError(f"No valid tokens in guard: {text!r}")
    return tokens


class _Parser:
    def __init__(self, tokens: List[Tuple[str, str]]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Optional[Tuple[str, str]]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def take(self, value: Optional[str] = None) -> Tuple[str, str]:
        token = self.peek()
        if token is None:
            raise GuardParseError("Unexpected end of guard")
        if value is not None and token[1] != value:
            raise GuardParseError(f"Expected '{value}', got '{token[1]}'")
        self.pos += 1
        return token

    def at_op(self, value: str) -> bool:
        token = self.peek()
        return token is not None and token[0] == "op" and token[1] == value

    def parse_or(self) -> Expression:
        left = self.parse_and()
        while self.at_op("|"):
            self.take()
            right = self.parse_and()
            left = BinaryExpression(BinaryOperator.OR, left, right)
        return left

    def parse_and(self) -> Expression:
        left = self.parse_not()
        while self.at_op("&"):
            self.take()
            right = self.parse_not()
            left = BinaryExpression(BinaryOperator.AND, left, right)
        return left

    def parse_not(self) -> Expression:
        # !a == 'x' reads as !(a == 'x')
        if self.at_op("!"):
            self.take()
            return UnaryExpression(UnaryOperator.NOT, self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self) -> Expression:
        left = self.parse_primary()
        if self.at_op("==") or self.at_op("!="):
            _, op = self.take()
            right = self.parse_primary()
            operator = BinaryOperator.EQUALS if op == "==" else BinaryOperator.NOT_EQUALS
            left = BinaryExpression(operator, left, right)
        return left

    def parse_primary(self) -> Expression:
        kind, value = self.take()

        if kind == "op" and value == "(":
            expr = self.parse_or()
            if not self.at_op(")"):
                raise GuardParseError("Missing closing parenthesis")
            self.take()
            return expr

        if kind == "string":
            return Literal(value[1:-1])

        if kind == "number":
            return Literal(float(value) if "." in value else int(value))

        if kind == "ident":
            if value in ("true", "false"):
                return Literal(value == "true")
            if self.at_op("("):
                return self.parse_call(value)
            return SelectionReference(value)

        raise GuardParseError(f"Unexpected token: {value}")

    def parse_call(self, name: str) -> Expression:
        try:
            function = Function(name)
        except ValueError:
            raise GuardParseError(f"Unknown guard function: {name}")
        self.take("(")
        arguments: List[Expression] = []
        if not self.at_op(")"):
            while True:
                arguments.append(self.parse_or())
                if self.at_op(","):
                    self.take()
                    continue
                break
        if not self.at_op(")"):
            raise GuardParseError(f"Missing closing parenthesis in call to {name}")
        self.take()

        expected = 2 if function is Function.HAS else 1
        if len(arguments) != expected:
            raise GuardParseError(f"{name}() takes {expected} argument(s), got {len(arguments)}")
        if not isinstance(arguments[0], SelectionReference):
            raise GuardParseError(f"First argument of {name}() must be a node reference")
        return FunctionCall(function, tuple(arguments))


def parse_guard(text: Optional[str]) -> Optional[Expression]:
    """
    Parse guard text into an Expression AST.

    Args:
        text: Guard in catalog syntax. Empty or None means "always".

    Returns:
        Expression AST, or None for an empty guard

    Raises:
        GuardParseError: If the syntax is invalid
    """
    if text is None or not str(text).strip():
        return None

    parser = _Parser(_tokenize(str(text)))
    expr = parser.parse_or()
    if parser.peek() is not None:
        raise GuardParseError(
            f"Unexpected tokens after guard: {[v for _, v in parser.tokens[parser.pos:]]}"
        )
    return expr


def format_guard(expr: Optional[Expression]) -> Optional[str]:
    """Render an Expression back into catalog guard syntax."""
    if expr is None:
        return None
    return _format(expr, top=True)


def _format(expr: Expression, top: bool = False) -> str:
    if isinstance(expr, BinaryExpression):
        if expr.operator is BinaryOperator.AND:
            text = f"{_format(expr.left)} & {_format(expr.right)}"
        elif expr.operator is BinaryOperator.OR:
            text = f"{_format(expr.left)} | {_format(expr.right)}"
        else:
            text = f"{_format(expr.left)} {expr.operator.value} {_format(expr.right)}"
        return text if top else f"({text})"
    if isinstance(expr, UnaryExpression):
        return f"!{_format(expr.operand)}"
    if isinstance(expr, FunctionCall):
        args = ", ".join(_format(a, top=True) for a in expr.arguments)
        return f"{expr.function.value}({args})"
    if isinstance(expr, SelectionReference):
        return expr.node_id
    if isinstance(expr, Literal):
        if isinstance(expr.value, bool):
            return "true" if expr.value else "false"
        if isinstance(expr.value, str):
            if "'" not in expr.value:
                return f"'{expr.value}'"
            if '"' in expr.value:
                raise GuardParseError(f"Literal {expr.value!r} contains both quote characters")
            return f'"{expr.value}"'
        return str(expr.value)
    raise TypeError(f"Unsupported Expression type: {type(expr)}")


__all__ = ["parse_guard", "format_guard", "GuardParseError"]
