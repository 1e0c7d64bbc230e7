"""Expression parser service for comprehension operands.

The clause parser treats yield, iterable, condition and pattern text as
opaque. A :class:`ExpressionParser` turns that text into expression-tree
nodes; :class:`JavaScriptParser` is the default, backed by a lark Earley
parser over a JavaScript expression subset.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lark import Lark, Tree
from lark.exceptions import LarkError

from pylc2js._errors import (
    ERR_MSG_INVALID_EXPRESSION,
    ERR_MSG_INVALID_PATTERN,
    ExpressionParseError,
)


@runtime_checkable
class ExpressionParser(Protocol):
    """Text-to-expression capability injected into the chain generator."""

    def parse_expression(self, text: str) -> Tree: ...

    def parse_pattern(self, text: str) -> Tree: ...


class JavaScriptParser:
    """Parses JavaScript expression and binding-pattern text into lark trees."""

    def __init__(self) -> None:
        self._lark: Lark | None = None

    @property
    def lark(self) -> Lark:
        if self._lark is None:
            self._lark = Lark.open(
                "grammar/javascript.lark",
                rel_to=__file__,
                parser="earley",
                start=["start", "parameter"],
            )
        return self._lark

    def parse_expression(self, text: str) -> Tree:
        """Parse an expression. Returns the expression node itself."""
        if not text.strip():
            raise ExpressionParseError(
                ERR_MSG_INVALID_EXPRESSION,
                "empty expression text",
            )
        try:
            tree = self.lark.parse(text, start="start")
        except LarkError as e:
            raise ExpressionParseError(
                ERR_MSG_INVALID_EXPRESSION,
                f"cannot parse expression {text!r}: {e}",
                wrapped=e,
            ) from e
        return tree.children[0]

    def parse_pattern(self, text: str) -> Tree:
        """Parse a binding pattern as the sole formal parameter of an arrow function.

        ``[x, y]`` yields the same node as the parameter of ``([x, y]) => {}``.
        """
        if not text.strip():
            raise ExpressionParseError(
                ERR_MSG_INVALID_PATTERN,
                "empty pattern text",
            )
        try:
            tree = self.lark.parse(text, start="parameter")
        except LarkError as e:
            raise ExpressionParseError(
                ERR_MSG_INVALID_PATTERN,
                f"cannot parse binding pattern {text!r}: {e}",
                wrapped=e,
            ) from e
        return tree.children[0]


default_parser = JavaScriptParser()
