"""Source printers for expression trees and generated chains."""

from __future__ import annotations

from io import StringIO
from typing import Any

from lark import Token, Tree
from lark.visitors import Interpreter

from pylc2js._chain import CHAIN_NODES, Filter, FlatMap, Lambda, Map
from pylc2js._constants import DEFAULT_MAX_OUTPUT_LENGTH
from pylc2js._errors import (
    ERR_MSG_DESTRUCTURING_UNSUPPORTED,
    ERR_MSG_OUTPUT_TOO_LONG,
    ERR_MSG_UNSUPPORTED_EXPRESSION,
    MaxOutputLengthExceededError,
    UnsupportedDialectFeatureError,
    UnsupportedExpressionError,
)
from pylc2js.dialect._base import PREC_ASSIGNMENT, PREC_POSTFIX, Dialect
from pylc2js.dialect.es2019 import ES2019Dialect

PREC_PRIMARY = 18

# Node precedence; binary nodes are looked up by operator token type.
_PRECEDENCE: dict[str, int] = {
    "arrow": PREC_ASSIGNMENT,
    "ternary": PREC_ASSIGNMENT,
    "coalesce": 3,
    "logical_or": 3,
    "logical_and": 4,
    "power": 13,
    "unary": 14,
    "prefix_update": 14,
    "postfix_update": 15,
    "member": PREC_POSTFIX,
    "index": PREC_POSTFIX,
    "call": PREC_POSTFIX,
    "tagged_template": PREC_POSTFIX,
    "new": PREC_POSTFIX,
    "optional_member": PREC_POSTFIX,
    "optional_index": PREC_POSTFIX,
    "optional_call": PREC_POSTFIX,
}

_BINARY_PRECEDENCE: dict[str, int] = {
    "BITOR_OP": 5,
    "BITXOR_OP": 6,
    "BITAND_OP": 7,
    "EQUALITY_OP": 8,
    "RELATIONAL_OP": 9,
    "SHIFT_OP": 10,
    "ADDITIVE_OP": 11,
    "MULTIPLICATIVE_OP": 12,
}


def precedence_of(node: Any) -> int:
    if isinstance(node, CHAIN_NODES):
        return PREC_POSTFIX
    if not isinstance(node, Tree):
        return PREC_PRIMARY
    if node.data == "binary":
        return _BINARY_PRECEDENCE[node.children[1].type]
    return _PRECEDENCE.get(node.data, PREC_PRIMARY)


class SourcePrinter(Interpreter):
    """Prints a JavaScript expression tree as source text.

    Parentheses are emitted from operator precedence only; the parse tree
    does not keep the ones the author wrote.
    """

    def __init__(self, max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH) -> None:
        self._w = StringIO()
        self._max_output_length = max_output_length

    @property
    def result(self) -> str:
        return self._w.getvalue()

    def _check_limits(self) -> None:
        if self._w.tell() > self._max_output_length:
            raise MaxOutputLengthExceededError(
                ERR_MSG_OUTPUT_TOO_LONG,
                f"output length exceeds limit {self._max_output_length}",
            )

    def write(self, node: Any, precedence: int = 0) -> None:
        """Write a node, parenthesized when it binds looser than ``precedence``."""
        if precedence_of(node) < precedence:
            self._w.write("(")
            self._write_node(node)
            self._w.write(")")
        else:
            self._write_node(node)
        self._check_limits()

    def _write_node(self, node: Any) -> None:
        if isinstance(node, Token):
            self._w.write(str(node))
        elif isinstance(node, Tree):
            self.visit(node)
        else:
            raise UnsupportedExpressionError(
                ERR_MSG_UNSUPPORTED_EXPRESSION,
                f"cannot print {type(node).__name__}",
            )

    def __default__(self, tree: Tree) -> None:
        raise UnsupportedExpressionError(
            ERR_MSG_UNSUPPORTED_EXPRESSION,
            f"cannot print node {tree.data!r}",
        )

    def _write_list(self, items: list[Any], precedence: int = PREC_ASSIGNMENT) -> None:
        for i, item in enumerate(items):
            if i:
                self._w.write(", ")
            self.write(item, precedence)

    # ---- Functions ----

    def arrow(self, tree: Tree) -> None:
        params, body = tree.children
        self.visit(params)
        self._w.write(" => ")
        self._write_arrow_body(body)

    def _write_arrow_body(self, body: Any) -> None:
        if isinstance(body, Tree) and body.data == "object":
            # A bare brace would open a block
            self._w.write("(")
            self.write(body)
            self._w.write(")")
        else:
            self.write(body, PREC_ASSIGNMENT)

    def params(self, tree: Tree) -> None:
        children = tree.children
        if len(children) == 1 and children[0].data == "binding_name":
            self.write(children[0])
            return
        self._w.write("(")
        self._write_list(children)
        self._w.write(")")

    def function_expr(self, tree: Tree) -> None:
        params, body = tree.children
        self._w.write("function (")
        self._write_list(params.children)
        self._w.write(") { return ")
        self.write(body, PREC_ASSIGNMENT)
        self._w.write("; }")

    # ---- Binding patterns ----

    def binding_name(self, tree: Tree) -> None:
        self._w.write(str(tree.children[0]))

    def array_pattern(self, tree: Tree) -> None:
        self._w.write("[")
        self._write_list(tree.children)
        self._w.write("]")

    def object_pattern(self, tree: Tree) -> None:
        if not tree.children:
            self._w.write("{}")
            return
        self._w.write("{ ")
        self._write_list(tree.children)
        self._w.write(" }")

    def pattern_default(self, tree: Tree) -> None:
        target, default = tree.children
        self.write(target)
        self._w.write(" = ")
        self.write(default, PREC_ASSIGNMENT)

    def pattern_rest(self, tree: Tree) -> None:
        self._w.write("...")
        self.write(tree.children[0])

    def property_pattern(self, tree: Tree) -> None:
        key, value = tree.children
        self._w.write(f"{key}: ")
        self.write(value)

    # ---- Operators ----

    def ternary(self, tree: Tree) -> None:
        test, consequent, alternate = tree.children
        self.write(test, 3)
        self._w.write(" ? ")
        self.write(consequent, PREC_ASSIGNMENT)
        self._w.write(" : ")
        self.write(alternate, PREC_ASSIGNMENT)

    def _write_logical(self, tree: Tree, op: str, mixed: tuple[str, ...]) -> None:
        prec = precedence_of(tree)
        lhs, rhs = tree.children
        # ?? cannot be mixed with && or || without parentheses
        lhs_prec = PREC_PRIMARY if _is_tree(lhs, mixed) else prec
        rhs_prec = PREC_PRIMARY if _is_tree(rhs, mixed) else prec + 1
        self.write(lhs, lhs_prec)
        self._w.write(f" {op} ")
        self.write(rhs, rhs_prec)

    def coalesce(self, tree: Tree) -> None:
        self._write_logical(tree, "??", ("logical_or", "logical_and"))

    def logical_or(self, tree: Tree) -> None:
        self._write_logical(tree, "||", ("coalesce",))

    def logical_and(self, tree: Tree) -> None:
        self._write_logical(tree, "&&", ("coalesce",))

    def binary(self, tree: Tree) -> None:
        lhs, op, rhs = tree.children
        prec = precedence_of(tree)
        self.write(lhs, prec)
        self._w.write(f" {op} ")
        self.write(rhs, prec + 1)

    def power(self, tree: Tree) -> None:
        base, exponent = tree.children
        # Unary operators are not allowed on the left of **
        self.write(base, 15)
        self._w.write(" ** ")
        self.write(exponent, precedence_of(tree))

    def unary(self, tree: Tree) -> None:
        op, operand = tree.children
        self._w.write(str(op))
        if op.type == "UNARY_KEYWORD":
            self._w.write(" ")
        elif op in ("-", "+") and (
            _is_tree(operand, ("prefix_update",))
            or (_is_tree(operand, ("unary",)) and operand.children[0] in ("-", "+"))
        ):
            # Keep "- -x" from reading as a decrement
            self._w.write(" ")
        self.write(operand, 14)

    def prefix_update(self, tree: Tree) -> None:
        op, operand = tree.children
        self._w.write(str(op))
        self.write(operand, 14)

    def postfix_update(self, tree: Tree) -> None:
        operand, op = tree.children
        self.write(operand, PREC_POSTFIX)
        self._w.write(str(op))

    # ---- Postfix ----

    def _write_object_operand(self, node: Any) -> None:
        if isinstance(node, Tree) and node.data in ("number", "object", "function_expr"):
            self._w.write("(")
            self.write(node)
            self._w.write(")")
        else:
            self.write(node, PREC_POSTFIX)

    def member(self, tree: Tree) -> None:
        obj, name = tree.children
        self._write_object_operand(obj)
        self._w.write(f".{name}")

    def index(self, tree: Tree) -> None:
        obj, key = tree.children
        self._write_object_operand(obj)
        self._w.write("[")
        self.write(key, PREC_ASSIGNMENT)
        self._w.write("]")

    def call(self, tree: Tree) -> None:
        callee, *args = tree.children
        self._write_object_operand(callee)
        self._w.write("(")
        self._write_list(args)
        self._w.write(")")

    def tagged_template(self, tree: Tree) -> None:
        tag, template = tree.children
        self._write_object_operand(tag)
        self._w.write(str(template))

    def new(self, tree: Tree) -> None:
        callee, *args = tree.children
        self._w.write("new ")
        if _has_call(callee) or precedence_of(callee) < PREC_POSTFIX:
            # The first argument list after "new" belongs to it
            self._w.write("(")
            self.write(callee)
            self._w.write(")")
        else:
            self.write(callee)
        self._w.write("(")
        self._write_list(args)
        self._w.write(")")

    def optional_member(self, tree: Tree) -> None:
        obj, name = tree.children
        self._write_object_operand(obj)
        self._w.write(f"?.{name}")

    def optional_index(self, tree: Tree) -> None:
        obj, key = tree.children
        self._write_object_operand(obj)
        self._w.write("?.[")
        self.write(key, PREC_ASSIGNMENT)
        self._w.write("]")

    def optional_call(self, tree: Tree) -> None:
        callee, *args = tree.children
        self._write_object_operand(callee)
        self._w.write("?.(")
        self._write_list(args)
        self._w.write(")")

    def spread(self, tree: Tree) -> None:
        self._w.write("...")
        self.write(tree.children[0], PREC_ASSIGNMENT)

    # ---- Primaries ----

    def _write_token(self, tree: Tree) -> None:
        self._w.write(str(tree.children[0]))

    number = _write_token
    string = _write_token
    template = _write_token
    regex = _write_token
    name = _write_token

    def true_lit(self, tree: Tree) -> None:
        self._w.write("true")

    def false_lit(self, tree: Tree) -> None:
        self._w.write("false")

    def null_lit(self, tree: Tree) -> None:
        self._w.write("null")

    def undefined_lit(self, tree: Tree) -> None:
        self._w.write("undefined")

    def array(self, tree: Tree) -> None:
        self._w.write("[")
        self._write_list(tree.children)
        self._w.write("]")

    def object(self, tree: Tree) -> None:
        if not tree.children:
            self._w.write("{}")
            return
        self._w.write("{ ")
        self._write_list(tree.children)
        self._w.write(" }")

    def property(self, tree: Tree) -> None:
        key, value = tree.children
        self._w.write(f"{key}: ")
        self.write(value, PREC_ASSIGNMENT)

    def shorthand(self, tree: Tree) -> None:
        self._w.write(str(tree.children[0]))


def _is_tree(node: Any, names: tuple[str, ...]) -> bool:
    return isinstance(node, Tree) and node.data in names


def _has_call(node: Any) -> bool:
    """True when a member chain starts from a call or an optional link."""
    while _is_tree(node, ("member", "index", "tagged_template")):
        node = node.children[0]
    return _is_tree(node, ("call", "optional_member", "optional_index", "optional_call"))


_OPTIONAL_LINKS = ("optional_member", "optional_index", "optional_call")


def _has_optional_link(node: Any) -> bool:
    while _is_tree(node, ("member", "index", "call", "tagged_template") + _OPTIONAL_LINKS):
        if node.data in _OPTIONAL_LINKS:
            return True
        node = node.children[0]
    return False


class ChainPrinter(SourcePrinter):
    """Prints a generated chain through an output dialect."""

    def __init__(
        self,
        dialect: Dialect | None = None,
        parenthesize_iterables: bool = False,
        max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH,
    ) -> None:
        super().__init__(max_output_length)
        self._dialect = dialect or ES2019Dialect()
        self._parenthesize_iterables = parenthesize_iterables

    def _write_node(self, node: Any) -> None:
        if isinstance(node, CHAIN_NODES):
            self._write_chain(node)
        else:
            super()._write_node(node)

    def _write_chain(self, node: Filter | Map | FlatMap) -> None:
        def write_source() -> None:
            self._write_source(node.source)

        def write_callback() -> None:
            self._write_lambda(node.callback)

        if isinstance(node, Filter):
            self._dialect.write_filter(self._w, write_source, write_callback)
        elif isinstance(node, FlatMap):
            self._dialect.write_flat_map(self._w, write_source, write_callback)
        else:
            self._dialect.write_map(self._w, write_source, write_callback)

    def _write_source(self, source: Any) -> None:
        if isinstance(source, CHAIN_NODES):
            self.write(source)
        elif self._parenthesize_iterables:
            self._w.write("(")
            self.write(source)
            self._w.write(")")
        elif self._dialect.source_precedence() >= PREC_POSTFIX:
            # Method-call dialects use the iterable as a receiver; an optional
            # chain must not swallow the method call
            if _has_optional_link(source):
                self._w.write("(")
                self.write(source)
                self._w.write(")")
            else:
                self._write_object_operand(source)
        else:
            self.write(source, self._dialect.source_precedence())

    def _write_lambda(self, fn: Lambda) -> None:
        param = fn.param if isinstance(fn.param, str) else print_tree(fn.param)
        if fn.is_destructuring and not self._dialect.supports_destructuring():
            raise UnsupportedDialectFeatureError(
                ERR_MSG_DESTRUCTURING_UNSUPPORTED,
                f"{self._dialect.name} cannot bind pattern {param}",
            )
        self._dialect.write_callback(
            self._w,
            param,
            fn.is_destructuring,
            lambda: self._write_arrow_body(fn.body),
        )


def print_tree(tree: Any, max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH) -> str:
    """Print an expression tree as JavaScript source."""
    printer = SourcePrinter(max_output_length)
    printer.write(tree)
    return printer.result


def print_chain(
    node: Any,
    *,
    dialect: Dialect | None = None,
    parenthesize_iterables: bool = False,
    max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH,
) -> str:
    """Print a generated chain as JavaScript source in the given dialect."""
    printer = ChainPrinter(dialect, parenthesize_iterables, max_output_length)
    printer.write(node)
    return printer.result
