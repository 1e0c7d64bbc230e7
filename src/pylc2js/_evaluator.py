"""Evaluation of JavaScript expression trees.

Implements enough of JavaScript's value semantics to run rewritten
comprehensions against sample data and compare their results: arrays are
Python lists, objects are dicts, ``null`` is ``None`` and ``undefined`` is
:data:`UNDEFINED`. Arrow and function expressions evaluate to
:class:`JSFunction` closures; plain Python callables from the environment
can be called as host functions.
"""

from __future__ import annotations

import math
import operator
import re
from collections import ChainMap
from collections.abc import Callable, Mapping
from typing import Any

from lark import Tree
from lark.visitors import Interpreter

from pylc2js._errors import (
    ERR_MSG_EVALUATION_FAILED,
    ERR_MSG_UNSUPPORTED_EXPRESSION,
    EvaluationError,
    UnsupportedExpressionError,
)
from pylc2js._expressions import default_parser
from pylc2js._utils import (
    decode_escapes,
    decode_string_literal,
    format_number,
    has_substitutions,
    template_content,
)


class _Undefined:
    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def truthy(value: Any) -> bool:
    if value is None or value is UNDEFINED:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and value == value
    if isinstance(value, str):
        return value != ""
    return True


def to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return format_number(value)
    if isinstance(value, list):
        return ",".join(
            "" if item is None or item is UNDEFINED else to_string(item)
            for item in value
        )
    if isinstance(value, dict):
        return "[object Object]"
    if callable(value):
        return "function () { [native code] }"
    return str(value)


def to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if _is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return math.nan
    if isinstance(value, list):
        return to_number(to_string(value))
    return math.nan


def _category(value: Any) -> str:
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if callable(value):
        return "function"
    return "object"


def strict_equals(a: Any, b: Any) -> bool:
    kind = _category(a)
    if kind != _category(b):
        return False
    if kind in ("object", "function"):
        return a is b
    return a == b


def loose_equals(a: Any, b: Any) -> bool:
    kind_a, kind_b = _category(a), _category(b)
    if kind_a == kind_b:
        return strict_equals(a, b)
    nullish = ("null", "undefined")
    if kind_a in nullish or kind_b in nullish:
        return kind_a in nullish and kind_b in nullish
    if kind_a == "boolean":
        return loose_equals(to_number(a), b)
    if kind_b == "boolean":
        return loose_equals(a, to_number(b))
    if kind_a in ("object", "function"):
        return loose_equals(to_string(a), b)
    if kind_b in ("object", "function"):
        return loose_equals(a, to_string(b))
    return to_number(a) == to_number(b)


def _typeof(value: Any) -> str:
    kind = _category(value)
    return "object" if kind == "null" else kind


def _add(a: Any, b: Any) -> Any:
    if isinstance(a, (list, dict)):
        a = to_string(a)
    if isinstance(b, (list, dict)):
        b = to_string(b)
    if isinstance(a, str) or isinstance(b, str):
        return to_string(a) + to_string(b)
    return to_number(a) + to_number(b)


def _divide(a: Any, b: Any) -> float:
    x, y = to_number(a), to_number(b)
    if y == 0:
        if x == 0 or x != x:
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1, y)
    return x / y


def _remainder(a: Any, b: Any) -> int | float:
    x, y = to_number(a), to_number(b)
    if y == 0 or math.isinf(x) or x != x or y != y:
        return math.nan
    result = math.fmod(x, y)
    if isinstance(x, int) and isinstance(y, int):
        return int(result)
    return result


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(a: Any, b: Any) -> bool:
        if isinstance(a, str) and isinstance(b, str):
            return op(a, b)
        x, y = to_number(a), to_number(b)
        if x != x or y != y:
            return False
        return op(x, y)

    return compare


def _wrap_int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n >= 0x80000000 else n


def _to_int32(value: Any) -> int:
    n = to_number(value)
    if n != n or math.isinf(n):
        return 0
    return _wrap_int32(int(n))


def _to_uint32(value: Any) -> int:
    return _to_int32(value) & 0xFFFFFFFF


def _in(key: Any, obj: Any) -> bool:
    if isinstance(obj, list):
        index = _index_of(key)
        return (index is not None and index < len(obj)) or to_string(key) == "length"
    if isinstance(obj, Mapping):
        return to_string(key) in obj
    raise EvaluationError(
        ERR_MSG_EVALUATION_FAILED,
        f"cannot use 'in' to search for {to_string(key)!r} in {to_string(obj)}",
    )


def _instance_of(value: Any, cls: Any) -> bool:
    if isinstance(cls, type):
        return isinstance(value, cls)
    if callable(cls):
        # Script functions have no prototype chain here
        return False
    raise EvaluationError(
        ERR_MSG_EVALUATION_FAILED,
        "right-hand side of 'instanceof' is not callable",
    )


_BINARY_OPS: dict[str, Callable[[Any, Any], Any]] = {
    "===": strict_equals,
    "!==": lambda a, b: not strict_equals(a, b),
    "==": loose_equals,
    "!=": lambda a, b: not loose_equals(a, b),
    "<": _compare(operator.lt),
    "<=": _compare(operator.le),
    ">": _compare(operator.gt),
    ">=": _compare(operator.ge),
    "+": _add,
    "-": lambda a, b: to_number(a) - to_number(b),
    "*": lambda a, b: to_number(a) * to_number(b),
    "/": _divide,
    "%": _remainder,
    "&": lambda a, b: _to_int32(a) & _to_int32(b),
    "|": lambda a, b: _to_int32(a) | _to_int32(b),
    "^": lambda a, b: _to_int32(a) ^ _to_int32(b),
    "<<": lambda a, b: _wrap_int32(_to_int32(a) << (_to_uint32(b) & 31)),
    ">>": lambda a, b: _to_int32(a) >> (_to_uint32(b) & 31),
    ">>>": lambda a, b: _to_uint32(a) >> (_to_uint32(b) & 31),
    "in": _in,
    "instanceof": _instance_of,
}


# ---- Built-in methods ----


def _flatten_one(items: list[Any]) -> list[Any]:
    result: list[Any] = []
    for item in items:
        if isinstance(item, list):
            result.extend(item)
        else:
            result.append(item)
    return result


def _array_method(arr: list[Any], name: str) -> Any:
    if name == "filter":
        return lambda fn: [x for i, x in enumerate(arr) if truthy(fn(x, i, arr))]
    if name == "map":
        return lambda fn: [fn(x, i, arr) for i, x in enumerate(arr)]
    if name == "flatMap":
        return lambda fn: _flatten_one([fn(x, i, arr) for i, x in enumerate(arr)])
    if name == "concat":
        return lambda *items: list(arr) + _flatten_one(list(items))
    if name == "includes":
        return lambda value: any(
            strict_equals(x, value) or (_is_number(x) and _is_number(value) and x != x and value != value)
            for x in arr
        )
    if name == "indexOf":
        return lambda value: next(
            (i for i, x in enumerate(arr) if strict_equals(x, value)), -1
        )
    if name == "join":
        return lambda sep=",": to_string(sep).join(
            "" if x is None or x is UNDEFINED else to_string(x) for x in arr
        )
    if name == "slice":
        return lambda start=0, end=UNDEFINED: arr[
            int(to_number(start)) : None if end is UNDEFINED else int(to_number(end))
        ]
    return UNDEFINED


def _string_method(text: str, name: str) -> Any:
    if name == "toUpperCase":
        return lambda: text.upper()
    if name == "toLowerCase":
        return lambda: text.lower()
    if name == "includes":
        return lambda needle: to_string(needle) in text
    if name == "startsWith":
        return lambda prefix: text.startswith(to_string(prefix))
    if name == "endsWith":
        return lambda suffix: text.endswith(to_string(suffix))
    return UNDEFINED


class JSRegExp:
    """A regular expression literal, matched with :mod:`re`.

    Only the ``i``, ``m`` and ``s`` flags change matching; patterns that
    :mod:`re` cannot compile raise :class:`UnsupportedExpressionError`.
    """

    _FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

    def __init__(self, source: str, flags: str = "") -> None:
        self.source = source
        self.flags = flags
        re_flags = 0
        for flag in flags:
            re_flags |= self._FLAGS.get(flag, 0)
        try:
            self._pattern = re.compile(source, re_flags)
        except re.error as e:
            raise UnsupportedExpressionError(
                ERR_MSG_UNSUPPORTED_EXPRESSION,
                f"cannot translate regular expression {self}: {e}",
                wrapped=e,
            ) from e

    def test(self, value: Any = UNDEFINED) -> bool:
        return self._pattern.search(to_string(value)) is not None

    def __str__(self) -> str:
        return f"/{self.source}/{self.flags}"


def _regexp_property(regexp: JSRegExp, name: str) -> Any:
    if name == "test":
        return regexp.test
    if name == "source":
        return regexp.source
    if name == "flags":
        return regexp.flags
    return UNDEFINED


def _index_of(key: Any) -> int | None:
    if _is_number(key) and key == int(key) and key >= 0:
        return int(key)
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return None


def get_property(value: Any, key: Any) -> Any:
    """Read ``value[key]`` with JavaScript lookup rules for the supported types."""
    if value is None or value is UNDEFINED:
        raise EvaluationError(
            ERR_MSG_EVALUATION_FAILED,
            f"cannot read property {to_string(key)!r} of {to_string(value)}",
        )
    if isinstance(value, (list, str)):
        index = _index_of(key)
        if index is not None:
            return value[index] if index < len(value) else UNDEFINED
        name = to_string(key)
        if name == "length":
            return len(value)
        if isinstance(value, list):
            return _array_method(value, name)
        return _string_method(value, name)
    if isinstance(value, Mapping):
        return value.get(to_string(key), UNDEFINED)
    if isinstance(value, JSRegExp):
        return _regexp_property(value, to_string(key))
    if callable(value):
        name = to_string(key)
        if name == "apply":
            return lambda this=UNDEFINED, args=None: value(*(args or []))
        if name == "call":
            return lambda this=UNDEFINED, *args: value(*args)
    return UNDEFINED


class JSFunction:
    """An arrow or function expression closed over its defining scope."""

    def __init__(
        self,
        evaluator: Evaluator,
        params: list[Tree],
        body: Any,
        scope: ChainMap[str, Any],
    ) -> None:
        self._evaluator = evaluator
        self._params = params
        self._body = body
        self._scope = scope

    def __call__(self, *args: Any) -> Any:
        scope = self._scope.new_child()
        for i, param in enumerate(self._params):
            if param.data == "pattern_rest":
                self._evaluator.bind(param.children[0], list(args[i:]), scope)
                break
            value = args[i] if i < len(args) else UNDEFINED
            self._evaluator.bind(param, value, scope)
        return self._evaluator.evaluate_in(self._body, scope)

    def __repr__(self) -> str:
        return f"<JSFunction/{len(self._params)}>"


class _ShortCircuit(Exception):
    """Unwinds an optional chain whose base is null or undefined."""


_CHAIN_LINKS = frozenset(
    {"member", "index", "call", "optional_member", "optional_index", "optional_call"}
)


class Evaluator(Interpreter):
    """Evaluates a JavaScript expression tree to a Python value."""

    def __init__(self, env: Mapping[str, Any] | None = None) -> None:
        self._scope: ChainMap[str, Any] = ChainMap(dict(env or {}))

    def visit(self, tree: Tree) -> Any:
        try:
            return super().visit(tree)
        except _ShortCircuit:
            return UNDEFINED

    def _visit_link(self, node: Any) -> Any:
        """Evaluate the object of a property access or call.

        Unlike :meth:`visit`, a short-circuit raised further down the same
        chain keeps unwinding, so ``a?.b.c`` is undefined when ``a`` is null.
        """
        if isinstance(node, Tree) and node.data in _CHAIN_LINKS:
            return getattr(self, node.data)(node)
        return self.visit(node)

    def evaluate_in(self, tree: Any, scope: ChainMap[str, Any]) -> Any:
        saved = self._scope
        self._scope = scope
        try:
            return self.visit(tree)
        finally:
            self._scope = saved

    def __default__(self, tree: Tree) -> Any:
        raise UnsupportedExpressionError(
            ERR_MSG_UNSUPPORTED_EXPRESSION,
            f"cannot evaluate node {tree.data!r}",
        )

    # ---- Binding ----

    def bind(self, target: Tree, value: Any, scope: ChainMap[str, Any]) -> None:
        """Bind a parameter or pattern to a value in ``scope``."""
        kind = target.data
        if kind == "binding_name":
            scope[str(target.children[0])] = value
        elif kind == "pattern_default":
            pattern, default = target.children
            if value is UNDEFINED:
                value = self.evaluate_in(default, scope)
            self.bind(pattern, value, scope)
        elif kind == "array_pattern":
            self._bind_array(target, value, scope)
        elif kind == "object_pattern":
            self._bind_object(target, value, scope)
        else:
            raise UnsupportedExpressionError(
                ERR_MSG_UNSUPPORTED_EXPRESSION,
                f"cannot bind pattern {kind!r}",
            )

    def _bind_array(self, target: Tree, value: Any, scope: ChainMap[str, Any]) -> None:
        if not isinstance(value, (list, str)):
            raise EvaluationError(
                ERR_MSG_EVALUATION_FAILED,
                f"{to_string(value)} is not iterable",
            )
        items = list(value)
        for i, element in enumerate(target.children):
            if element.data == "pattern_rest":
                self.bind(element.children[0], items[i:], scope)
                break
            self.bind(element, items[i] if i < len(items) else UNDEFINED, scope)

    def _bind_object(self, target: Tree, value: Any, scope: ChainMap[str, Any]) -> None:
        if value is None or value is UNDEFINED:
            raise EvaluationError(
                ERR_MSG_EVALUATION_FAILED,
                f"cannot destructure {to_string(value)}",
            )
        used: set[str] = set()
        for item in target.children:
            if item.data == "pattern_rest":
                rest = {}
                if isinstance(value, Mapping):
                    rest = {k: v for k, v in value.items() if k not in used}
                self.bind(item.children[0], rest, scope)
                continue
            if item.data == "property_pattern":
                key = str(item.children[0])
                self.bind(item.children[1], get_property(value, key), scope)
            else:
                name_node = item.children[0] if item.data == "pattern_default" else item
                key = str(name_node.children[0])
                self.bind(item, get_property(value, key), scope)
            used.add(key)

    # ---- Functions ----

    def arrow(self, tree: Tree) -> JSFunction:
        params, body = tree.children
        return JSFunction(self, list(params.children), body, self._scope)

    function_expr = arrow

    # ---- Operators ----

    def ternary(self, tree: Tree) -> Any:
        test, consequent, alternate = tree.children
        return self.visit(consequent if truthy(self.visit(test)) else alternate)

    def coalesce(self, tree: Tree) -> Any:
        lhs = self.visit(tree.children[0])
        if lhs is None or lhs is UNDEFINED:
            return self.visit(tree.children[1])
        return lhs

    def logical_or(self, tree: Tree) -> Any:
        lhs = self.visit(tree.children[0])
        return lhs if truthy(lhs) else self.visit(tree.children[1])

    def logical_and(self, tree: Tree) -> Any:
        lhs = self.visit(tree.children[0])
        return self.visit(tree.children[1]) if truthy(lhs) else lhs

    def binary(self, tree: Tree) -> Any:
        lhs, op, rhs = tree.children
        return _BINARY_OPS[str(op)](self.visit(lhs), self.visit(rhs))

    def power(self, tree: Tree) -> Any:
        base, exponent = tree.children
        try:
            return to_number(self.visit(base)) ** to_number(self.visit(exponent))
        except ZeroDivisionError:
            return math.inf

    def unary(self, tree: Tree) -> Any:
        op, operand = tree.children
        if op == "delete":
            raise UnsupportedExpressionError(
                ERR_MSG_UNSUPPORTED_EXPRESSION,
                "delete is not supported",
            )
        value = self.visit(operand)
        if op == "typeof":
            return _typeof(value)
        if op == "void":
            return UNDEFINED
        if op == "!":
            return not truthy(value)
        if op == "~":
            return ~_to_int32(value)
        if op == "-":
            return -to_number(value)
        return to_number(value)

    # ---- Postfix ----

    def member(self, tree: Tree) -> Any:
        obj, name = tree.children
        return get_property(self._visit_link(obj), str(name))

    def index(self, tree: Tree) -> Any:
        obj, key = tree.children
        return get_property(self._visit_link(obj), self.visit(key))

    def call(self, tree: Tree) -> Any:
        callee, *arg_nodes = tree.children
        return self._call(self._visit_link(callee), arg_nodes)

    def optional_member(self, tree: Tree) -> Any:
        obj, name = tree.children
        return get_property(self._optional_base(obj), str(name))

    def optional_index(self, tree: Tree) -> Any:
        obj, key = tree.children
        return get_property(self._optional_base(obj), self.visit(key))

    def optional_call(self, tree: Tree) -> Any:
        callee, *arg_nodes = tree.children
        return self._call(self._optional_base(callee), arg_nodes)

    def _optional_base(self, node: Any) -> Any:
        value = self._visit_link(node)
        if value is None or value is UNDEFINED:
            raise _ShortCircuit
        return value

    def new(self, tree: Tree) -> Any:
        callee, *arg_nodes = tree.children
        cls = self.visit(callee)
        if isinstance(cls, JSFunction):
            raise UnsupportedExpressionError(
                ERR_MSG_UNSUPPORTED_EXPRESSION,
                "constructing script functions is not supported",
            )
        if not callable(cls):
            raise EvaluationError(
                ERR_MSG_EVALUATION_FAILED,
                f"{to_string(cls)} is not a constructor",
            )
        # Host callables construct by being called
        return cls(*self._spread_values(arg_nodes))

    def _call(self, fn: Any, arg_nodes: list[Any]) -> Any:
        if not callable(fn):
            raise EvaluationError(
                ERR_MSG_EVALUATION_FAILED,
                f"{to_string(fn)} is not a function",
            )
        return fn(*self._spread_values(arg_nodes))

    def tagged_template(self, tree: Tree) -> Any:
        raise UnsupportedExpressionError(
            ERR_MSG_UNSUPPORTED_EXPRESSION,
            "tagged templates must be rewritten before evaluation",
        )

    def _spread_values(self, nodes: list[Any]) -> list[Any]:
        values: list[Any] = []
        for node in nodes:
            if isinstance(node, Tree) and node.data == "spread":
                spread = self.visit(node.children[0])
                if not isinstance(spread, (list, str)):
                    raise EvaluationError(
                        ERR_MSG_EVALUATION_FAILED,
                        f"{to_string(spread)} is not iterable",
                    )
                values.extend(spread)
            else:
                values.append(self.visit(node))
        return values

    # ---- Primaries ----

    def number(self, tree: Tree) -> int | float:
        text = str(tree.children[0])
        if text[:2] in ("0x", "0X"):
            return int(text, 16)
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)

    def string(self, tree: Tree) -> str:
        return decode_string_literal(str(tree.children[0]))

    def regex(self, tree: Tree) -> JSRegExp:
        text = str(tree.children[0])
        end = text.rindex("/")
        return JSRegExp(text[1:end], text[end + 1 :])

    def template(self, tree: Tree) -> str:
        raw = template_content(str(tree.children[0]))
        if has_substitutions(raw):
            raise UnsupportedExpressionError(
                ERR_MSG_UNSUPPORTED_EXPRESSION,
                "template substitutions are not supported",
            )
        return decode_escapes(raw)

    def true_lit(self, tree: Tree) -> bool:
        return True

    def false_lit(self, tree: Tree) -> bool:
        return False

    def null_lit(self, tree: Tree) -> None:
        return None

    def undefined_lit(self, tree: Tree) -> Any:
        return UNDEFINED

    def name(self, tree: Tree) -> Any:
        ident = str(tree.children[0])
        try:
            return self._scope[ident]
        except KeyError:
            raise EvaluationError(
                ERR_MSG_EVALUATION_FAILED,
                f"{ident} is not defined",
            ) from None

    def array(self, tree: Tree) -> list[Any]:
        return self._spread_values(tree.children)

    def object(self, tree: Tree) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for member in tree.children:
            if member.data == "spread":
                spread = self.visit(member.children[0])
                if isinstance(spread, Mapping):
                    result.update(spread)
            elif member.data == "shorthand":
                key = str(member.children[0])
                result[key] = self.name(Tree("name", [member.children[0]]))
            else:
                key_token, value = member.children
                key = str(key_token)
                if key_token.type == "STRING":
                    key = decode_string_literal(key)
                result[key] = self.visit(value)
        return result


def evaluate(expression: str | Tree, env: Mapping[str, Any] | None = None) -> Any:
    """Evaluate JavaScript expression text or tree in an environment of Python values."""
    tree = default_parser.parse_expression(expression) if isinstance(expression, str) else expression
    return Evaluator(env).visit(tree)
