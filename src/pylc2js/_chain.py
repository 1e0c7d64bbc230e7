"""Chain generator: Comprehension to filter/map/flatMap expression tree.

Each clause becomes one level of the chain. The innermost level projects
with ``map``; every enclosing level uses ``flatMap`` so that the inner
arrays are flattened into one result. A clause condition always filters
the iterable before the level's map/flatMap is applied.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from lark import Token, Tree

from pylc2js._comprehension import Clause, Comprehension
from pylc2js._constants import DEFAULT_MAX_CLAUSES, FILTER, FLAT_MAP, MAP
from pylc2js._errors import (
    ERR_MSG_NO_CLAUSES,
    ERR_MSG_TOO_MANY_CLAUSES,
    UnsupportedDepthError,
)
from pylc2js._expressions import ExpressionParser, default_parser
from pylc2js._utils import validate_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lambda:
    """Single-parameter callback. ``param`` is an identifier or a pattern node."""

    param: str | Tree
    body: Any

    @property
    def is_destructuring(self) -> bool:
        return not isinstance(self.param, str)


@dataclass(frozen=True)
class Filter:
    source: Any
    predicate: Lambda

    method: ClassVar[str] = FILTER

    @property
    def callback(self) -> Lambda:
        return self.predicate


@dataclass(frozen=True)
class Map:
    source: Any
    projector: Lambda

    method: ClassVar[str] = MAP

    @property
    def callback(self) -> Lambda:
        return self.projector


@dataclass(frozen=True)
class FlatMap:
    source: Any
    projector: Lambda

    method: ClassVar[str] = FLAT_MAP

    @property
    def callback(self) -> Lambda:
        return self.projector


GeneratedExpression = Union[Filter, Map, FlatMap]

CHAIN_NODES = (Filter, Map, FlatMap)


class ChainGenerator:
    """Builds the generated expression for a yield expression and its clauses."""

    def __init__(
        self,
        parser: ExpressionParser | None = None,
        max_clauses: int = DEFAULT_MAX_CLAUSES,
    ) -> None:
        self._parser = parser or default_parser
        self._max_clauses = max_clauses

    def generate(
        self, yield_expression: str, clauses: Sequence[Clause]
    ) -> GeneratedExpression:
        depth = len(clauses)
        if depth == 0:
            raise UnsupportedDepthError(
                ERR_MSG_NO_CLAUSES,
                "cannot generate a chain from zero clauses",
                depth=0,
            )
        if depth > self._max_clauses:
            raise UnsupportedDepthError(
                ERR_MSG_TOO_MANY_CLAUSES,
                f"depth {depth} exceeds limit {self._max_clauses}",
                depth=depth,
            )
        body = self._parser.parse_expression(yield_expression)
        logger.debug("generating %d-level chain for %r", depth, yield_expression)
        return self._fold(list(clauses), body)

    def _fold(self, clauses: list[Clause], body: Any) -> GeneratedExpression:
        """Fold clauses right to left: the innermost maps, outer levels flatMap."""
        clause, rest = clauses[0], clauses[1:]
        if not rest:
            return self._level(clause, body, Map)
        return self._level(clause, self._fold(rest, body), FlatMap)

    def _level(
        self, clause: Clause, body: Any, combinator: type[Map] | type[FlatMap]
    ) -> GeneratedExpression:
        source: Any = self._parser.parse_expression(clause.iterable)
        param = self._binding(clause)
        if clause.condition is not None:
            predicate = self._parser.parse_expression(clause.condition)
            source = Filter(source, Lambda(param, predicate))
        return combinator(source, Lambda(param, body))

    def _binding(self, clause: Clause) -> str | Tree:
        if clause.is_destructuring:
            return self._parser.parse_pattern(clause.loop_pattern)
        validate_identifier(clause.loop_pattern)
        return clause.loop_pattern


def generate(
    comprehension: Comprehension,
    *,
    parser: ExpressionParser | None = None,
    max_clauses: int | None = None,
) -> GeneratedExpression:
    """Generate the filter/map/flatMap chain for a parsed comprehension."""
    generator = ChainGenerator(
        parser,
        DEFAULT_MAX_CLAUSES if max_clauses is None else max_clauses,
    )
    return generator.generate(comprehension.yield_expression, comprehension.clauses)


def lower(node: Any) -> Any:
    """Lower a generated expression to a JavaScript expression tree.

    The result uses the ``call``/``member``/``arrow`` nodes of the
    JavaScript grammar, so it can be spliced into a parsed program tree,
    printed, or evaluated. Leaves are returned unchanged.
    """
    if not isinstance(node, CHAIN_NODES):
        return node
    callee = Tree("member", [lower(node.source), Token("NAME", node.method)])
    return Tree("call", [callee, _lower_lambda(node.callback)])


def _lower_lambda(fn: Lambda) -> Tree:
    if isinstance(fn.param, str):
        param = Tree("binding_name", [Token("NAME", fn.param)])
    else:
        param = fn.param
    return Tree("arrow", [Tree("params", [param]), lower(fn.body)])
